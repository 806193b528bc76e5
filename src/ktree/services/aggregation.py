"""Derived scoring statistics for progress views.

Two scoring channels are kept apart: submission grading (per submission,
summarised per node) and the manual baseline score (per node, summarised per
tree). Nothing here mixes the two.
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

LOW_BAND_MAX = 3
MID_BAND_MAX = 6


@dataclass
class SubmissionStats:
    """Per-node summary of a student's submission history."""

    submission_count: int = 0
    latest_submission_id: Optional[int] = None
    latest_score: Optional[float] = None
    latest_comment: Optional[str] = None
    latest_scored_at: Optional[datetime] = None
    latest_submitted_at: Optional[datetime] = None
    latest_code_text: Optional[str] = None
    latest_code_image_url: Optional[str] = None
    highest_score: Optional[float] = None
    average_score: Optional[float] = None


@dataclass
class BaselineSummary:
    """Per-tree summary of manually assigned baseline scores."""

    node_count: int = 0
    scored_count: int = 0
    total: float = 0.0
    average: Optional[float] = None


@dataclass
class NodeProgress:
    """Everything a progress view attaches to one node for one student."""

    score: Optional[float] = None
    comment: Optional[str] = None
    score_updated_at: Optional[datetime] = None
    draft_code_text: Optional[str] = None
    draft_code_image_url: Optional[str] = None
    draft_updated_at: Optional[datetime] = None
    stats: SubmissionStats = field(default_factory=SubmissionStats)
    history: List[Any] = field(default_factory=list)


def _is_number(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        return not math.isnan(float(value))
    except (TypeError, ValueError):
        return False


def summarize_submissions(history: Sequence[Any]) -> SubmissionStats:
    """Summarise one node's history, given newest first."""
    stats = SubmissionStats(submission_count=len(history))
    if not history:
        return stats

    latest = history[0]
    stats.latest_submission_id = latest.id
    stats.latest_score = latest.teacher_score
    stats.latest_comment = latest.teacher_comment
    stats.latest_scored_at = latest.scored_at
    stats.latest_submitted_at = latest.submitted_at
    stats.latest_code_text = latest.code_text
    stats.latest_code_image_url = latest.code_image_url

    scored = [float(s.teacher_score) for s in history if _is_number(s.teacher_score)]
    if scored:
        stats.highest_score = max(scored)
        stats.average_score = sum(scored) / len(scored)
    return stats


def group_history_by_node(rows: Iterable[Any]) -> Dict[int, List[Any]]:
    """Bucket a student's submissions by node, preserving input order."""
    grouped: Dict[int, List[Any]] = defaultdict(list)
    for row in rows:
        grouped[row.node_id].append(row)
    return dict(grouped)


def summarize_baseline(scores: Iterable[Optional[float]]) -> BaselineSummary:
    """Summarise the baseline scores of a tree's non-root nodes.

    ``scores`` has one entry per non-root node; ``None`` means not graded.
    """
    summary = BaselineSummary()
    for score in scores:
        summary.node_count += 1
        if _is_number(score):
            summary.scored_count += 1
            summary.total += float(score)
    if summary.scored_count:
        summary.average = summary.total / summary.scored_count
    return summary


def format_score(value: Optional[float]) -> str:
    """Integral values print bare, others to one decimal place."""
    if not _is_number(value):
        return "-"
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return f"{number:.1f}"


def score_band(value: Optional[float]) -> Optional[str]:
    """Qualitative band for a displayed score."""
    if not _is_number(value):
        return None
    number = float(value)
    if number <= LOW_BAND_MAX:
        return "low"
    if number <= MID_BAND_MAX:
        return "mid"
    return "high"
