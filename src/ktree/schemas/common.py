"""Common Pydantic schemas."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ktree.services.aggregation import format_score, score_band


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: Dict[str, Any] = Field(
        ...,
        examples=[
            {
                "code": "NOT_FOUND",
                "message": "Node not found",
                "details": {},
            }
        ],
    )


class ScoreDisplay(BaseModel):
    """A score as shown to people: raw value, rendered text and band."""

    value: Optional[float] = None
    text: str = "-"
    band: Optional[str] = None

    @classmethod
    def of(cls, value: Optional[float]) -> "ScoreDisplay":
        return cls(value=value, text=format_score(value), band=score_band(value))


class OkResponse(BaseModel):
    """Acknowledgement for deletes."""

    ok: bool = True
