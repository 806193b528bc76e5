"""SQLAlchemy models for knowledge trees and student progress."""

from .student import Student
from .student_score import StudentScore
from .student_work import StudentNodeSubmission, StudentNodeWork
from .tree import KnowledgeNode, LearningTree

__all__ = [
    "LearningTree",
    "KnowledgeNode",
    "Student",
    "StudentScore",
    "StudentNodeWork",
    "StudentNodeSubmission",
]
