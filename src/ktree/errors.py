"""Domain error taxonomy.

Services raise these; ``ktree.server`` renders them into the standard
``{"error": {"code", "message", "details"}}`` envelope.
"""

from typing import Any, Dict, Optional


class KnowledgeTreeError(Exception):
    """Base class for errors reported to API callers."""

    code = "ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


class ValidationError(KnowledgeTreeError):
    """Malformed or semantically illegal input."""

    code = "VALIDATION_ERROR"
    status_code = 400


class InvariantViolation(KnowledgeTreeError):
    """A structural or lifecycle invariant would be broken by the request."""

    code = "INVARIANT_VIOLATION"
    status_code = 409

    def __init__(
        self,
        reason: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, {"reason": reason, **(details or {})})
        self.reason = reason


class NotFound(KnowledgeTreeError):
    """A referenced tree, node, student or submission does not exist."""

    code = "NOT_FOUND"
    status_code = 404


class StoreCorruption(KnowledgeTreeError):
    """Persisted rows break the single-root or linkage invariants."""

    code = "STORE_CORRUPTION"
    status_code = 500


class ConflictError(KnowledgeTreeError):
    """A concurrent write hit a uniqueness constraint; retry with fresh data."""

    code = "CONFLICT"
    status_code = 409


class BlobStorageError(KnowledgeTreeError):
    """The external image store rejected or failed an upload."""

    code = "BLOB_STORAGE_ERROR"
    status_code = 502
