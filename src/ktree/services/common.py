"""Store helpers shared by the service layer."""

from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ktree.errors import ConflictError, ValidationError


class _Unset:
    """Marker for an argument the caller did not pass (distinct from None)."""

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


def dialect_insert(db: AsyncSession, model: Any) -> Any:
    """INSERT construct supporting ``on_conflict_do_update`` for the bound backend."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise RuntimeError(f"Upserts are not supported on {dialect}")
    return insert(model)


async def commit_or_conflict(db: AsyncSession, message: str) -> None:
    """Commit, reporting a uniqueness race as a retryable conflict."""
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError(message, {"constraint": str(exc.orig)}) from exc


def clean_text(value: Any) -> Any:
    """Whitespace-only text counts as no text; UNSET passes through."""
    if value is UNSET or value is None:
        return value
    return value if value.strip() else None


def required_text(value: str, field: str) -> str:
    """Trimmed value of a mandatory text field; blank input is rejected."""
    stripped = (value or "").strip()
    if not stripped:
        raise ValidationError(f"{field} must not be blank", {"field": field})
    return stripped
