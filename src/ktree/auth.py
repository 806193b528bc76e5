"""JWT authentication and role checks."""

from dataclasses import dataclass

import jwt
from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ktree.config import get_settings

security = HTTPBearer()

ROLE_INSTRUCTOR = "instructor"
ROLE_STUDENT = "student"
ROLES = {ROLE_INSTRUCTOR, ROLE_STUDENT}


@dataclass(frozen=True)
class Identity:
    """Authenticated caller."""

    user_id: int
    role: str


def _identity(user_id, role) -> Identity:
    try:
        parsed = int(str(user_id))
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user ID format",
        )
    if role not in ROLES:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: unknown role",
        )
    return Identity(user_id=parsed, role=role)


async def get_current_identity(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Security(security),
) -> Identity:
    """Extract and validate the caller from the JWT."""
    settings = get_settings()

    # Prefer identity from middleware if available
    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return _identity(user_id, getattr(request.state, "role", None))

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.jwt_public_key or "secret",
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
        )
    except jwt.InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
        )

    if not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing user ID",
        )
    return _identity(payload["sub"], payload.get("role"))


async def require_instructor(
    identity: Identity = Depends(get_current_identity),
) -> int:
    """Instructor ID of the caller; 403 for anyone else."""
    if identity.role != ROLE_INSTRUCTOR:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Instructor access required"
        )
    return identity.user_id


async def require_student(
    identity: Identity = Depends(get_current_identity),
) -> int:
    """Student ID of the caller; 403 for anyone else."""
    if identity.role != ROLE_STUDENT:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Student access required"
        )
    return identity.user_id
