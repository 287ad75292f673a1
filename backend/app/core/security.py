from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum

from jose import jwt

from app.core.config import get_settings


class Role(str, Enum):
    admin = "ADMIN"
    teacher = "TEACHER"
    student = "STUDENT"


@dataclass(frozen=True)
class Principal:
    """The caller identified by a bearer token issued by the campus auth service."""

    id: str
    roles: frozenset[Role] = field(default_factory=frozenset)

    def has_any(self, roles: set[Role]) -> bool:
        return bool(self.roles & roles)


def create_access_token(
    subject: str,
    roles: list[Role] | tuple[Role, ...] = (),
    expires_delta: timedelta | None = None,
) -> str:
    settings = get_settings()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=60))
    claims = {
        "sub": subject,
        "roles": [role.value for role in roles],
        "type": "access",
        "exp": expire,
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    settings = get_settings()
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])


def principal_from_claims(claims: dict) -> Principal | None:
    subject = claims.get("sub")
    if not subject:
        return None
    if claims.get("type", "access") != "access":
        return None
    raw_roles = claims.get("roles") or []
    if isinstance(raw_roles, str):
        raw_roles = [raw_roles]
    known = {role.value for role in Role}
    roles = frozenset(Role(str(item).upper()) for item in raw_roles if str(item).upper() in known)
    return Principal(id=str(subject), roles=roles)
