from collections.abc import Callable, Generator, Iterable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from app.core.security import Principal, Role, decode_token, principal_from_claims
from app.db.session import SessionLocal

security = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Principal:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception
    try:
        claims = decode_token(credentials.credentials)
    except JWTError as exc:
        raise credentials_exception from exc

    principal = principal_from_claims(claims)
    if principal is None:
        raise credentials_exception
    return principal


def require_roles(*roles: Role) -> Callable[[Principal], Principal]:
    allowed_roles: Iterable[Role] = set(roles)

    def role_checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not principal.has_any(set(allowed_roles)):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return principal

    return role_checker
