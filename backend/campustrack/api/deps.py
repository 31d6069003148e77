from collections.abc import Callable, Generator

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from campustrack.core.exceptions import UnauthorizedError
from campustrack.core.security import decode_token
from campustrack.db.session import SessionLocal
from campustrack.models.user import User, UserRole
from campustrack.services.access import ensure_role

security = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None:
        raise UnauthorizedError("Not authenticated", status_code=401)
    try:
        payload = decode_token(credentials.credentials)
    except JWTError as exc:
        raise UnauthorizedError("Could not validate credentials", status_code=401) from exc

    user_id = payload.get("sub")
    if user_id is None:
        raise UnauthorizedError("Could not validate credentials", status_code=401)

    user = db.get(User, user_id)
    if user is None or user.deleted_at is not None:
        raise UnauthorizedError("Could not validate credentials", status_code=401)
    if not user.is_active:
        raise UnauthorizedError("User account is inactive")
    return user


def require_roles(*roles: UserRole) -> Callable[[User], User]:
    def role_checker(current_user: User = Depends(get_current_user)) -> User:
        return ensure_role(current_user, *roles)

    return role_checker
