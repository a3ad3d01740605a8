# sweetshop/routers/deps.py
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Path, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from sweetshop.crud import user as user_crud
from sweetshop.database import get_db
from sweetshop.models.user import User

bearer = HTTPBearer(auto_error=False, description="Token opac primit la login/register")

_UNAUTHORIZED_HEADERS = {"WWW-Authenticate": "Bearer"}


def get_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> str:
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Login required",
            headers=_UNAUTHORIZED_HEADERS,
        )
    return credentials.credentials


def get_current_user(
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
) -> User:
    """Rezolvă token-ul prin tabelul de sesiuni; 401 dacă e necunoscut/revocat/expirat."""
    user = user_crud.resolve_session(db, token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers=_UNAUTHORIZED_HEADERS,
        )
    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return current_user


CurrentUser = Annotated[User, Depends(get_current_user)]
AdminUser = Annotated[User, Depends(require_admin)]
# id-urile sunt INTEGER pe 32 de biți
MAX_ID = 2_147_483_647
SweetId = Annotated[int, Path(gt=0, le=MAX_ID, description="ID-ul produsului (întreg pozitiv)")]

__all__ = ("bearer", "get_bearer_token", "get_current_user", "require_admin", "CurrentUser", "AdminUser", "SweetId")
