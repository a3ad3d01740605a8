# sweetshop/crud/user.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sweetshop.core.security import hash_password, hash_token, new_session_token, verify_password
from sweetshop.core.settings import settings
from sweetshop.models.user import AuthSession, User
from sweetshop.schemas.user import UserRegister

logger = logging.getLogger("sweetshop.crud.user")


class DuplicateUserError(Exception):
    """Ridicată când username-ul sau email-ul (case-insensitive) există deja."""
    pass


class InvalidCredentialsError(Exception):
    """Username inexistent sau parolă greșită (nu distingem în mesaj)."""
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(dt: datetime) -> datetime:
    # SQLite întoarce datetime naive; le tratăm ca UTC
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


# -------------------------- Reads --------------------------

def get(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)


def get_by_username(db: Session, username: str) -> Optional[User]:
    if not username:
        return None
    return db.execute(select(User).where(User.username == username)).scalar_one_or_none()


def find_conflict(db: Session, username: str, email: str) -> Optional[User]:
    """Un user existent cu același username sau același email (case-insensitive)."""
    stmt = select(User).where(
        or_(User.username == username, func.lower(User.email) == email.lower())
    )
    return db.execute(stmt).scalars().first()


# -------------------------- Mutations --------------------------

def create_user(
    db: Session,
    *,
    username: str,
    email: str,
    password: str,
    is_admin: bool = False,
) -> User:
    email = email.strip().lower()
    if find_conflict(db, username, email):
        raise DuplicateUserError("Username or email already exists")

    obj = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        is_admin=is_admin,
    )
    db.add(obj)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        # cursă între verificare și insert: UNIQUE din DB are ultimul cuvânt
        raise DuplicateUserError("Username or email already exists") from e
    db.refresh(obj)
    return obj


def register(db: Session, data: UserRegister) -> User:
    user = create_user(db, username=data.username, email=data.email, password=data.password)
    logger.info("Registered user id=%s username=%r", user.id, user.username)
    return user


def authenticate(db: Session, username: str, password: str) -> User:
    user = get_by_username(db, username.strip())
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Login failed for username=%r", username)
        raise InvalidCredentialsError("Invalid username or password")
    return user


def ensure_admin(db: Session, *, username: str, email: str, password: str) -> Tuple[User, bool]:
    """Creează contul de admin dacă lipsește. Returnează (user, created)."""
    existing = get_by_username(db, username)
    if existing is not None:
        return existing, False
    return create_user(db, username=username, email=email, password=password, is_admin=True), True


# -------------------------- Sessions --------------------------

def open_session(db: Session, user: User, *, ttl: Optional[timedelta] = None) -> Tuple[str, AuthSession]:
    """
    Emite un token opac nou pentru user. În DB rămâne doar hash-ul lui.
    Returnează (token_in_clar, sesiune).
    """
    ttl = ttl or timedelta(minutes=settings.SESSION_TTL_MINUTES)
    token = new_session_token()
    sess = AuthSession(
        token_hash=hash_token(token),
        user_id=user.id,
        expires_at=_utcnow() + ttl,
    )
    db.add(sess)
    db.commit()
    db.refresh(sess)
    return token, sess


def _active_session(db: Session, token: str) -> Optional[AuthSession]:
    if not token:
        return None
    sess = db.execute(
        select(AuthSession).where(AuthSession.token_hash == hash_token(token))
    ).scalar_one_or_none()
    if sess is None or sess.revoked_at is not None:
        return None
    if _as_utc(sess.expires_at) <= _utcnow():
        return None
    return sess


def resolve_session(db: Session, token: str) -> Optional[User]:
    """User-ul din spatele unui token valid (nerevocat, neexpirat), altfel None."""
    sess = _active_session(db, token)
    return sess.user if sess is not None else None


def revoke_session(db: Session, token: str) -> bool:
    sess = _active_session(db, token)
    if sess is None:
        return False
    sess.revoked_at = _utcnow()
    db.commit()
    return True


def delete_expired_sessions(db: Session) -> int:
    """Șterge sesiunile expirate într-un singur DELETE. Returnează câte rânduri au plecat."""
    res = db.execute(
        delete(AuthSession)
        .where(AuthSession.expires_at <= _utcnow())
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return res.rowcount
