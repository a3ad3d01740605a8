# sweetshop/routers/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from sweetshop.crud import user as crud
from sweetshop.database import get_db
from sweetshop.models.user import User
from sweetshop.routers.deps import CurrentUser, get_bearer_token
from sweetshop.schemas.sweet import MessageResponse
from sweetshop.schemas.user import AuthResponse, UserLogin, UserRead, UserRegister

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_response(db: Session, user: User, message: str) -> AuthResponse:
    token, sess = crud.open_session(db, user)
    return AuthResponse(
        message=message,
        token=token,
        expires_at=sess.expires_at,
        user=UserRead.model_validate(user),
    )


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
def register(payload: UserRegister, db: Session = Depends(get_db)):
    try:
        user = crud.register(db, payload)
    except crud.DuplicateUserError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return _auth_response(db, user, "User registered successfully")


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Log in and obtain a session token",
)
def login(payload: UserLogin, db: Session = Depends(get_db)):
    try:
        user = crud.authenticate(db, payload.username, payload.password)
    except crud.InvalidCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _auth_response(db, user, "Login successful")


@router.get("/me", response_model=UserRead, summary="Current user")
def me(current_user: CurrentUser):
    return current_user


@router.post("/logout", response_model=MessageResponse, summary="Revoke the presented token")
def logout(
    _user: CurrentUser,
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
):
    crud.revoke_session(db, token)
    return MessageResponse(message="Logged out")
