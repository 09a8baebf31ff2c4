from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from climate_seal.core.security import create_access_token, get_current_user, hash_password, verify_password
from climate_seal.database import get_db
from climate_seal.models import User
from climate_seal.schemas.auth import LoginRequest, LoginResponse, RegisterRequest, UserOut

router = APIRouter()


def _login_response(user: User) -> LoginResponse:
    out = UserOut(id=str(user.id), email=user.email, name=user.name or user.email)
    token = create_access_token(out.email, {"name": out.name, "uid": out.id})
    return LoginResponse(access_token=token, user=out)


@router.post("/register", response_model=LoginResponse)
async def register(payload: RegisterRequest, db: Session = Depends(get_db)) -> LoginResponse:
    email = payload.email.strip().lower()
    if not email or "@" not in email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A valid email is required")
    if len(payload.password) < 6:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Password must be at least 6 characters",
        )
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    user = User(email=email, name=payload.name.strip() or email, password_hash=hash_password(payload.password))
    db.add(user)
    db.commit()
    db.refresh(user)
    return _login_response(user)


@router.post("/login", response_model=LoginResponse)
async def login(payload: LoginRequest, db: Session = Depends(get_db)) -> LoginResponse:
    email = payload.email.strip().lower()
    user = db.query(User).filter(User.email == email).first()
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )
    return _login_response(user)


@router.post("/logout")
async def logout() -> dict:
    return {"success": True}


@router.get("/me", response_model=UserOut)
async def me(user: dict = Depends(get_current_user)) -> UserOut:
    return UserOut(**user)
