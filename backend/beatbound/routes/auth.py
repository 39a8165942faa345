from __future__ import annotations
from fastapi import APIRouter, Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from beatbound.auth_deps import get_current_user, subject_from_token
from beatbound.db import get_session
from beatbound.errors import Duplicate, Forbidden, Unauthenticated
from beatbound.models.user import User
from beatbound.schemas.auth import RegisterRequest, LoginRequest, UserPublic, TokenPair
from beatbound.security import hash_password, verify_password, make_access_token, make_refresh_token

router = APIRouter(prefix="/auth", tags=["auth"])

def _bearer(authorization: str | None, missing: str) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise Unauthenticated(missing)
    return authorization.split(" ", 1)[1]

@router.post("/register", status_code=201, response_model=UserPublic)
async def register(payload: RegisterRequest, session: AsyncSession = Depends(get_session)):
    email = payload.email.lower()
    username = payload.username.lower()
    if await session.scalar(select(User.id).where(User.email == email)):
        raise Duplicate("Email already registered")
    if await session.scalar(select(User.id).where(User.username == username)):
        raise Duplicate("Username already taken")
    user = User(
        email=email,
        username=username,
        display_name=payload.display_name,
        role=payload.role,
        password_hash=hash_password(payload.password),
    )
    session.add(user)
    # a concurrent registration with the same email/username fails the unique index -> 409 via the IntegrityError handler
    await session.commit()
    await session.refresh(user)
    return UserPublic.model_validate(user)

@router.post("/login", response_model=TokenPair)
async def login(payload: LoginRequest, session: AsyncSession = Depends(get_session)):
    user = await session.scalar(select(User).where(User.email == payload.email.lower()))
    if not user or not verify_password(payload.password, user.password_hash):
        raise Unauthenticated("Invalid credentials")
    if user.suspended:
        raise Forbidden("Your account has been suspended")
    return TokenPair(access=make_access_token(str(user.id)), refresh=make_refresh_token(str(user.id)))

@router.post("/refresh", response_model=TokenPair)
async def refresh(authorization: str | None = Header(None)):
    token = _bearer(authorization, "Missing refresh token")
    sub = str(subject_from_token(token, "refresh"))
    return TokenPair(access=make_access_token(sub), refresh=make_refresh_token(sub))

@router.get("/me", response_model=UserPublic)
async def me(user: User = Depends(get_current_user)):
    return UserPublic.model_validate(user)
