from __future__ import annotations
import uuid
import jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from beatbound.db import get_session
from beatbound.errors import Forbidden, Unauthenticated
from beatbound.security import decode_token
from beatbound.models.user import User

security = HTTPBearer(auto_error=False)

def subject_from_token(token: str, expected_type: str) -> uuid.UUID:
    try:
        data = decode_token(token)
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Token has expired")
    except jwt.PyJWTError:
        raise Unauthenticated("Invalid token")
    if data.get("type") != expected_type:
        raise Unauthenticated("Wrong token type")
    try:
        return uuid.UUID(str(data.get("sub")))
    except ValueError:
        raise Unauthenticated("Invalid token")

async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    session: AsyncSession = Depends(get_session),
) -> User:
    if credentials is None:
        raise Unauthenticated("No token provided")
    user_id = subject_from_token(credentials.credentials, "access")
    user = await session.get(User, user_id)
    if not user:
        raise Unauthenticated("User not found")
    if user.suspended:
        raise Forbidden("Your account has been suspended")
    return user
