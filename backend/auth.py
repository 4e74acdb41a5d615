# auth.py — Identity-provider token verification for the Gear Tracker API
# Features:
# - Bearer ID tokens verified with python-jose (shared secret or PEM public key)
# - Optional audience / issuer checks
# - User row created on first verified request
# - Role-based authorization dependency

import os
import logging
from typing import Optional, Dict, Any

from jose import jwt, JWTError, ExpiredSignatureError
from fastapi import HTTPException, Depends, Request
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db_session
from models import User, UserRole

logger = logging.getLogger("gear-tracker.auth")

# ============================================================
# CONFIGURATION
# ============================================================

SECRET_KEY = os.getenv("AUTH_JWT_SECRET", "").replace("\\n", "\n")
ALGORITHM = os.getenv("AUTH_JWT_ALGORITHM", "HS256")
AUDIENCE = os.getenv("AUTH_JWT_AUDIENCE") or None
ISSUER = os.getenv("AUTH_JWT_ISSUER") or None

if not SECRET_KEY:
    logger.warning(
        "⚠️  AUTH_JWT_SECRET not set. Every authenticated request will be rejected."
    )


# ============================================================
# PYDANTIC SCHEMAS
# ============================================================

class CurrentUser(BaseModel):
    id: str
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    role: str


# ============================================================
# TOKEN VERIFICATION
# ============================================================

class TokenVerifier:
    """Verifies ID tokens issued by the external identity provider"""

    @staticmethod
    def verify_token(token: str) -> Dict[str, Any]:
        if not SECRET_KEY:
            raise HTTPException(status_code=403, detail="Invalid or expired authentication token")
        options = {"verify_aud": AUDIENCE is not None}
        try:
            return jwt.decode(
                token, SECRET_KEY, algorithms=[ALGORITHM],
                audience=AUDIENCE, issuer=ISSUER, options=options,
            )
        except ExpiredSignatureError:
            raise HTTPException(status_code=403, detail="Invalid or expired authentication token")
        except JWTError as e:
            logger.error(f"Error verifying authentication token: {e}")
            raise HTTPException(status_code=403, detail="Invalid or expired authentication token")

    @staticmethod
    def bearer_token(request: Request) -> str:
        header = request.headers.get("Authorization")
        if not header:
            raise HTTPException(status_code=401, detail="No authentication token provided")
        if not header.startswith("Bearer "):
            raise HTTPException(status_code=401, detail="Invalid token format")
        return header[len("Bearer "):].strip()

    @staticmethod
    async def get_or_create_user(claims: Dict[str, Any], db: AsyncSession) -> User:
        uid = claims.get("sub") or claims.get("uid")
        if not uid:
            raise HTTPException(status_code=403, detail="Invalid or expired authentication token")

        result = await db.execute(select(User).where(User.id == uid))
        user = result.scalar_one_or_none()
        if user:
            return user

        email = claims.get("email")
        if not email:
            raise HTTPException(status_code=403, detail="Token is missing an email claim")

        try:
            role = UserRole(claims.get("role") or UserRole.USER.value)
        except ValueError:
            role = UserRole.USER

        user = User(
            id=uid,
            email=email,
            display_name=claims.get("name") or email.split("@")[0],
            photo_url=claims.get("picture"),
            role=role,
        )
        db.add(user)
        try:
            await db.commit()
        except IntegrityError:
            # Concurrent first request for the same uid, or the email is taken
            await db.rollback()
            result = await db.execute(select(User).where(User.id == uid))
            user = result.scalar_one_or_none()
            if user is None:
                raise HTTPException(status_code=409, detail="Email already registered to another account")
            return user
        await db.refresh(user)
        logger.info(f"Registered user {uid} on first sign-in")
        return user


# ============================================================
# FASTAPI DEPENDENCIES
# ============================================================

async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> CurrentUser:
    token = TokenVerifier.bearer_token(request)
    claims = TokenVerifier.verify_token(token)
    user = await TokenVerifier.get_or_create_user(claims, db)

    # The role claim on the token wins over the stored role
    role = claims.get("role") or (user.role.value if isinstance(user.role, UserRole) else user.role)

    return CurrentUser(
        id=user.id,
        email=user.email,
        display_name=user.display_name,
        photo_url=user.photo_url,
        role=role,
    )


def require_role(*roles: UserRole):
    """Dependency factory: require user to have one of the specified roles"""
    allowed = {r.value for r in roles}

    async def _check(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in allowed:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user
    return _check
