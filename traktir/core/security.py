"""
Identity Resolution

Tokens are issued by the external identity provider; this module only
verifies them and keeps a profile row (display name, email) per subject.

A request without an ``Authorization`` header is anonymous. A request
with a bad or expired token is rejected.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import jwt
from jwt.exceptions import PyJWTError
from fastapi import Depends, Header
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from traktir.core.config import get_settings
from traktir.core.exceptions import AuthenticationRequired
from traktir.database import get_db
from traktir.models import User

logger = logging.getLogger(__name__)


@dataclass
class CurrentUser:
    """Identity resolved for the current request."""
    id: str
    name: Optional[str] = None
    email: Optional[str] = None


def decode_token(token: str) -> Dict[str, Any]:
    """
    Verify a bearer token and return its claims.

    Raises:
        AuthenticationRequired: invalid signature, expired, wrong audience or
            issuer, missing subject, or no verification key configured
    """
    settings = get_settings()
    if not settings.auth_jwt_secret:
        logger.error("AUTH_JWT_SECRET is not configured; rejecting token")
        raise AuthenticationRequired("Authentication is not configured")

    options = {"require": ["sub"]}
    if not settings.auth_jwt_audience:
        options["verify_aud"] = False

    try:
        claims = jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[settings.auth_jwt_algorithm],
            audience=settings.auth_jwt_audience or None,
            issuer=settings.auth_jwt_issuer or None,
            options=options,
        )
    except PyJWTError as e:
        logger.info(f"Rejected bearer token: {e}")
        raise AuthenticationRequired("Invalid or expired token")

    return claims


async def _sync_profile(db: AsyncSession, claims: Dict[str, Any]) -> CurrentUser:
    user_id = str(claims["sub"])
    name = claims.get("name")
    email = claims.get("email")

    user = await db.get(User, user_id)
    if user is None:
        db.add(User(id=user_id, name=name, email=email))
        try:
            await db.commit()
            logger.info(f"New user profile: {user_id}")
        except IntegrityError:
            # Created by a concurrent request
            await db.rollback()
        return CurrentUser(id=user_id, name=name, email=email)

    if (name and user.name != name) or (email and user.email != email):
        user.name = name or user.name
        user.email = email or user.email
        await db.commit()

    return CurrentUser(id=user_id, name=user.name, email=user.email)


async def get_optional_user(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> Optional[CurrentUser]:
    """
    FastAPI dependency: the caller's identity, or None when anonymous.
    """
    if not authorization:
        return None

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise AuthenticationRequired("Authorization header must be 'Bearer <token>'")

    claims = decode_token(token.strip())
    return await _sync_profile(db, claims)
