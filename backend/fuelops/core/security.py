"""Security and authentication utilities.

Sign-in happens against the hosted identity provider used by the mobile
app; this API never sees passwords.  Each request carries the provider's
access token as a Bearer credential.  The token is an HS256 JWT signed with
the project's shared secret (`AUTH_JWT_SECRET`) whose `sub` claim is the
user id and whose `aud` is `authenticated` by default.

The role and approval state live in our own `user_profiles` table, keyed
by that `sub`.  `get_token_claims` only verifies the token, which is all
profile registration needs; `get_current_user` also resolves the profile.

Set `DEV_AUTH_BYPASS=true` for local work without tokens: every request
then runs as an approved admin profile.
"""

from __future__ import annotations

import logging
from typing import Optional, Dict

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from fuelops.core.database import get_db
from fuelops.core.config import settings
from fuelops.models.enums import UserRole
from fuelops.models.tables import UserProfile

logger = logging.getLogger(__name__)

auth_scheme = HTTPBearer(auto_error=False)

DEV_USER_ID = "dev-user"
DEV_USER_EMAIL = "dev@example.com"


def decode_access_token(token: str) -> Dict:
    """Decode and verify an access token.

    The signature is checked against `AUTH_JWT_SECRET`.  If
    `AUTH_JWT_AUDIENCE` and/or `AUTH_JWT_ISSUER` are set, the corresponding
    claims are validated.  Otherwise, audience verification is disabled.

    Returns:
        The decoded JWT payload as a dictionary.

    Raises:
        HTTPException: If the token is malformed or invalid.
    """
    if not settings.AUTH_JWT_SECRET:
        raise HTTPException(status_code=500, detail="Token verification secret not configured")
    decode_kwargs: Dict = {
        "algorithms": list(settings.AUTH_JWT_ALGORITHMS),
        "options": {},
    }
    if settings.AUTH_JWT_AUDIENCE:
        decode_kwargs["audience"] = settings.AUTH_JWT_AUDIENCE
    else:
        decode_kwargs["options"]["verify_aud"] = False
    if settings.AUTH_JWT_ISSUER:
        decode_kwargs["issuer"] = settings.AUTH_JWT_ISSUER
    try:
        return jwt.decode(token, settings.AUTH_JWT_SECRET, **decode_kwargs)
    except JWTError as exc:
        logger.info("Rejected access token: %s", exc)
        raise HTTPException(status_code=401, detail=f"Invalid token: {exc}") from exc


async def get_token_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
) -> Dict:
    """Return the verified claims of the caller's token.

    In development mode (`DEV_AUTH_BYPASS`) fixed claims for the dev user
    are returned without looking at the header.
    """
    if settings.DEV_AUTH_BYPASS:
        return {"sub": DEV_USER_ID, "email": DEV_USER_EMAIL}
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")
    payload = decode_access_token(credentials.credentials)
    if not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid token: no sub claim")
    return payload


async def get_current_user(
    claims: Dict = Depends(get_token_claims),
    db: AsyncSession = Depends(get_db),
) -> UserProfile:
    """Resolve the profile of the authenticated caller.

    Approval is not checked here; role gates in
    `fuelops.api.dependencies` do that so `/auth/me` keeps working for
    users who are still waiting.
    """
    user_id = claims["sub"]
    profile = await db.get(UserProfile, user_id)

    if profile is None and settings.DEV_AUTH_BYPASS:
        profile = UserProfile(
            id=DEV_USER_ID,
            email=DEV_USER_EMAIL,
            full_name="Dev User",
            role=UserRole.ADMIN.value,
            approved=True,
        )
        db.add(profile)
        await db.commit()
        await db.refresh(profile)
        return profile

    if profile is None:
        # Lookup is by sub only; a matching email never grants another profile
        logger.info("No profile for sub %s", user_id)
        raise HTTPException(status_code=403, detail="Profile not registered")
    return profile
