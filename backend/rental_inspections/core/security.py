"""Firebase JWT verification and actor resolution."""

from typing import Any, Optional

import firebase_admin
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth, credentials

from rental_inspections.core.config import get_settings
from rental_inspections.schemas.actor import Actor

security = HTTPBearer()


def _ensure_firebase_app() -> None:
    """Initialize the Firebase Admin SDK on first use."""
    if firebase_admin._apps:
        return
    settings = get_settings()
    options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None
    if settings.google_application_credentials:
        cred = credentials.Certificate(settings.google_application_credentials)
        firebase_admin.initialize_app(cred, options)
    else:
        firebase_admin.initialize_app(options=options)


class AuthenticatedUser:
    """Represents an authenticated user from Firebase JWT."""

    def __init__(
        self,
        uid: str,
        email: Optional[str] = None,
        email_verified: bool = False,
        claims: Optional[dict[str, Any]] = None,
    ):
        self.uid = uid
        self.email = email
        self.email_verified = email_verified
        self.claims = claims or {}

    @property
    def roles(self) -> frozenset[str]:
        raw = self.claims.get("roles") or self.claims.get("role") or []
        if isinstance(raw, str):
            raw = [raw]
        return frozenset(str(r).lower() for r in raw)

    def as_actor(self) -> Actor:
        return Actor(user_id=self.uid, roles=self.roles)


async def verify_firebase_token(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> AuthenticatedUser:
    """Verify Firebase JWT and return authenticated user.

    This dependency NEVER mints JWTs - it only verifies tokens issued by Firebase.
    """
    _ensure_firebase_app()
    token = credentials.credentials

    try:
        decoded_token = auth.verify_id_token(token)
    except auth.ExpiredIdTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except auth.InvalidIdTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Token verification failed: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return AuthenticatedUser(
        uid=decoded_token["uid"],
        email=decoded_token.get("email"),
        email_verified=decoded_token.get("email_verified", False),
        claims=decoded_token,
    )


async def get_current_user(
    auth_user: AuthenticatedUser = Depends(verify_firebase_token),
) -> AuthenticatedUser:
    """Current user. Overridden in tests."""
    return auth_user


async def get_current_actor(
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> Actor:
    """Translate the authenticated user into a workflow actor."""
    return current_user.as_actor()
