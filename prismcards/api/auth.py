"""
Authentication dependencies.

Every protected endpoint derives the caller's identity from the bearer
token alone; owner fields in request bodies are never trusted.
"""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from prismcards.db.database import get_session
from prismcards.models.failure import NotAdminError, NotAuthenticatedError
from prismcards.services.identity import Identity, IdentityVerifier
from prismcards.services.system_config import SystemConfigStore

bearer_scheme = HTTPBearer(auto_error=False)


def get_identity_verifier() -> IdentityVerifier:
    """Dependency providing the identity-provider client."""
    return IdentityVerifier()


async def get_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    verifier: Annotated[IdentityVerifier, Depends(get_identity_verifier)],
) -> Identity:
    """Resolve the caller, or fail with 401."""
    if credentials is None or not credentials.credentials:
        raise NotAuthenticatedError("No token provided")

    identity = await verifier.verify(credentials.credentials)
    if identity is None:
        raise NotAuthenticatedError("Invalid token")
    return identity


async def require_admin(
    identity: Annotated[Identity, Depends(get_identity)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> Identity:
    """Resolve the caller and require an admin email, or fail with 403."""
    if not await SystemConfigStore(session).is_admin(identity.email):
        raise NotAdminError()
    return identity


CurrentIdentity = Annotated[Identity, Depends(get_identity)]
AdminIdentity = Annotated[Identity, Depends(require_admin)]
