"""
Identity verification.

Bearer tokens are checked by the external identity provider's account
lookup endpoint. The rest of the service only ever sees the resolved
(user_id, email) pair.
"""

import logging
from dataclasses import dataclass

import httpx

from prismcards.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Identity:
    """An authenticated caller."""

    user_id: str
    email: str


class IdentityVerifier:
    """
    Resolve bearer tokens through the identity provider.

    A token the provider rejects (4xx, or no matching account) yields None.
    Network failures and provider 5xx responses raise httpx.HTTPError.
    """

    def __init__(
        self,
        lookup_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.lookup_url = lookup_url or settings.identity_lookup_url
        self.api_key = api_key if api_key is not None else settings.identity_api_key
        self.timeout = timeout or settings.identity_timeout
        self._client = client

    async def verify(self, token: str) -> Identity | None:
        if self._client is not None:
            return await self._lookup(self._client, token)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await self._lookup(client, token)

    async def _lookup(self, client: httpx.AsyncClient, token: str) -> Identity | None:
        response = await client.post(
            self.lookup_url,
            params={"key": self.api_key},
            json={"idToken": token},
        )
        if response.is_client_error:
            logger.info("Identity provider rejected token (%d)", response.status_code)
            return None
        response.raise_for_status()

        users = response.json().get("users") or []
        if not users:
            return None

        account = users[0]
        user_id = account.get("localId")
        if not user_id:
            return None
        return Identity(user_id=user_id, email=(account.get("email") or "").lower())
