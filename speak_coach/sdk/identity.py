"""
Bearer token to user id resolution.

Authentication itself is delegated to Supabase; this module only asks
the auth service who a token belongs to.
"""

import logging
from typing import Any, Optional, Protocol

import httpx

from speak_coach.errors import AuthenticationError, IdentityServiceError

logger = logging.getLogger(__name__)


class IdentityResolver(Protocol):
    async def resolve(self, token: Optional[str]) -> str: ...


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class SupabaseIdentityResolver:
    """Resolves tokens against the Supabase auth ``/user`` endpoint."""

    def __init__(
        self,
        url: str,
        anon_key: str,
        timeout_s: float = 10.0,
        transport: Optional[Any] = None,
    ):
        if not url or not anon_key:
            raise ValueError("url and anon_key are required")
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.timeout_s = timeout_s
        self._transport = transport

    async def resolve(self, token: Optional[str]) -> str:
        """Return the user id the token belongs to.

        Raises:
            AuthenticationError: Token missing, invalid or expired
            IdentityServiceError: Auth service unreachable or misbehaving
        """
        if not token:
            raise AuthenticationError("Missing bearer token")

        async with httpx.AsyncClient(
            base_url=self.url,
            timeout=self.timeout_s,
            transport=self._transport,
        ) as client:
            try:
                response = await client.get(
                    "/auth/v1/user",
                    headers={"apikey": self.anon_key, "Authorization": f"Bearer {token}"},
                )
            except httpx.HTTPError as e:
                raise IdentityServiceError(f"Identity service request failed: {e}") from e

        if response.status_code in (401, 403):
            raise AuthenticationError("Invalid or expired token")
        if response.status_code >= 400:
            raise IdentityServiceError(f"Identity service returned {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise IdentityServiceError("Identity service returned invalid JSON") from e
        user_id = data.get("id") if isinstance(data, dict) else None
        if not user_id:
            raise AuthenticationError("Token is not bound to a user")
        return user_id
