"""Service-account access tokens for Google APIs."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from style_bot.services.catalog import SourceUnavailableError

SHEETS_READONLY_SCOPE = "https://www.googleapis.com/auth/spreadsheets.readonly"


class AccessTokenProvider(Protocol):
    """Supplies OAuth bearer tokens."""

    async def access_token(self) -> str:
        """Return a currently valid access token."""


@dataclass
class ServiceAccountTokenProvider(AccessTokenProvider):
    """Bearer tokens from google-auth service-account credentials."""

    credentials: Any
    request_factory: Callable[[], Any] = Request

    @classmethod
    def from_file(
        cls, path: str, scopes: tuple[str, ...] = (SHEETS_READONLY_SCOPE,)
    ) -> "ServiceAccountTokenProvider":
        """Load a service-account key file."""
        credentials = service_account.Credentials.from_service_account_file(
            path, scopes=list(scopes)
        )
        return cls(credentials=credentials)

    async def access_token(self) -> str:
        """Refresh the token when it is missing or expired."""
        if not self.credentials.valid:
            # google-auth refreshes over blocking I/O.
            try:
                await asyncio.to_thread(
                    self.credentials.refresh, self.request_factory()
                )
            except GoogleAuthError as exc:
                raise SourceUnavailableError(
                    f"Service account token refresh failed: {exc}"
                ) from exc
        return self.credentials.token
