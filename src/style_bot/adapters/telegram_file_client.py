"""Telegram file download client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from style_bot.domain.models import DownloadedFile


class TelegramFileClient(Protocol):
    """Interface for downloading Telegram files."""

    async def download_file(self, file_id: str) -> DownloadedFile:
        """Download a Telegram file and return its bytes."""


@dataclass
class HttpxTelegramFileClient(TelegramFileClient):
    """Telegram file client using httpx."""

    bot_token: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, bot_token: str) -> "HttpxTelegramFileClient":
        """Create a Telegram file client with a managed httpx session."""
        return cls(bot_token=bot_token, http_client=httpx.AsyncClient())

    async def download_file(self, file_id: str) -> DownloadedFile:
        """Download Telegram file bytes via getFile."""
        get_file_url = f"https://api.telegram.org/bot{self.bot_token}/getFile"
        response = await self.http_client.get(
            get_file_url, params={"file_id": file_id}, timeout=10
        )
        response.raise_for_status()
        payload = response.json()
        if not payload.get("ok"):
            description = payload.get("description") or "no description"
            raise RuntimeError(f"Telegram getFile failed: {description}")
        file_path = payload["result"]["file_path"]
        download_url = f"https://api.telegram.org/file/bot{self.bot_token}/{file_path}"
        file_response = await self.http_client.get(download_url, timeout=30)
        file_response.raise_for_status()
        return DownloadedFile(
            content=file_response.content,
            content_type=file_response.headers.get("content-type"),
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
