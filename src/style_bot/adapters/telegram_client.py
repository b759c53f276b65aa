"""Telegram API client adapter."""

from dataclasses import dataclass
from typing import Protocol

import httpx


class TelegramClient(Protocol):
    """Interface for Telegram API interactions."""

    async def send_message(self, chat_id: int, text: str) -> None:
        """Send a text message to a Telegram chat."""

    async def send_photo(
        self, chat_id: int, photo: bytes, caption: str | None = None
    ) -> None:
        """Upload a photo to a Telegram chat."""

    async def send_chat_action(self, chat_id: int, action: str) -> None:
        """Show a chat action such as upload_photo."""

    async def set_my_commands(self, commands: list[dict[str, str]]) -> None:
        """Set the bot command list."""


@dataclass
class HttpxTelegramClient:
    """Telegram client implemented with httpx."""

    bot_token: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, bot_token: str) -> "HttpxTelegramClient":
        """Create a Telegram client with a managed httpx session."""
        return cls(bot_token=bot_token, http_client=httpx.AsyncClient())

    def _url(self, method: str) -> str:
        return f"https://api.telegram.org/bot{self.bot_token}/{method}"

    async def send_message(self, chat_id: int, text: str) -> None:
        """Send a message using Telegram's sendMessage API."""
        payload: dict[str, object] = {"chat_id": chat_id, "text": text}
        response = await self.http_client.post(
            self._url("sendMessage"), json=payload, timeout=10
        )
        response.raise_for_status()

    async def send_photo(
        self, chat_id: int, photo: bytes, caption: str | None = None
    ) -> None:
        """Upload a photo using Telegram's sendPhoto API."""
        data: dict[str, str] = {"chat_id": str(chat_id)}
        if caption is not None:
            data["caption"] = caption
        response = await self.http_client.post(
            self._url("sendPhoto"),
            data=data,
            files={"photo": ("result.png", photo, "image/png")},
            timeout=60,
        )
        response.raise_for_status()

    async def send_chat_action(self, chat_id: int, action: str) -> None:
        """Send a chat action using Telegram's sendChatAction API."""
        payload: dict[str, object] = {"chat_id": chat_id, "action": action}
        response = await self.http_client.post(
            self._url("sendChatAction"), json=payload, timeout=10
        )
        response.raise_for_status()

    async def set_my_commands(self, commands: list[dict[str, str]]) -> None:
        """Set the bot command list."""
        payload: dict[str, object] = {"commands": commands}
        response = await self.http_client.post(
            self._url("setMyCommands"), json=payload, timeout=10
        )
        response.raise_for_status()

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()
