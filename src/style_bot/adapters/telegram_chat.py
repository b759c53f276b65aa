"""Chat channel bound to a single Telegram chat."""

import logging
from dataclasses import dataclass

from style_bot.adapters.telegram_client import TelegramClient
from style_bot.adapters.telegram_file_client import TelegramFileClient
from style_bot.services.chat import ChatChannel, TransportFetchError
from style_bot.services.images import resolve_mime_type

logger = logging.getLogger(__name__)


@dataclass
class TelegramChatChannel(ChatChannel):
    """Sends replies to and downloads photos from one Telegram chat."""

    telegram_client: TelegramClient
    file_client: TelegramFileClient
    chat_id: int

    async def reply(self, text: str) -> None:
        await self.telegram_client.send_message(chat_id=self.chat_id, text=text)

    async def reply_with_image(self, image_bytes: bytes, caption: str) -> None:
        await self.telegram_client.send_photo(
            chat_id=self.chat_id, photo=image_bytes, caption=caption
        )

    async def fetch_image_bytes(self, reference: str) -> tuple[bytes, str]:
        try:
            downloaded = await self.file_client.download_file(reference)
        except Exception as exc:
            raise TransportFetchError(
                f"Couldn't download the photo: {type(exc).__name__}: {exc}"
            ) from exc
        return downloaded.content, resolve_mime_type(
            downloaded.content, downloaded.content_type
        )

    async def notify_processing(self) -> None:
        try:
            await self.telegram_client.send_chat_action(
                chat_id=self.chat_id, action="upload_photo"
            )
        except Exception:
            logger.warning(
                "Failed to send chat action", extra={"chat_id": self.chat_id}
            )
