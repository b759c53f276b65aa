"""Chat transport interface used by the flow controller."""

from typing import Protocol


class TransportFetchError(Exception):
    """Raised when the user's image cannot be retrieved."""


class ChatChannel(Protocol):
    """Reply surface for a single chat conversation."""

    async def reply(self, text: str) -> None:
        """Send a text message."""

    async def reply_with_image(self, image_bytes: bytes, caption: str) -> None:
        """Send an image with a caption."""

    async def fetch_image_bytes(self, reference: str) -> tuple[bytes, str]:
        """Download an image and return its bytes and MIME type."""

    async def notify_processing(self) -> None:
        """Show that a long-running job has started."""
