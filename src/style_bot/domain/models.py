"""Domain models for bot users and chat media."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class SeenUserRecord:
    """Marks the first time a chat user talked to the bot."""

    user_id: str
    first_seen_at: datetime


@dataclass(frozen=True)
class DownloadedFile:
    """Raw file bytes fetched from the chat transport."""

    content: bytes
    content_type: str | None = None
