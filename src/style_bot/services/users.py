"""Bookkeeping of users the bot has already greeted."""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from style_bot.domain.models import SeenUserRecord

logger = logging.getLogger(__name__)


class SeenUserRepository(Protocol):
    """Persistence interface for seen users."""

    def list_user_ids(self) -> Iterable[str]:
        """Return ids of every user seen so far."""

    def add(self, record: SeenUserRecord) -> None:
        """Persist a newly seen user."""


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class UserService:
    """Distinguishes first-time users from returning ones."""

    repository: SeenUserRepository
    clock: Callable[[], datetime] = _utc_now
    _seen: set[str] = field(default_factory=set, init=False)

    def __post_init__(self) -> None:
        self._seen = {str(user_id) for user_id in self.repository.list_user_ids()}

    def is_first_time(self, user_id: object) -> bool:
        """Return true when the user has never been seen."""
        return str(user_id) not in self._seen

    def mark_seen(self, user_id: object) -> bool:
        """Record the user on first sight; return true if newly recorded."""
        key = str(user_id)
        if key in self._seen:
            return False
        self._seen.add(key)
        try:
            self.repository.add(SeenUserRecord(user_id=key, first_seen_at=self.clock()))
        except Exception:
            logger.exception("Failed to persist seen user", extra={"user_id": key})
        return True
