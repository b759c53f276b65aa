"""JSON file-backed seen user repository."""

import json
import logging
from dataclasses import dataclass, field
from datetime import UTC
from pathlib import Path

from style_bot.domain.models import SeenUserRecord
from style_bot.services.users import SeenUserRepository

logger = logging.getLogger(__name__)


@dataclass
class JsonFileSeenUserRepository(SeenUserRepository):
    """Stores seen users in a single JSON document on disk."""

    path: Path
    _document: dict[str, dict] = field(default_factory=dict, init=False)

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        self._document = self._load()

    def _load(self) -> dict[str, dict]:
        if not self.path.exists():
            return {"users": {}}
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable seen users file", exc_info=True)
            return {"users": {}}
        if not isinstance(document, dict):
            return {"users": {}}
        if not isinstance(document.get("users"), dict):
            document["users"] = {}
        return document

    def list_user_ids(self) -> list[str]:
        """Return ids of every user in the file."""
        return list(self._document["users"])

    def add(self, record: SeenUserRecord) -> None:
        """Add the user and rewrite the file."""
        users = self._document["users"]
        if record.user_id in users:
            return
        first_seen_ms = int(record.first_seen_at.astimezone(UTC).timestamp() * 1000)
        users[record.user_id] = {"firstSeenAt": first_seen_ms}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(self._document, indent=2, ensure_ascii=False), encoding="utf-8"
        )
