"""Domain models for the style catalog."""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ProviderId(Enum):
    """Image-generation backends a style can be routed to."""

    OPENAI = "openai"
    GEMINI = "gemini"


@dataclass(frozen=True)
class StyleEntry:
    """A single style recipe from the catalog sheet."""

    code: str
    prompt: str
    provider_id: ProviderId


@dataclass(frozen=True)
class CatalogSnapshot:
    """Immutable view of the catalog as of one successful refresh."""

    entries: Mapping[str, StyleEntry]
    built_at: datetime | None = None

    def get(self, code: str) -> StyleEntry | None:
        return self.entries.get(code)

    def __len__(self) -> int:
        return len(self.entries)
