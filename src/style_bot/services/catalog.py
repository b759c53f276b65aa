"""In-memory style catalog refreshed from a tabular source."""

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Protocol

from style_bot.domain.catalog import CatalogSnapshot, ProviderId, StyleEntry

logger = logging.getLogger(__name__)

_PROVIDER_MARKERS: dict[str, ProviderId] = {
    "openai": ProviderId.OPENAI,
    "gpt": ProviderId.OPENAI,
    "a": ProviderId.OPENAI,
    "gemini": ProviderId.GEMINI,
    "google": ProviderId.GEMINI,
    "b": ProviderId.GEMINI,
}


class SourceUnavailableError(Exception):
    """Raised when the catalog source cannot be read or parsed."""


class StyleRowSource(Protocol):
    """Interface for the tabular source backing the catalog."""

    async def fetch_rows(self) -> Sequence[tuple[str, str, str]]:
        """Return ordered (code, prompt, provider marker) rows."""


def normalize_code(value: object) -> str:
    """Normalize a user- or sheet-supplied style code."""
    if value is None:
        return ""
    return str(value).strip()


def parse_provider_marker(
    marker: object, default: ProviderId = ProviderId.OPENAI
) -> ProviderId | None:
    """Map a sheet provider marker to a provider id.

    An empty marker selects the default provider; an unknown one yields None.
    """
    cleaned = normalize_code(marker).lower()
    if not cleaned:
        return default
    return _PROVIDER_MARKERS.get(cleaned)


def build_snapshot(
    rows: Sequence[Sequence[object]],
    default_provider: ProviderId = ProviderId.OPENAI,
    built_at: datetime | None = None,
) -> CatalogSnapshot:
    """Build a snapshot from raw rows, dropping incomplete ones."""
    entries: dict[str, StyleEntry] = {}
    for row in rows:
        cells = list(row) + [None] * (3 - len(row))
        code = normalize_code(cells[0])
        prompt = normalize_code(cells[1])
        if not code or not prompt:
            continue
        provider_id = parse_provider_marker(cells[2], default_provider)
        if provider_id is None:
            logger.warning(
                "Skipping style with unknown provider marker",
                extra={"code": code, "marker": cells[2]},
            )
            continue
        entries[code] = StyleEntry(code=code, prompt=prompt, provider_id=provider_id)
    return CatalogSnapshot(entries=MappingProxyType(entries), built_at=built_at)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class StyleCatalog:
    """Style code lookups served from the latest refreshed snapshot."""

    source: StyleRowSource
    default_provider: ProviderId = ProviderId.OPENAI
    clock: Callable[[], datetime] = _utc_now
    _snapshot: CatalogSnapshot = field(
        default_factory=lambda: CatalogSnapshot(entries=MappingProxyType({})),
        init=False,
    )
    _inflight: asyncio.Task[CatalogSnapshot] | None = field(default=None, init=False)
    _auto_refresh: asyncio.Task[None] | None = field(default=None, init=False)

    @property
    def snapshot(self) -> CatalogSnapshot:
        return self._snapshot

    @property
    def size(self) -> int:
        return len(self._snapshot)

    @property
    def last_refresh_at(self) -> datetime | None:
        return self._snapshot.built_at

    async def refresh(self) -> CatalogSnapshot:
        """Reload the catalog, joining a refresh that is already running."""
        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._refresh_once())
        return await asyncio.shield(self._inflight)

    async def _refresh_once(self) -> CatalogSnapshot:
        try:
            try:
                rows = await self.source.fetch_rows()
                snapshot = build_snapshot(
                    rows, self.default_provider, built_at=self.clock()
                )
            except SourceUnavailableError:
                raise
            except Exception as exc:
                raise SourceUnavailableError(str(exc)) from exc
            self._snapshot = snapshot
            logger.info("Style catalog refreshed", extra={"styles": len(snapshot)})
            return snapshot
        finally:
            self._inflight = None

    async def ensure_warm(self) -> None:
        """Load the catalog if nothing has been loaded yet."""
        if self.size == 0:
            await self.refresh()

    def get_entry(self, code: object) -> StyleEntry | None:
        """Return the style entry for a code, if present."""
        return self._snapshot.get(normalize_code(code))

    def get_prompt(self, code: object) -> str | None:
        """Return the prompt text for a code, if present."""
        entry = self.get_entry(code)
        return entry.prompt if entry else None

    def get_provider(self, code: object) -> ProviderId | None:
        """Return the provider a code is routed to, if present."""
        entry = self.get_entry(code)
        return entry.provider_id if entry else None

    def start_auto_refresh(self, interval_seconds: float) -> asyncio.Task[None]:
        """Start refreshing in the background every interval."""
        if self._auto_refresh is None or self._auto_refresh.done():
            self._auto_refresh = asyncio.create_task(
                self._refresh_forever(interval_seconds)
            )
        return self._auto_refresh

    async def stop_auto_refresh(self) -> None:
        """Cancel the background refresh task."""
        task, self._auto_refresh = self._auto_refresh, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _refresh_forever(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                await self.refresh()
            except SourceUnavailableError:
                logger.warning("Scheduled catalog refresh failed", exc_info=True)
