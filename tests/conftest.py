"""Shared test fixtures."""

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from style_bot.adapters.telegram_client import TelegramClient
from style_bot.config import Settings
from style_bot.containers import AppContainer
from style_bot.domain.catalog import ProviderId
from style_bot.domain.models import DownloadedFile, SeenUserRecord
from style_bot.services.catalog import StyleCatalog, StyleRowSource
from style_bot.services.chat import ChatChannel
from style_bot.services.flow import FlowController
from style_bot.services.providers import ImageEditor, ProviderGateway
from style_bot.services.sessions import StyleSessionStore
from style_bot.services.users import SeenUserRepository, UserService

DEFAULT_ROWS: list[tuple[str, str, str]] = [
    ("101", "Make it look like a glossy magazine shot", ""),
    ("202", "Watercolor painting of the dish", "gemini"),
]


@dataclass
class FakeClock:
    """Controllable clock for expiry tests."""

    now: datetime = field(default_factory=lambda: datetime(2024, 1, 1, tzinfo=UTC))

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@dataclass
class FakeRowSource(StyleRowSource):
    """Row source returning configurable rows and counting fetches."""

    rows: list[tuple[str, str, str]] = field(
        default_factory=lambda: list(DEFAULT_ROWS)
    )
    error: Exception | None = None
    gate: asyncio.Event | None = None
    calls: int = 0

    async def fetch_rows(self) -> list[tuple[str, str, str]]:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.rows)


@dataclass
class InMemorySeenUserRepository(SeenUserRepository):
    """In-memory seen user repository for tests."""

    records: dict[str, SeenUserRecord] = field(default_factory=dict)
    fail_writes: bool = False

    def list_user_ids(self) -> Iterable[str]:
        return list(self.records)

    def add(self, record: SeenUserRecord) -> None:
        if self.fail_writes:
            raise OSError("disk full")
        self.records.setdefault(record.user_id, record)


@dataclass
class FakeImageEditor(ImageEditor):
    """Image editor recording calls and returning fixed bytes."""

    result: bytes = b"edited-image"
    error: Exception | None = None
    gate: asyncio.Event | None = None
    calls: list[tuple[bytes, str, str]] = field(default_factory=list)

    async def edit(self, image_bytes: bytes, mime_type: str, prompt: str) -> bytes:
        self.calls.append((image_bytes, mime_type, prompt))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.result


@dataclass
class FakeChatChannel(ChatChannel):
    """Chat channel recording replies."""

    image: tuple[bytes, str] = (b"\xff\xd8\xff-photo", "image/jpeg")
    fetch_error: Exception | None = None
    texts: list[str] = field(default_factory=list)
    images: list[tuple[bytes, str]] = field(default_factory=list)
    fetched: list[str] = field(default_factory=list)
    processing_notices: int = 0

    async def reply(self, text: str) -> None:
        self.texts.append(text)

    async def reply_with_image(self, image_bytes: bytes, caption: str) -> None:
        self.images.append((image_bytes, caption))

    async def fetch_image_bytes(self, reference: str) -> tuple[bytes, str]:
        self.fetched.append(reference)
        if self.fetch_error is not None:
            raise self.fetch_error
        return self.image

    async def notify_processing(self) -> None:
        self.processing_notices += 1


@dataclass
class FakeTelegramClient(TelegramClient):
    """Fake Telegram client that records messages."""

    messages: list[tuple[int, str]] = field(default_factory=list)
    photos: list[tuple[int, bytes, str | None]] = field(default_factory=list)
    actions: list[tuple[int, str]] = field(default_factory=list)
    commands: list[dict[str, str]] | None = None

    async def send_message(self, chat_id: int, text: str) -> None:
        self.messages.append((chat_id, text))

    async def send_photo(
        self, chat_id: int, photo: bytes, caption: str | None = None
    ) -> None:
        self.photos.append((chat_id, photo, caption))

    async def send_chat_action(self, chat_id: int, action: str) -> None:
        self.actions.append((chat_id, action))

    async def set_my_commands(self, commands: list[dict[str, str]]) -> None:
        self.commands = commands


@dataclass
class FakeTelegramFileClient:
    """Fake Telegram file client that returns static bytes."""

    content: bytes = b"\x89PNG\r\n\x1a\nfake-image-bytes"
    content_type: str | None = "application/octet-stream"
    requested: list[str] = field(default_factory=list)

    async def download_file(self, file_id: str) -> DownloadedFile:
        self.requested.append(file_id)
        return DownloadedFile(content=self.content, content_type=self.content_type)


@dataclass
class FlowHarness:
    """Flow controller wired to fakes."""

    flow: FlowController
    source: FakeRowSource
    clock: FakeClock
    seen_users: InMemorySeenUserRepository
    openai_editor: FakeImageEditor
    gemini_editor: FakeImageEditor

    @property
    def catalog(self) -> StyleCatalog:
        return self.flow.catalog

    @property
    def sessions(self) -> StyleSessionStore:
        return self.flow.sessions


def build_flow(
    rows: list[tuple[str, str, str]] | None = None, warm: bool = True
) -> FlowHarness:
    """Create a flow controller with in-memory collaborators."""
    source = FakeRowSource() if rows is None else FakeRowSource(rows=rows)
    clock = FakeClock()
    catalog = StyleCatalog(source=source, clock=clock)
    if warm:
        asyncio.run(catalog.refresh())
        source.calls = 0
    seen_users = InMemorySeenUserRepository()
    openai_editor = FakeImageEditor(result=b"openai-image")
    gemini_editor = FakeImageEditor(result=b"gemini-image")
    flow = FlowController(
        catalog=catalog,
        sessions=StyleSessionStore(clock=clock),
        users=UserService(seen_users, clock=clock),
        gateway=ProviderGateway(
            {ProviderId.OPENAI: openai_editor, ProviderId.GEMINI: gemini_editor}
        ),
    )
    return FlowHarness(
        flow=flow,
        source=source,
        clock=clock,
        seen_users=seen_users,
        openai_editor=openai_editor,
        gemini_editor=gemini_editor,
    )


@pytest.fixture
def harness() -> FlowHarness:
    return build_flow()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        telegram_bot_token="test-token",
        openai_api_key="openai-key",
        google_sheets_api_key="sheets-key",
        spreadsheet_id="sheet-id",
        seen_users_path=str(tmp_path / "sessions.json"),
    )


@pytest.fixture
def telegram_client() -> FakeTelegramClient:
    return FakeTelegramClient()


@pytest.fixture
def telegram_file_client() -> FakeTelegramFileClient:
    return FakeTelegramFileClient()


@pytest.fixture
def container(
    settings: Settings,
    harness: FlowHarness,
    telegram_client: FakeTelegramClient,
    telegram_file_client: FakeTelegramFileClient,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        telegram_client=telegram_client,
        telegram_file_client=telegram_file_client,
        catalog=harness.catalog,
        sessions=harness.sessions,
        user_service=harness.flow.users,
        flow=harness.flow,
        close_resources=close_resources,
    )
