"""FastAPI application factory."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress

from fastapi import BackgroundTasks, FastAPI, Request

from style_bot.adapters.telegram_chat import TelegramChatChannel
from style_bot.api.telegram_models import (
    TelegramMessage,
    TelegramPhotoSize,
    TelegramUpdate,
)
from style_bot.app_logging import configure_logging
from style_bot.containers import AppContainer
from style_bot.services.catalog import SourceUnavailableError
from style_bot.telegram_commands import telegram_commands

logger = logging.getLogger(__name__)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        try:
            await state_container.telegram_client.set_my_commands(telegram_commands())
        except Exception:
            logger.exception("Failed to sync Telegram bot commands")
        try:
            await state_container.catalog.ensure_warm()
        except SourceUnavailableError:
            logger.exception("Initial style catalog load failed")
        state_container.catalog.start_auto_refresh(
            state_container.settings.catalog_refresh_seconds
        )
        sweeper = asyncio.create_task(
            _sweep_sessions_forever(
                state_container, state_container.settings.session_ttl_seconds
            )
        )
        yield
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper
        await state_container.catalog.stop_auto_refresh()
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health(request: Request) -> dict[str, object]:
        """Health check with catalog status."""
        state_container: AppContainer = request.app.state.container
        last_refresh = state_container.catalog.last_refresh_at
        return {
            "status": "ok",
            "styles": state_container.catalog.size,
            "last_refresh_at": last_refresh.isoformat() if last_refresh else None,
        }

    @app.post("/telegram/webhook")
    async def telegram_webhook(
        update: TelegramUpdate, request: Request, background_tasks: BackgroundTasks
    ) -> dict[str, str]:
        """Acknowledge a Telegram update and handle it in the background."""
        state_container: AppContainer = request.app.state.container
        message = update.message
        if message is None or message.from_user is None:
            return {"status": "ok"}
        background_tasks.add_task(handle_message, state_container, message)
        return {"status": "ok"}

    return app


async def handle_message(container: AppContainer, message: TelegramMessage) -> None:
    """Route a Telegram message to the flow controller."""
    if message.from_user is None:
        return
    user_id = str(message.from_user.id)
    chat = TelegramChatChannel(
        telegram_client=container.telegram_client,
        file_client=container.telegram_file_client,
        chat_id=message.chat.id,
    )
    try:
        if message.photo:
            photo = _select_largest_photo(message.photo)
            await container.flow.handle_photo(user_id, photo.file_id, chat)
        elif message.text is not None:
            if _is_start_command(message.text):
                await container.flow.handle_start(user_id, chat)
            else:
                await container.flow.handle_text(user_id, message.text, chat)
    except Exception:
        logger.exception(
            "Failed to handle Telegram message",
            extra={"user_id": user_id, "message_id": message.message_id},
        )


async def _sweep_sessions_forever(
    container: AppContainer, interval_seconds: float
) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        dropped = container.sessions.sweep_expired()
        if dropped:
            logger.info("Swept expired sessions", extra={"count": dropped})


def _select_largest_photo(photos: list[TelegramPhotoSize]) -> TelegramPhotoSize:
    """Select the largest photo size from the Telegram payload."""
    return max(photos, key=lambda photo: (photo.width * photo.height))


def _is_start_command(text: str) -> bool:
    command = text.strip().split(maxsplit=1)[0] if text.strip() else ""
    return command == "/start" or command.startswith("/start@")
