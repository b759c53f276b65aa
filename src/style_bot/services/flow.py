"""Conversation flow: style code first, then the photo to restyle."""

import logging
import re
from dataclasses import dataclass, field

from style_bot.domain.catalog import StyleEntry
from style_bot.domain.sessions import SessionState
from style_bot.services.catalog import SourceUnavailableError, StyleCatalog
from style_bot.services.chat import ChatChannel
from style_bot.services.providers import ProviderError, ProviderGateway
from style_bot.services.sessions import StyleSessionStore
from style_bot.services.users import UserService

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 3500

_WHITESPACE = re.compile(r"\s+")
_NUMERIC = re.compile(r"^[0-9]+$")
_GREETING = re.compile(r"^السلام\s+عليكم(?:\s+ورحمة\s+الله(?:\s+وبركاته)?)?[!.،]*$")


@dataclass(frozen=True)
class Messages:
    """User-facing texts."""

    intro: str = (
        "Welcome.\n\n"
        "1) Send the style number (example: 101)\n"
        "2) Then send the food image\n\n"
        "If you send an image without a style number, "
        "I will ask you for the style number first."
    )
    greeting_reply: str = "وعليكم السلام ورحمة الله وبركاته"
    prompt_style: str = "Send the style number to continue."
    invalid_style: str = "Invalid style number. Send the style number again."
    ask_image: str = "Send the image."
    need_style_first: str = "Send the style number first."
    expired: str = "Session expired. Send the style number again."
    processing: str = "Processing..."
    done: str = "Done."
    failed: str = "Failed. Try again."


def normalize_text(text: str | None) -> str:
    """Trim and collapse whitespace."""
    return _WHITESPACE.sub(" ", (text or "").strip())


def is_numeric_code(text: str | None) -> bool:
    """Return true for purely numeric input."""
    return bool(_NUMERIC.match(normalize_text(text)))


def is_greeting(text: str | None) -> bool:
    """Match the accepted forms of the salam greeting."""
    normalized = normalize_text(text)
    if normalized == "السلام":
        return True
    return bool(_GREETING.match(normalized))


def format_failure(exc: Exception, fallback: str) -> str:
    """Build a truncated, user-facing failure message."""
    if isinstance(exc, ProviderError):
        detail = exc.user_message()
    else:
        detail = str(exc)
    return (detail or fallback)[:MAX_ERROR_LENGTH]


@dataclass
class FlowController:
    """Drives the per-user state machine for incoming chat events."""

    catalog: StyleCatalog
    sessions: StyleSessionStore
    users: UserService
    gateway: ProviderGateway
    messages: Messages = field(default_factory=Messages)
    _in_flight: set[str] = field(default_factory=set, init=False, repr=False)

    async def handle_start(self, user_id: str, chat: ChatChannel) -> None:
        """Handle the /start command."""
        first_time = self._touch_user(user_id)
        await self._send_welcome(chat, first_time)

    async def handle_text(self, user_id: str, text: str, chat: ChatChannel) -> None:
        """Handle a text message."""
        normalized = normalize_text(text)
        first_time = self._touch_user(user_id)

        if is_greeting(normalized):
            await chat.reply(self.messages.greeting_reply)
            await self._send_welcome(chat, first_time)
            return

        if is_numeric_code(normalized):
            prompt = self.catalog.get_prompt(normalized)
            if prompt is None:
                await self._refresh_quietly()
                prompt = self.catalog.get_prompt(normalized)
            if prompt is None:
                await chat.reply(self.messages.invalid_style)
                return
            self.sessions.set(user_id, normalized)
            await chat.reply(self.messages.ask_image)
            return

        await self._send_welcome(chat, first_time)

    async def handle_photo(
        self, user_id: str, image_reference: str, chat: ChatChannel
    ) -> None:
        """Handle an incoming photo for the user's pending style."""
        status = self.sessions.get_status(user_id)
        self._touch_user(user_id)

        if status.state is SessionState.NONE:
            await chat.reply(self.messages.need_style_first)
            return
        if status.state is SessionState.EXPIRED:
            await chat.reply(self.messages.expired)
            return
        if user_id in self._in_flight:
            # One generation per committed code; extra photos are not queued.
            await chat.reply(self.messages.processing)
            return

        self._in_flight.add(user_id)
        try:
            entry = await self._resolve(status.code or "")
            if entry is None:
                await chat.reply(self.messages.invalid_style)
                return
            await self._generate(user_id, entry, image_reference, chat)
        finally:
            self.sessions.clear(user_id)
            self._in_flight.discard(user_id)

    async def _generate(
        self,
        user_id: str,
        entry: StyleEntry,
        image_reference: str,
        chat: ChatChannel,
    ) -> None:
        await chat.reply(self.messages.processing)
        await chat.notify_processing()
        try:
            image_bytes, mime_type = await chat.fetch_image_bytes(image_reference)
            edited = await self.gateway.edit(
                entry.provider_id, image_bytes, mime_type, entry.prompt
            )
            await chat.reply_with_image(edited, caption=self.messages.done)
        except Exception as exc:
            logger.exception(
                "Image generation failed",
                extra={
                    "user_id": user_id,
                    "style_code": entry.code,
                    "provider": entry.provider_id.value,
                    "payload": getattr(exc, "payload", None),
                },
            )
            await chat.reply(format_failure(exc, self.messages.failed))

    async def _resolve(self, code: str) -> StyleEntry | None:
        entry = self._lookup(code)
        if entry is None:
            await self._refresh_quietly()
            entry = self._lookup(code)
        return entry

    def _lookup(self, code: str) -> StyleEntry | None:
        prompt = self.catalog.get_prompt(code)
        provider_id = self.catalog.get_provider(code)
        if prompt is None or provider_id is None:
            return None
        return StyleEntry(code=code, prompt=prompt, provider_id=provider_id)

    async def _refresh_quietly(self) -> None:
        # A failed refresh reads the same as an unknown style.
        try:
            await self.catalog.refresh()
        except SourceUnavailableError:
            logger.warning("Catalog refresh after lookup miss failed", exc_info=True)

    async def _send_welcome(self, chat: ChatChannel, first_time: bool) -> None:
        if first_time:
            await chat.reply(self.messages.intro)
        else:
            await chat.reply(self.messages.prompt_style)

    def _touch_user(self, user_id: str) -> bool:
        first_time = self.users.is_first_time(user_id)
        self.users.mark_seen(user_id)
        return first_time
