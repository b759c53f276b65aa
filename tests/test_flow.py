"""Tests for the conversation flow controller."""

import asyncio

from style_bot.domain.sessions import SessionState
from style_bot.services.catalog import SourceUnavailableError
from style_bot.services.chat import TransportFetchError
from style_bot.services.flow import (
    MAX_ERROR_LENGTH,
    Messages,
    format_failure,
    is_greeting,
    is_numeric_code,
)
from style_bot.services.providers import ProviderError
from tests.conftest import FakeChatChannel, FlowHarness, build_flow

MESSAGES = Messages()


def test_greeting_matches_canonical_forms() -> None:
    assert is_greeting("السلام")
    assert is_greeting("السلام عليكم")
    assert is_greeting("  السلام   عليكم ورحمة الله  ")
    assert is_greeting("السلام عليكم ورحمة الله وبركاته!")
    assert not is_greeting("السلام عليكم يا شباب")
    assert not is_greeting("hello")


def test_numeric_code_detection() -> None:
    assert is_numeric_code(" 101 ")
    assert not is_numeric_code("10 1")
    assert not is_numeric_code("101a")
    assert not is_numeric_code("")
    assert not is_numeric_code("١٠١")


def test_greeting_for_first_time_user_shows_intro(harness: FlowHarness) -> None:
    chat = FakeChatChannel()

    asyncio.run(
        harness.flow.handle_text("u1", "السلام عليكم ورحمة الله وبركاته", chat)
    )

    assert chat.texts == [MESSAGES.greeting_reply, MESSAGES.intro]
    assert "u1" in harness.seen_users.records


def test_greeting_for_returning_user_prompts_style(harness: FlowHarness) -> None:
    harness.flow.users.mark_seen("u1")
    chat = FakeChatChannel()

    asyncio.run(harness.flow.handle_text("u1", "السلام", chat))

    assert chat.texts == [MESSAGES.greeting_reply, MESSAGES.prompt_style]


def test_other_text_branches_on_first_time(harness: FlowHarness) -> None:
    chat = FakeChatChannel()

    asyncio.run(harness.flow.handle_text("u1", "hi there", chat))
    asyncio.run(harness.flow.handle_text("u1", "hi again", chat))

    assert chat.texts == [MESSAGES.intro, MESSAGES.prompt_style]


def test_start_command_branches_on_first_time(harness: FlowHarness) -> None:
    chat = FakeChatChannel()

    asyncio.run(harness.flow.handle_start("u1", chat))
    asyncio.run(harness.flow.handle_start("u1", chat))

    assert chat.texts == [MESSAGES.intro, MESSAGES.prompt_style]


def test_valid_code_opens_session(harness: FlowHarness) -> None:
    chat = FakeChatChannel()

    asyncio.run(harness.flow.handle_text("u1", " 101 ", chat))

    assert chat.texts == [MESSAGES.ask_image]
    status = harness.sessions.get_status("u1")
    assert status.state is SessionState.OK
    assert status.code == "101"
    assert harness.source.calls == 0


def test_invalid_code_refreshes_once_then_rejects(harness: FlowHarness) -> None:
    chat = FakeChatChannel()

    asyncio.run(harness.flow.handle_text("u1", "999", chat))

    assert chat.texts == [MESSAGES.invalid_style]
    assert harness.source.calls == 1
    assert harness.sessions.get_status("u1").state is SessionState.NONE


def test_code_added_to_sheet_found_after_refresh(harness: FlowHarness) -> None:
    harness.source.rows.append(("303", "Charcoal sketch", ""))
    chat = FakeChatChannel()

    asyncio.run(harness.flow.handle_text("u1", "303", chat))

    assert chat.texts == [MESSAGES.ask_image]
    assert harness.sessions.get_status("u1").code == "303"


def test_arabic_indic_digits_are_plain_text(harness: FlowHarness) -> None:
    harness.flow.users.mark_seen("u1")
    chat = FakeChatChannel()

    asyncio.run(harness.flow.handle_text("u1", "١٠١", chat))

    assert chat.texts == [MESSAGES.prompt_style]
    assert harness.source.calls == 0
    assert harness.sessions.get_status("u1").state is SessionState.NONE


def test_refresh_failure_reads_as_invalid_style(harness: FlowHarness) -> None:
    harness.source.error = SourceUnavailableError("sheet offline")
    chat = FakeChatChannel()

    asyncio.run(harness.flow.handle_text("u1", "999", chat))

    assert chat.texts == [MESSAGES.invalid_style]


def test_photo_without_session_asks_for_style(harness: FlowHarness) -> None:
    chat = FakeChatChannel()

    asyncio.run(harness.flow.handle_photo("u1", "file-1", chat))

    assert chat.texts == [MESSAGES.need_style_first]
    assert chat.fetched == []
    assert harness.openai_editor.calls == []


def test_photo_after_expiry_reports_expired(harness: FlowHarness) -> None:
    harness.sessions.set("u1", "101")
    harness.clock.advance(301)
    chat = FakeChatChannel()

    asyncio.run(harness.flow.handle_photo("u1", "file-1", chat))
    asyncio.run(harness.flow.handle_photo("u1", "file-1", chat))

    assert chat.texts == [MESSAGES.expired, MESSAGES.need_style_first]
    assert harness.openai_editor.calls == []


def test_code_then_photo_generates_image_and_clears_session(
    harness: FlowHarness,
) -> None:
    chat = FakeChatChannel()

    asyncio.run(harness.flow.handle_text("u1", "101", chat))
    asyncio.run(harness.flow.handle_photo("u1", "file-1", chat))

    assert harness.openai_editor.calls == [
        (
            b"\xff\xd8\xff-photo",
            "image/jpeg",
            "Make it look like a glossy magazine shot",
        )
    ]
    assert chat.fetched == ["file-1"]
    assert chat.processing_notices == 1
    assert chat.texts == [MESSAGES.ask_image, MESSAGES.processing]
    assert chat.images == [(b"openai-image", MESSAGES.done)]
    assert harness.sessions.get_status("u1").state is SessionState.NONE


def test_concurrent_photos_use_the_code_once(harness: FlowHarness) -> None:
    harness.sessions.set("u1", "101")
    chat = FakeChatChannel()

    async def send_album() -> None:
        harness.openai_editor.gate = asyncio.Event()
        first = asyncio.create_task(harness.flow.handle_photo("u1", "file-1", chat))
        await asyncio.sleep(0)
        await harness.flow.handle_photo("u1", "file-2", chat)
        harness.openai_editor.gate.set()
        await first

    asyncio.run(send_album())

    assert len(harness.openai_editor.calls) == 1
    assert chat.fetched == ["file-1"]
    assert chat.texts == [MESSAGES.processing, MESSAGES.processing]
    assert chat.images == [(b"openai-image", MESSAGES.done)]
    assert harness.sessions.get_status("u1").state is SessionState.NONE

    asyncio.run(harness.flow.handle_photo("u1", "file-3", chat))

    assert chat.texts[-1] == MESSAGES.need_style_first
    assert len(harness.openai_editor.calls) == 1


def test_photo_routes_to_provider_from_sheet(harness: FlowHarness) -> None:
    harness.sessions.set("u1", "202")
    chat = FakeChatChannel()

    asyncio.run(harness.flow.handle_photo("u1", "file-1", chat))

    assert harness.openai_editor.calls == []
    assert harness.gemini_editor.calls[0][2] == "Watercolor painting of the dish"
    assert chat.images == [(b"gemini-image", MESSAGES.done)]


def test_photo_with_removed_style_clears_session(harness: FlowHarness) -> None:
    harness.sessions.set("u1", "101")
    harness.source.rows = [("202", "Watercolor painting of the dish", "gemini")]
    asyncio.run(harness.catalog.refresh())
    chat = FakeChatChannel()

    asyncio.run(harness.flow.handle_photo("u1", "file-1", chat))

    assert chat.texts == [MESSAGES.invalid_style]
    assert chat.fetched == []
    assert harness.sessions.get_status("u1").state is SessionState.NONE


def test_provider_failure_reports_payload_and_clears_session(
    harness: FlowHarness,
) -> None:
    harness.openai_editor.error = ProviderError(
        "OpenAI: HTTP 400", payload={"error": {"message": "bad image"}}
    )
    harness.sessions.set("u1", "101")
    chat = FakeChatChannel()

    asyncio.run(harness.flow.handle_photo("u1", "file-1", chat))

    assert chat.texts[-1] == '{"error": {"message": "bad image"}}'
    assert chat.images == []
    assert harness.sessions.get_status("u1").state is SessionState.NONE


def test_fetch_failure_reports_message_and_clears_session(
    harness: FlowHarness,
) -> None:
    harness.sessions.set("u1", "101")
    chat = FakeChatChannel(fetch_error=TransportFetchError("download failed"))

    asyncio.run(harness.flow.handle_photo("u1", "file-1", chat))

    assert chat.texts[-1] == "download failed"
    assert harness.openai_editor.calls == []
    assert harness.sessions.get_status("u1").state is SessionState.NONE


def test_cold_catalog_refreshes_on_photo() -> None:
    cold = build_flow(warm=False)
    cold.sessions.set("u1", "101")
    chat = FakeChatChannel()

    asyncio.run(cold.flow.handle_photo("u1", "file-1", chat))

    assert cold.source.calls == 1
    assert chat.images == [(b"openai-image", MESSAGES.done)]


def test_every_event_marks_user_seen(harness: FlowHarness) -> None:
    chat = FakeChatChannel()

    asyncio.run(harness.flow.handle_photo("photo-user", "file-1", chat))

    assert "photo-user" in harness.seen_users.records


def test_format_failure_truncates_and_falls_back() -> None:
    long_error = ProviderError("x", payload="e" * (MAX_ERROR_LENGTH + 50))

    assert len(format_failure(long_error, "Failed.")) == MAX_ERROR_LENGTH
    assert format_failure(RuntimeError(), "Failed.") == "Failed."
    assert format_failure(ProviderError("timed out"), "Failed.") == "timed out"
