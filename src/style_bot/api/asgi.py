"""ASGI entrypoint for the style bot API."""

from style_bot.api.app import create_app
from style_bot.containers import build_container

app = create_app(build_container())
