"""Provider gateway routing image edits to generation backends."""

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol

from style_bot.domain.catalog import ProviderId


class ProviderError(Exception):
    """Raised when an image-generation backend fails."""

    def __init__(self, message: str, payload: object | None = None) -> None:
        super().__init__(message)
        self.payload = payload

    def user_message(self) -> str:
        """Return the most specific diagnostic available."""
        if self.payload is not None:
            if isinstance(self.payload, str):
                return self.payload
            return json.dumps(self.payload, ensure_ascii=False, default=str)
        return str(self)


class ImageEditor(Protocol):
    """Interface for a single image-generation backend."""

    async def edit(self, image_bytes: bytes, mime_type: str, prompt: str) -> bytes:
        """Return edited image bytes for the prompt."""


@dataclass
class ProviderGateway:
    """Dispatches edits to the editor registered for a provider."""

    editors: Mapping[ProviderId, ImageEditor]

    async def edit(
        self,
        provider_id: ProviderId,
        image_bytes: bytes,
        mime_type: str,
        prompt: str,
    ) -> bytes:
        """Edit an image with the selected provider."""
        editor = self.editors.get(provider_id)
        if editor is None:
            raise ProviderError(f"Provider {provider_id.value} is not configured")
        return await editor.edit(image_bytes, mime_type, prompt)
