"""OpenAI Images API client for style edits."""

import base64
from dataclasses import dataclass, field

import openai
from openai import AsyncOpenAI

from style_bot.services.images import ensure_supported_format, extension_for
from style_bot.services.providers import ImageEditor, ProviderError

OPENAI_INPUT_TYPES = frozenset({"image/png", "image/jpeg", "image/webp"})


@dataclass
class OpenAIImageEditor(ImageEditor):
    """Image editor backed by the OpenAI images edit endpoint."""

    client: AsyncOpenAI
    model: str = "gpt-image-1"
    size: str = "1024x1024"
    timeout_seconds: float = 180.0
    accepted_mime_types: frozenset[str] = field(default=OPENAI_INPUT_TYPES)

    @classmethod
    def create(
        cls,
        api_key: str,
        model: str,
        size: str,
        timeout_seconds: float,
    ) -> "OpenAIImageEditor":
        """Create an OpenAI image editor."""
        return cls(
            client=AsyncOpenAI(api_key=api_key, max_retries=0),
            model=model,
            size=size,
            timeout_seconds=timeout_seconds,
        )

    async def edit(self, image_bytes: bytes, mime_type: str, prompt: str) -> bytes:
        """Submit the image and prompt, returning the edited image."""
        payload, payload_type = ensure_supported_format(
            image_bytes, mime_type, self.accepted_mime_types
        )
        try:
            response = await self.client.images.edit(
                model=self.model,
                image=(f"input.{extension_for(payload_type)}", payload, payload_type),
                prompt=prompt,
                size=self.size,
                timeout=self.timeout_seconds,
            )
        except openai.APITimeoutError as exc:
            raise ProviderError("OpenAI: request timed out") from exc
        except openai.APIStatusError as exc:
            raise ProviderError(
                f"OpenAI: HTTP {exc.status_code}", payload=exc.body
            ) from exc
        except openai.APIError as exc:
            raise ProviderError(f"OpenAI: {exc}") from exc

        data = response.data or []
        encoded = data[0].b64_json if data else None
        if not encoded:
            raise ProviderError("OpenAI: no b64_json returned")
        return base64.b64decode(encoded)
