"""Gemini generateContent client for style edits."""

import base64
from dataclasses import dataclass, field

import httpx

from style_bot.services.images import ensure_supported_format
from style_bot.services.providers import ImageEditor, ProviderError

GEMINI_INPUT_TYPES = frozenset({"image/png", "image/jpeg", "image/webp"})


@dataclass
class HttpxGeminiImageEditor(ImageEditor):
    """Image editor backed by Gemini image generation over REST."""

    api_key: str
    model: str
    base_url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 180.0
    accepted_mime_types: frozenset[str] = field(default=GEMINI_INPUT_TYPES)

    @classmethod
    def create(
        cls, api_key: str, model: str, base_url: str, timeout_seconds: float
    ) -> "HttpxGeminiImageEditor":
        """Create a Gemini editor with a managed httpx session."""
        return cls(
            api_key=api_key,
            model=model,
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
            timeout_seconds=timeout_seconds,
        )

    async def edit(self, image_bytes: bytes, mime_type: str, prompt: str) -> bytes:
        """Submit the image and prompt, returning the first generated image."""
        payload, payload_type = ensure_supported_format(
            image_bytes, mime_type, self.accepted_mime_types
        )
        request_body = {
            "contents": [
                {
                    "parts": [
                        {"text": prompt},
                        {
                            "inline_data": {
                                "mime_type": payload_type,
                                "data": base64.b64encode(payload).decode("ascii"),
                            }
                        },
                    ]
                }
            ],
            "generationConfig": {"responseModalities": ["TEXT", "IMAGE"]},
        }
        url = f"{self.base_url}/models/{self.model}:generateContent"
        try:
            response = await self.http_client.post(
                url,
                json=request_body,
                headers={"x-goog-api-key": self.api_key},
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise ProviderError("Gemini: request timed out") from exc
        except httpx.HTTPStatusError as exc:
            raise ProviderError(
                f"Gemini: HTTP {exc.response.status_code}",
                payload=_error_payload(exc.response),
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"Gemini: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise ProviderError("Gemini: malformed response") from exc
        return _first_inline_image(body)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _error_payload(response: httpx.Response) -> object:
    try:
        return response.json()
    except ValueError:
        return response.text


def _first_inline_image(body: object) -> bytes:
    """Extract the first inline image part from a generateContent response."""
    if not isinstance(body, dict):
        raise ProviderError("Gemini: malformed response", payload=body)
    candidates = body.get("candidates") or []
    if not isinstance(candidates, list):
        raise ProviderError("Gemini: malformed response", payload=body)
    for candidate in candidates:
        content = candidate.get("content") if isinstance(candidate, dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        for part in parts if isinstance(parts, list) else []:
            if not isinstance(part, dict):
                continue
            inline = part.get("inlineData") or part.get("inline_data")
            if isinstance(inline, dict) and inline.get("data"):
                return base64.b64decode(inline["data"])
    feedback = body.get("promptFeedback")
    raise ProviderError("Gemini: no image returned", payload=feedback)
