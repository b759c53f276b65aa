"""Image format helpers shared by transports and providers."""

import io
from collections.abc import Collection

from PIL import Image

_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
}


def detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"


def resolve_mime_type(image_bytes: bytes, content_type: str | None) -> str:
    """Prefer an image Content-Type header, falling back to sniffing."""
    header = (content_type or "").split(";", 1)[0].strip().lower()
    if header.startswith("image/"):
        return header
    return detect_mime_type(image_bytes)


def extension_for(mime_type: str) -> str:
    """Return a file extension suitable for a MIME type."""
    return _EXTENSIONS.get(mime_type, "jpg")


def convert_to_png(image_bytes: bytes) -> bytes:
    """Re-encode arbitrary image bytes as PNG."""
    with Image.open(io.BytesIO(image_bytes)) as image:
        output = io.BytesIO()
        image.convert("RGBA").save(output, format="PNG")
    return output.getvalue()


def ensure_supported_format(
    image_bytes: bytes, mime_type: str, accepted: Collection[str]
) -> tuple[bytes, str]:
    """Convert the image to PNG unless its type is already accepted."""
    if mime_type in accepted:
        return image_bytes, mime_type
    return convert_to_png(image_bytes), "image/png"
