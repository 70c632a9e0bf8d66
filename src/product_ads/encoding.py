from __future__ import annotations

import base64
from io import BytesIO
from pathlib import Path
from typing import Any

from PIL import Image, UnidentifiedImageError

from product_ads.errors import InputError
from product_ads.providers.base import EncodedImage


def _sniff_mime_type(content: bytes) -> str:
    try:
        with Image.open(BytesIO(content)) as img:
            fmt = img.format
    except (UnidentifiedImageError, OSError) as exc:
        raise InputError(f"could not identify image format: {exc}") from exc
    mime = Image.MIME.get(fmt or "")
    if not mime:
        raise InputError(f"no MIME type known for image format {fmt!r}")
    return mime


def encode_bytes(content: bytes, mime_type: str | None = None) -> EncodedImage:
    """
    Base64-encode raw upload bytes. The declared MIME type wins; when it is missing
    (or a generic octet-stream) the format is sniffed from the bytes.
    """
    if not content:
        raise InputError("uploaded file is empty")
    mime = (mime_type or "").strip().lower()
    if not mime or mime == "application/octet-stream":
        mime = _sniff_mime_type(content)
    return EncodedImage(data=base64.b64encode(content).decode("ascii"), mime_type=mime)


def encode_path(path: Path, mime_type: str | None = None) -> EncodedImage:
    try:
        content = Path(path).read_bytes()
    except OSError as exc:
        raise InputError(f"failed to read {path}: {exc}") from exc
    return encode_bytes(content, mime_type)


async def encode_upload(file: Any) -> EncodedImage:
    """Encode a FastAPI/Starlette UploadFile (anything with async read() and content_type)."""
    try:
        content = await file.read()
    except Exception as exc:
        raise InputError(f"failed to read upload {getattr(file, 'filename', '')!r}: {exc}") from exc
    return encode_bytes(content, getattr(file, "content_type", None))
