from __future__ import annotations

import asyncio
import base64
import binascii
import io
import logging
from pathlib import Path
from urllib.error import URLError
from urllib.parse import unquote_to_bytes
from urllib.request import Request, urlopen

from PIL import Image, ImageOps, UnidentifiedImageError

from filmframe.constants import HEIF_EXTENSIONS, STANDARD_EXTENSIONS
from filmframe.errors import ImageDecodeError
from filmframe.models import ImageSource

LOGGER = logging.getLogger(__name__)

_HEIF_REGISTERED = False
_URL_TIMEOUT_SEC = 30
_USER_AGENT = "filmframe/0.1"


def _register_heif_opener() -> bool:
    global _HEIF_REGISTERED
    if _HEIF_REGISTERED:
        return True
    try:
        from pillow_heif import register_heif_opener
    except ImportError:
        return False
    register_heif_opener()
    _HEIF_REGISTERED = True
    return True


def _decode_stream(stream: io.BytesIO | Path) -> Image.Image:
    with Image.open(stream) as image:
        return ImageOps.exif_transpose(image).convert("RGB").copy()


def _decode_path(path: Path) -> Image.Image:
    ext = path.suffix.lower()
    if ext in HEIF_EXTENSIONS:
        if not _register_heif_opener():
            raise ImageDecodeError("pillow-heif is required to decode HEIF/HEIC/HIF")
    elif ext not in STANDARD_EXTENSIONS:
        raise ImageDecodeError(f"unsupported image format: {path.suffix}")
    if not path.is_file():
        raise ImageDecodeError(f"image file not found: {path}")
    return _decode_stream(path)


def _decode_data_uri(uri: str) -> Image.Image:
    header, sep, payload = uri.partition(",")
    if not sep:
        raise ImageDecodeError("malformed data URI")
    try:
        if header.endswith(";base64"):
            raw = base64.b64decode(payload, validate=True)
        else:
            raw = unquote_to_bytes(payload)
    except (binascii.Error, ValueError) as exc:
        raise ImageDecodeError(f"malformed data URI payload: {exc}") from exc
    return _decode_stream(io.BytesIO(raw))


def _fetch_url(url: str) -> bytes:
    # anonymous fetch: no cookie jar, no auth handler, no forwarded credentials
    request = Request(url, headers={"User-Agent": _USER_AGENT})
    try:
        with urlopen(request, timeout=_URL_TIMEOUT_SEC) as response:
            return response.read()
    except (URLError, OSError) as exc:
        raise ImageDecodeError(f"failed to fetch {url}: {exc}") from exc


def _source_label(source: ImageSource) -> str:
    if isinstance(source, Image.Image):
        return f"<image {source.width}x{source.height}>"
    if isinstance(source, bytes):
        return f"<{len(source)} bytes>"
    text = str(source)
    return text if len(text) <= 64 else text[:61] + "..."


def decode_image(source: ImageSource) -> Image.Image:
    """Decode any supported source into a fresh RGB image owned by the caller."""
    try:
        if isinstance(source, Image.Image):
            return source.convert("RGB") if source.mode != "RGB" else source.copy()
        if isinstance(source, bytes):
            return _decode_stream(io.BytesIO(source))
        if isinstance(source, str) and source.startswith("data:"):
            return _decode_data_uri(source)
        if isinstance(source, str) and source.startswith(("http://", "https://")):
            return _decode_stream(io.BytesIO(_fetch_url(source)))
        return _decode_path(Path(source))
    except ImageDecodeError:
        raise
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
        raise ImageDecodeError(f"cannot decode {_source_label(source)}: {exc}") from exc


async def load_image(source: ImageSource) -> Image.Image:
    image = await asyncio.to_thread(decode_image, source)
    LOGGER.debug("decoded %s -> %sx%s", _source_label(source), image.width, image.height)
    return image


async def load_images(sources: list[ImageSource]) -> list[Image.Image]:
    """Decode all sources concurrently; the first failure rejects the batch."""
    results = await asyncio.gather(*(load_image(source) for source in sources), return_exceptions=True)
    errors = [result for result in results if isinstance(result, BaseException)]
    if errors:
        for result in results:
            if not isinstance(result, BaseException):
                result.close()
        raise errors[0]
    return list(results)
