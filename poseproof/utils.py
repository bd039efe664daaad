# poseproof/utils.py
import base64
import binascii
import io
from typing import Any, Sequence, Tuple

import numpy as np
from PIL import Image, UnidentifiedImageError

from .config import BACKGROUND_COLOR
from .errors import EncodingError, ImageDecodeError

MIME_TYPES = {"PNG": "image/png", "JPEG": "image/jpeg", "GIF": "image/gif"}


def decode_base64(b64: str) -> bytes:
    """
    Accepts either raw base64 or data URI (data:image/png;base64,...)
    """
    header, _, payload = b64.partition(",")
    if payload == "":
        payload = header
    try:
        return base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise ImageDecodeError(f"invalid base64 image data: {exc}") from exc


def bytes_to_pil(data: bytes) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise ImageDecodeError(f"failed to load image: {exc}") from exc
    return img


def base64_to_pil(b64: str) -> Image.Image:
    return bytes_to_pil(decode_base64(b64))


def load_image(source: Any) -> Image.Image:
    """Decode a PIL image, numpy array, raw bytes or base64/data-URI string."""
    if isinstance(source, Image.Image):
        return source
    if isinstance(source, np.ndarray):
        return Image.fromarray(source.astype("uint8"))
    if isinstance(source, (bytes, bytearray)):
        return bytes_to_pil(bytes(source))
    if isinstance(source, str):
        return base64_to_pil(source)
    raise ImageDecodeError(f"unsupported image source type: {type(source).__name__}")


def flatten_to_rgb(img: Image.Image, background: Tuple[int, int, int] = BACKGROUND_COLOR) -> np.ndarray:
    """Return H x W x 3 uint8 array; transparency is composited on `background`."""
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        flat = Image.new("RGB", rgba.size, background)
        flat.paste(rgba, mask=rgba.getchannel("A"))
        return np.array(flat)
    return np.array(img.convert("RGB"))


def pil_to_bytes(img: Image.Image, fmt: str = "PNG", quality: float = 0.92) -> bytes:
    """Encode; `quality` in [0, 1] maps to JPEG quality, PNG ignores it."""
    fmt = fmt.upper()
    buf = io.BytesIO()
    try:
        if fmt == "JPEG":
            img.convert("RGB").save(buf, format="JPEG", quality=int(round(quality * 100)))
        else:
            img.save(buf, format=fmt, optimize=True)
    except (OSError, ValueError, KeyError) as exc:
        raise EncodingError(f"failed to encode {fmt}: {exc}") from exc
    return buf.getvalue()


def frames_to_gif(frames: Sequence[Image.Image], durations: Sequence[int], loop: int = 0) -> bytes:
    """Encode an animated GIF; `durations` are per-frame delays in ms."""
    if not frames:
        raise EncodingError("cannot encode a GIF without frames")
    buf = io.BytesIO()
    try:
        frames[0].save(
            buf,
            format="GIF",
            save_all=True,
            append_images=list(frames[1:]),
            duration=list(durations),
            loop=loop,
        )
    except (OSError, ValueError) as exc:
        raise EncodingError(f"failed to encode GIF: {exc}") from exc
    return buf.getvalue()


def bytes_to_data_uri(data: bytes, mime_type: str = "image/png") -> str:
    b64 = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{b64}"
