# poseproof/watermark.py
"""
Watermark rendering based on the caller's tier.

Free users:                 "PoseProof" text watermark
Pro users with custom logo: their logo
Pro users without logo:     no watermark (clean export)

The tier itself is decided elsewhere; this module only receives the flags.
"""

import os
from dataclasses import dataclass
from typing import Callable, Optional, Tuple
from urllib.parse import urlparse

import httpx
from PIL import Image, ImageDraw, ImageFilter, ImageFont

from .errors import ImageDecodeError, InvalidExportOptions
from .logger import console
from .utils import base64_to_pil, bytes_to_pil

WATERMARK_TEXT = "PoseProof"
POSITIONS = ("bottom-right", "bottom-left", "bottom-center")
DEFAULT_POSITION = "bottom-right"
DEFAULT_OPACITY = 0.7
PRO_LOGO_OPACITY = 0.9
WATERMARK_PADDING = 20
WATERMARK_FONT_SIZE = 24
MAX_LOGO_WIDTH_PERCENT = 0.15
LOGO_FETCH_TIMEOUT = float(os.getenv("POSEPROOF_LOGO_TIMEOUT", "5.0"))

BOLD_FONTS = ("DejaVuSans-Bold.ttf", "Arial Bold.ttf", "arialbd.ttf")


@dataclass(frozen=True)
class WatermarkOptions:
    is_pro: bool = False
    custom_logo_url: Optional[str] = None
    position: str = DEFAULT_POSITION
    opacity: float = DEFAULT_OPACITY


def load_font(size: int, candidates=BOLD_FONTS) -> ImageFont.ImageFont:
    for name in candidates:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def validate_watermark_options(options: WatermarkOptions) -> None:
    if not 0 <= options.opacity <= 1:
        raise InvalidExportOptions("Opacity must be between 0 and 1")
    if options.position not in POSITIONS:
        raise InvalidExportOptions(
            'Invalid position. Must be "bottom-right", "bottom-left", or "bottom-center"'
        )
    if options.custom_logo_url:
        parsed = urlparse(options.custom_logo_url)
        if parsed.scheme not in ("http", "https", "data", "file"):
            raise InvalidExportOptions("Invalid custom logo URL")


def watermark_preview(options: WatermarkOptions) -> str:
    """Describe what watermark an export will get, for settings screens."""
    if options.is_pro and not options.custom_logo_url:
        return "No watermark (Pro tier - clean export)"
    if options.is_pro:
        return f"Custom logo watermark at {options.position}"
    return f'"{WATERMARK_TEXT}" text watermark at {options.position}'


def fetch_logo(url: str) -> Image.Image:
    """Load a logo from a data URI, an http(s) URL or a file:// path."""
    parsed = urlparse(url)
    if parsed.scheme == "data":
        return base64_to_pil(url)
    if parsed.scheme == "file":
        with open(parsed.path, "rb") as fh:
            return bytes_to_pil(fh.read())
    response = httpx.get(url, timeout=LOGO_FETCH_TIMEOUT, follow_redirects=True)
    response.raise_for_status()
    return bytes_to_pil(response.content)


def _anchor_point(width: int, height: int, position: str) -> Tuple[int, int]:
    y = height - WATERMARK_PADDING
    if position == "bottom-left":
        return WATERMARK_PADDING, y
    if position == "bottom-center":
        return width // 2, y
    return width - WATERMARK_PADDING, y


def draw_text_watermark(canvas: Image.Image, text: str, position: str, opacity: float) -> Image.Image:
    """Bottom-aligned text with a soft shadow; returns a new RGBA image."""
    base = canvas.convert("RGBA")
    x, y = _anchor_point(base.width, base.height, position)
    anchor = {"bottom-left": "ld", "bottom-center": "md"}.get(position, "rd")
    font = load_font(WATERMARK_FONT_SIZE)

    shadow = Image.new("RGBA", base.size, (0, 0, 0, 0))
    ImageDraw.Draw(shadow).text((x + 2, y + 2), text, font=font, anchor=anchor, fill=(0, 0, 0, 128))
    shadow = shadow.filter(ImageFilter.GaussianBlur(2))

    layer = Image.new("RGBA", base.size, (0, 0, 0, 0))
    ImageDraw.Draw(layer).text(
        (x, y), text, font=font, anchor=anchor, fill=(255, 255, 255, int(round(255 * opacity)))
    )

    base = Image.alpha_composite(base, shadow)
    return Image.alpha_composite(base, layer)


def draw_logo_watermark(canvas: Image.Image, logo: Image.Image, position: str, opacity: float) -> Image.Image:
    base = canvas.convert("RGBA")
    logo = logo.convert("RGBA")

    max_width = base.width * MAX_LOGO_WIDTH_PERCENT
    if logo.width > max_width:
        scale = max_width / logo.width
        logo = logo.resize(
            (max(1, int(round(max_width))), max(1, int(round(logo.height * scale)))),
            Image.LANCZOS,
        )

    x, y = _anchor_point(base.width, base.height, position)
    if position == "bottom-left":
        left = x
    elif position == "bottom-center":
        left = x - logo.width // 2
    else:
        left = x - logo.width
    top = y - logo.height

    alpha = logo.getchannel("A").point(lambda a: int(round(a * opacity)))
    logo.putalpha(alpha)

    layer = Image.new("RGBA", base.size, (0, 0, 0, 0))
    layer.paste(logo, (int(left), int(top)))
    return Image.alpha_composite(base, layer)


def add_watermark(
    canvas: Image.Image,
    options: WatermarkOptions,
    logo_loader: Callable[[str], Image.Image] = fetch_logo,
) -> Image.Image:
    """Apply the tier-appropriate watermark; returns the (possibly new) canvas."""
    if options.is_pro and not options.custom_logo_url:
        return canvas

    if options.is_pro:
        try:
            logo = logo_loader(options.custom_logo_url)
        except (httpx.HTTPError, ImageDecodeError, OSError) as exc:
            console.log(
                f"[yellow]Failed to load custom logo, falling back to text watermark: {exc}[/yellow]"
            )
        else:
            return draw_logo_watermark(canvas, logo, options.position, PRO_LOGO_OPACITY)

    return draw_text_watermark(canvas, WATERMARK_TEXT, options.position, options.opacity)
