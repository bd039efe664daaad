# poseproof/compositor.py
"""
Side-by-side compositing of the aligned before/after images.

Each half is rendered independently: the full source image is warped with
its draw params into a half-sized buffer, which clips everything outside
that half.
"""

from typing import Callable, Optional, Tuple

import cv2
import numpy as np
from PIL import Image, ImageDraw, ImageFilter

from .canvas import FinalCanvas
from .config import BACKGROUND_COLOR
from .errors import EncodingError
from .layout import DrawParams
from .watermark import WatermarkOptions, add_watermark, fetch_logo, load_font

LABEL_FONT_SCALE = 0.04  # of half width
LABEL_PADDING_SCALE = 1.5  # of font size
LABEL_FILL = (255, 255, 255, 242)
LABEL_SHADOW = (0, 0, 0, 153)
LABEL_SHADOW_BLUR = 4
LABEL_SHADOW_OFFSET = 2


def render_half(src: np.ndarray, params: DrawParams, width: int, height: int) -> np.ndarray:
    """
    Draw `src` at `params` into a width x height buffer.

    Mapping follows drawImage semantics: the source rectangle edges land on
    the draw rectangle edges, so the affine offset accounts for pixel centers.
    """
    src_h, src_w = src.shape[:2]
    scale_x = params.draw_width / src_w
    scale_y = params.draw_height / src_h

    if scale_x < 1 or scale_y < 1:
        # area resampling first; warpAffine alone aliases when shrinking
        new_w = max(1, int(round(params.draw_width)))
        new_h = max(1, int(round(params.draw_height)))
        src = cv2.resize(src, (new_w, new_h), interpolation=cv2.INTER_AREA)
        scale_x = params.draw_width / new_w
        scale_y = params.draw_height / new_h

    M = np.array(
        [
            [scale_x, 0.0, params.draw_x + 0.5 * (scale_x - 1)],
            [0.0, scale_y, params.draw_y + 0.5 * (scale_y - 1)],
        ],
        dtype=np.float64,
    )

    return cv2.warpAffine(
        src,
        M,
        (width, height),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_REPLICATE,
    )


def draw_text_labels(canvas: Image.Image, labels, font_size: int) -> Image.Image:
    """Draw (text, (x, y), anchor) labels with the blurred drop shadow."""
    base = canvas.convert("RGBA")
    font = load_font(font_size)

    shadow = Image.new("RGBA", base.size, (0, 0, 0, 0))
    shadow_draw = ImageDraw.Draw(shadow)
    for text, (x, y), anchor in labels:
        shadow_draw.text((x, y + LABEL_SHADOW_OFFSET), text, font=font, anchor=anchor, fill=LABEL_SHADOW)
    shadow = shadow.filter(ImageFilter.GaussianBlur(LABEL_SHADOW_BLUR))

    layer = Image.new("RGBA", base.size, (0, 0, 0, 0))
    layer_draw = ImageDraw.Draw(layer)
    for text, (x, y), anchor in labels:
        layer_draw.text((x, y), text, font=font, anchor=anchor, fill=LABEL_FILL)

    base = Image.alpha_composite(base, shadow)
    return Image.alpha_composite(base, layer)


def label_metrics(width: int) -> Tuple[int, int]:
    """Font size and padding for labels on a `width`-wide picture."""
    font_size = max(1, round(width * LABEL_FONT_SCALE))
    return font_size, round(font_size * LABEL_PADDING_SCALE)


def draw_labels(canvas: Image.Image, half_width: int) -> Image.Image:
    """Draw "Before" / "After" centered at the top of each half, with a drop shadow."""
    font_size, padding = label_metrics(half_width)
    labels = (
        ("Before", (half_width / 2, padding), "mt"),
        ("After", (half_width + half_width / 2, padding), "mt"),
    )
    return draw_text_labels(canvas, labels, font_size)


def compose(
    before: np.ndarray,
    after: np.ndarray,
    final: FinalCanvas,
    include_labels: bool = False,
    watermark: Optional[WatermarkOptions] = None,
    logo_loader: Callable = fetch_logo,
) -> Image.Image:
    """
    Render the final side-by-side image.

    `before` / `after` are H x W x 3 uint8 RGB arrays. Returns an RGB image
    of final.width x final.height.
    """
    try:
        canvas = np.empty((final.height, final.width, 3), dtype=np.uint8)
    except (MemoryError, ValueError) as exc:
        raise EncodingError(f"cannot allocate {final.width}x{final.height} canvas: {exc}") from exc
    canvas[:] = BACKGROUND_COLOR

    half = final.half_width
    canvas[:, :half] = render_half(before, final.before, half, final.height)
    canvas[:, half:] = render_half(after, final.after, final.width - half, final.height)

    image = Image.fromarray(canvas, "RGB")

    if include_labels:
        image = draw_labels(image, half)

    if watermark is not None:
        image = add_watermark(image, watermark, logo_loader=logo_loader)

    return image.convert("RGB")
