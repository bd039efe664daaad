# poseproof/animation.py
"""
Animated GIF comparisons.

    slider     a vertical wipe sweeps left to right, revealing "after"
    crossfade  "before" dissolves into "after" with cubic easing
    toggle     snaps between the two with long holds on each

Frames are cut from the same aligned, cropped layout as the still export,
drawn at GIF_RESOLUTION so a loop stays around 1-2 MB.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import cv2
import numpy as np
from PIL import Image, ImageDraw, ImageFilter

from .canvas import FinalCanvas
from .compositor import draw_text_labels, label_metrics, render_half
from .config import (
    ANIMATION_FILENAME_PREFIX,
    DEFAULT_ANIMATION_DURATION,
    GIF_RESOLUTION,
    MAX_ANIMATION_DURATION,
)
from .errors import InvalidExportOptions
from .export import PhotoInput, export_filename, parse_export_format, prepare_layout
from .layout import AlignedDrawResult
from .logger import console
from .utils import MIME_TYPES, frames_to_gif
from .watermark import WatermarkOptions, add_watermark, fetch_logo, validate_watermark_options


class AnimationStyle(str, Enum):
    SLIDER = "slider"
    CROSSFADE = "crossfade"
    TOGGLE = "toggle"


# ~30fps wipe, ~24fps fade over the requested duration
FRAME_COUNTS = {
    AnimationStyle.SLIDER: 30,
    AnimationStyle.CROSSFADE: 24,
}

# hold before, snap, hold after, snap back; independent of duration
TOGGLE_DELAYS_MS = (800, 800, 800, 800, 0, 800, 800, 800, 800, 800, 0, 800)

WIPE_LINE_WIDTH = 4
WIPE_LINE_COLOR = (255, 255, 255, 255)
WIPE_SHADOW = (0, 0, 0, 77)
WIPE_SHADOW_BLUR = 4
WIPE_SHADOW_OFFSET = -2


@dataclass
class AnimationOptions:
    style: str = AnimationStyle.CROSSFADE.value
    duration: float = DEFAULT_ANIMATION_DURATION  # seconds, ignored by toggle
    include_labels: bool = False
    watermark: WatermarkOptions = field(default_factory=WatermarkOptions)


@dataclass
class AnimationResult:
    image_bytes: bytes
    filename: str
    width: int
    height: int
    mime_type: str
    style: AnimationStyle
    frame_count: int
    layout: AlignedDrawResult
    canvas: FinalCanvas


# (text, "left" | "right" | "center")
Label = Tuple[str, str]
FrameRenderer = Callable[[np.ndarray, np.ndarray, float], Tuple[Image.Image, List[Label]]]


def ease_in_out_cubic(t: float) -> float:
    if t < 0.5:
        return 4 * t * t * t
    return 1 - math.pow(-2 * t + 2, 3) / 2


def frame_delays(style: AnimationStyle, duration: float = DEFAULT_ANIMATION_DURATION) -> List[int]:
    """Per-frame delays in milliseconds; the list length is the frame count."""
    if style is AnimationStyle.TOGGLE:
        return list(TOGGLE_DELAYS_MS)
    count = FRAME_COUNTS[style]
    return [int(round(duration * 1000 / count))] * count


def validate_animation_options(options: AnimationOptions) -> AnimationStyle:
    try:
        style = AnimationStyle(options.style)
    except ValueError:
        allowed = ", ".join(s.value for s in AnimationStyle)
        raise InvalidExportOptions(
            f"unsupported animation style {options.style!r}, expected one of {allowed}"
        ) from None

    if not 0 < options.duration <= MAX_ANIMATION_DURATION:
        raise InvalidExportOptions(
            f"duration must be in (0, {MAX_ANIMATION_DURATION}] seconds, got {options.duration}"
        )

    validate_watermark_options(options.watermark)
    return style


# ==========================
# FRAME RENDERERS
# ==========================

def _rgba(pixels: np.ndarray) -> Image.Image:
    return Image.fromarray(pixels, "RGB").convert("RGBA")


def _draw_wipe_line(frame: Image.Image, wipe_x: float) -> Image.Image:
    shadow = Image.new("RGBA", frame.size, (0, 0, 0, 0))
    shadow_x = wipe_x + WIPE_SHADOW_OFFSET
    ImageDraw.Draw(shadow).line(
        [(shadow_x, 0), (shadow_x, frame.height)], fill=WIPE_SHADOW, width=WIPE_LINE_WIDTH
    )
    shadow = shadow.filter(ImageFilter.GaussianBlur(WIPE_SHADOW_BLUR))

    line = Image.new("RGBA", frame.size, (0, 0, 0, 0))
    ImageDraw.Draw(line).line(
        [(wipe_x, 0), (wipe_x, frame.height)], fill=WIPE_LINE_COLOR, width=WIPE_LINE_WIDTH
    )
    return Image.alpha_composite(Image.alpha_composite(frame, shadow), line)


def slider_frame(before: np.ndarray, after: np.ndarray, progress: float):
    """The after photo left of the wipe line, the before photo right of it."""
    width = before.shape[1]
    wipe_x = progress * width
    split = int(round(wipe_x))

    pixels = after.copy()
    pixels[:, split:] = before[:, split:]
    frame = _draw_wipe_line(_rgba(pixels), wipe_x)

    label = ("After", "left") if progress < 0.5 else ("Before", "right")
    return frame, [label]


def crossfade_frame(before: np.ndarray, after: np.ndarray, progress: float):
    eased = ease_in_out_cubic(progress)
    pixels = cv2.addWeighted(before, 1.0 - eased, after, eased, 0.0)
    label = ("Before", "center") if eased < 0.5 else ("After", "center")
    return _rgba(pixels), [label]


def toggle_frame(before: np.ndarray, after: np.ndarray, progress: float):
    # before for the first 40% and the final 10%, after in between
    if 0.4 <= progress < 0.9:
        return _rgba(after), [("After", "center")]
    return _rgba(before), [("Before", "center")]


FRAME_RENDERERS: Dict[AnimationStyle, FrameRenderer] = {
    AnimationStyle.SLIDER: slider_frame,
    AnimationStyle.CROSSFADE: crossfade_frame,
    AnimationStyle.TOGGLE: toggle_frame,
}


def _draw_frame_labels(frame: Image.Image, labels: Sequence[Label]) -> Image.Image:
    font_size, padding = label_metrics(frame.width)
    placed = []
    for text, side in labels:
        if side == "left":
            placed.append((text, (padding, padding), "lt"))
        elif side == "right":
            placed.append((text, (frame.width - padding, padding), "rt"))
        else:
            placed.append((text, (frame.width / 2, padding), "mt"))
    return draw_text_labels(frame, placed, font_size)


def render_frames(
    before: np.ndarray,
    after: np.ndarray,
    style: AnimationStyle,
    frame_count: int,
    include_labels: bool = False,
    overlay: Optional[Image.Image] = None,
) -> List[Image.Image]:
    """
    Render every frame from two already-aligned, frame-sized RGB arrays.

    `overlay` (the watermark, on a transparent layer) is composited last.
    """
    renderer = FRAME_RENDERERS[style]
    frames = []
    for index in range(frame_count):
        progress = index / (frame_count - 1) if frame_count > 1 else 0.0
        frame, labels = renderer(before, after, progress)
        if include_labels:
            frame = _draw_frame_labels(frame, labels)
        if overlay is not None:
            frame = Image.alpha_composite(frame, overlay)
        frames.append(frame.convert("RGB"))
    return frames


# ==========================
# EXPORT
# ==========================

def export_animation(
    before: PhotoInput,
    after: PhotoInput,
    export_format: Any,
    options: Optional[AnimationOptions] = None,
    logo_loader: Callable[[str], Image.Image] = fetch_logo,
    now: Optional[datetime] = None,
) -> AnimationResult:
    """
    Produce an animated GIF comparison.

    Raises InvalidExportOptions, ImageDecodeError or EncodingError, like
    export_composite.
    """
    options = options or AnimationOptions()
    fmt = parse_export_format(export_format)
    style = validate_animation_options(options)

    before_pixels, after_pixels, layout, final = prepare_layout(
        before, after, fmt, GIF_RESOLUTION, source="gif"
    )

    # each frame shows a single photo, so it is one half of the still canvas
    width, height = final.half_width, final.height
    before_frame = render_half(before_pixels, final.before, width, height)
    after_frame = render_half(after_pixels, final.after, width, height)

    # the watermark is identical on every frame; fetch and draw it once
    overlay = add_watermark(
        Image.new("RGBA", (width, height), (0, 0, 0, 0)),
        options.watermark,
        logo_loader=logo_loader,
    )

    delays = frame_delays(style, options.duration)
    frames = render_frames(
        before_frame,
        after_frame,
        style,
        len(delays),
        include_labels=options.include_labels,
        overlay=overlay,
    )
    data = frames_to_gif(frames, delays)

    console.log(
        f"[cyan]{style.value} GIF {width}x{height}: {len(frames)} frames, {len(data) / 1024:.0f} KB[/cyan]"
    )

    return AnimationResult(
        image_bytes=data,
        filename=export_filename("gif", now, prefix=f"{ANIMATION_FILENAME_PREFIX}-{style.value}"),
        width=width,
        height=height,
        mime_type=MIME_TYPES["GIF"],
        style=style,
        frame_count=len(frames),
        layout=layout,
        canvas=final,
    )
