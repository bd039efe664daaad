# poseproof/canvas.py
"""
Export formats, provisional canvas sizing and the dynamic crop that trims
the final canvas to the shortest common visible height.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Union

from .config import DEFAULT_RESOLUTION
from .layout import AlignedDrawResult, DrawParams


class ExportFormat(str, Enum):
    SQUARE = "1:1"
    PORTRAIT = "4:5"
    STORY = "9:16"


# half-canvas width / height
ASPECT_RATIOS = {
    ExportFormat.SQUARE: 1.0,
    ExportFormat.PORTRAIT: 0.8,
    ExportFormat.STORY: 9 / 16,
}

HEIGHT_MULTIPLIERS = {
    ExportFormat.SQUARE: 1.0,
    ExportFormat.PORTRAIT: 1.25,
    ExportFormat.STORY: 16 / 9,
}


@dataclass(frozen=True)
class CanvasDimensions:
    width: int
    height: int
    half_width: int


@dataclass(frozen=True)
class FinalCanvas:
    """Canvas after dynamic crop, with draw params re-centered for it."""
    width: int
    height: int
    half_width: int
    width_trim_per_side: float
    before: DrawParams
    after: DrawParams

    def to_dict(self):
        return {
            "width": self.width,
            "height": self.height,
            "halfWidth": self.half_width,
            "widthTrimPerSide": self.width_trim_per_side,
            "before": self.before.to_dict(),
            "after": self.after.to_dict(),
        }


def aspect_ratio(export_format: Union[ExportFormat, str]) -> float:
    return ASPECT_RATIOS[ExportFormat(export_format)]


def calculate_dimensions(
    export_format: Union[ExportFormat, str],
    resolution: int = DEFAULT_RESOLUTION,
) -> CanvasDimensions:
    """Provisional canvas: two `resolution`-wide halves side by side."""
    height = round(resolution * HEIGHT_MULTIPLIERS[ExportFormat(export_format)])
    return CanvasDimensions(width=resolution * 2, height=height, half_width=resolution)


def apply_dynamic_crop(
    layout: AlignedDrawResult,
    provisional: CanvasDimensions,
    export_format: Union[ExportFormat, str],
) -> FinalCanvas:
    """
    Crop to whichever image runs out first, then narrow each half to keep
    the requested aspect ratio, trimming equally from both sides.

    The visible height is floored so the last pixel row is always covered.
    """
    visible = min(layout.before.bottom, layout.after.bottom, provisional.height)
    visible_height = max(1, int(math.floor(visible + 1e-6)))

    final_half_width = max(1, round(visible_height * aspect_ratio(export_format)))
    trim = (provisional.half_width - final_half_width) / 2

    return FinalCanvas(
        width=final_half_width * 2,
        height=visible_height,
        half_width=final_half_width,
        width_trim_per_side=trim,
        before=layout.before.shifted(dx=-trim),
        after=layout.after.shifted(dx=-trim),
    )
