# poseproof/alignment.py
"""
Interactive alignment: a single scale + offset that moves the "after" photo
onto the "before" photo around a chosen anchor. Cheap enough to recompute on
every slider change in the live preview.

All values are normalized; offsets are fractions of the image size.
"""

import math
from dataclasses import dataclass
from typing import Optional, Union

from .config import MAX_ALIGNMENT_SCALE, MIN_ALIGNMENT_SCALE
from .landmarks import (
    ANCHOR_INDICES,
    AnchorType,
    Landmarks,
    body_height_reference,
    center_of,
    is_complete_pose,
    visible_landmark,
)
from .logger import console


@dataclass(frozen=True)
class AlignmentResult:
    scale: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0

    def to_dict(self):
        return {"scale": self.scale, "offsetX": self.offset_x, "offsetY": self.offset_y}


IDENTITY_ALIGNMENT = AlignmentResult()

ANCHOR_DESCRIPTIONS = {
    AnchorType.HEAD: "Aligns based on head position (nose)",
    AnchorType.SHOULDERS: "Aligns based on shoulder width",
    AnchorType.HIPS: "Aligns based on hip position",
    AnchorType.FULL: "Aligns based on full body (head to hips)",
}


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def calculate_alignment(
    landmarks_before: Optional[Landmarks],
    landmarks_after: Optional[Landmarks],
    anchor: Union[AnchorType, str] = AnchorType.HEAD,
) -> AlignmentResult:
    """
    Compute the transform that puts the after anchor on the before anchor.

    The after photo is scaled around its own center (0.5, 0.5) so its body
    matches the before body height, then translated so the scaled anchor
    lands on the before anchor. Any missing input gives the identity.
    """
    anchor = AnchorType(anchor)

    if not is_complete_pose(landmarks_before) or not is_complete_pose(landmarks_after):
        console.log("[yellow]Invalid landmarks provided for alignment calculation[/yellow]")
        return IDENTITY_ALIGNMENT

    indices = ANCHOR_INDICES[anchor]
    anchor_before = center_of(landmarks_before, indices)
    anchor_after = center_of(landmarks_after, indices)

    if anchor_before is None or anchor_after is None:
        console.log(
            f"[yellow]No visible '{anchor.value}' landmarks, using identity alignment[/yellow]"
        )
        return IDENTITY_ALIGNMENT

    ref_before = body_height_reference(landmarks_before)
    ref_after = body_height_reference(landmarks_after)

    scale = 1.0
    if ref_before is not None and ref_after is not None and ref_after > 0:
        scale = _clamp(ref_before / ref_after, MIN_ALIGNMENT_SCALE, MAX_ALIGNMENT_SCALE)

    scaled_x = 0.5 + (anchor_after.x - 0.5) * scale
    scaled_y = 0.5 + (anchor_after.y - 0.5) * scale

    result = AlignmentResult(
        scale=scale,
        offset_x=anchor_before.x - scaled_x,
        offset_y=anchor_before.y - scaled_y,
    )
    if not all(math.isfinite(v) for v in (result.scale, result.offset_x, result.offset_y)):
        return IDENTITY_ALIGNMENT
    return result


def can_calculate_alignment(
    landmarks: Optional[Landmarks],
    anchor: Union[AnchorType, str] = AnchorType.HEAD,
) -> bool:
    """Head needs its single point; other anchors need at least half."""
    anchor = AnchorType(anchor)
    if not is_complete_pose(landmarks):
        return False

    indices = ANCHOR_INDICES[anchor]
    visible = sum(1 for idx in indices if visible_landmark(landmarks, idx) is not None)
    required = 1 if anchor is AnchorType.HEAD else math.ceil(len(indices) / 2)
    return visible >= required


def anchor_description(anchor: Union[AnchorType, str]) -> str:
    return ANCHOR_DESCRIPTIONS[AnchorType(anchor)]
