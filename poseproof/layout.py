# poseproof/layout.py
"""
Export-time aligned layout engine.

Computes where to draw the full "before" and "after" source images inside a
target half-canvas so that heads (or shoulders, when a head is cropped out of
frame) sit at the same height, bodies appear the same size, and no canvas
background is ever exposed.

Phases:
  1.   Body scale    - after image is scaled so both bodies match in height
  1.5  Overflow      - both images overflow the target by the same amount, >= 15%
  2.   Headroom      - the image with the least headroom sets the anchor line
  3.   Positioning   - vertical placement on the anchor line, horizontal anchor
                       alignment within the available overflow
"""

from dataclasses import dataclass, replace
from typing import Any, Optional, Tuple

from .config import (
    DEFAULT_BODY_HEIGHT,
    DEFAULT_CENTER_X,
    DEFAULT_LAYOUT,
    DEFAULT_SHOULDER_Y,
    LayoutConfig,
)
from .landmarks import (
    BODY_HEIGHT_STRATEGIES,
    NOSE,
    TORSO_ONLY_STRATEGIES,
    Landmarks,
    Point,
    body_height_reference,
    is_complete_pose,
    is_head_cropped,
    shoulder_center,
    visible_landmark,
)


# ==========================
# TYPES
# ==========================

@dataclass(frozen=True)
class DrawParams:
    """Where and how large to blit the entire source image, in canvas pixels."""
    draw_x: float
    draw_y: float
    draw_width: float
    draw_height: float

    @property
    def bottom(self) -> float:
        return self.draw_y + self.draw_height

    def shifted(self, dx: float = 0.0, dy: float = 0.0) -> "DrawParams":
        return replace(self, draw_x=self.draw_x + dx, draw_y=self.draw_y + dy)

    def canvas_point(self, x_norm: float, y_norm: float) -> Point:
        """Canvas position of a normalized point of the source image."""
        return Point(
            x=self.draw_x + x_norm * self.draw_width,
            y=self.draw_y + y_norm * self.draw_height,
        )

    def to_dict(self):
        return {
            "drawX": self.draw_x,
            "drawY": self.draw_y,
            "drawWidth": self.draw_width,
            "drawHeight": self.draw_height,
        }


@dataclass(frozen=True)
class AlignedDrawResult:
    before: DrawParams
    after: DrawParams
    use_shoulder_alignment: bool = False
    crop_top_offset: float = 0.0
    body_scale: float = 1.0
    # normalized anchor points used for vertical/horizontal alignment
    before_anchor: Point = Point(DEFAULT_CENTER_X, DEFAULT_SHOULDER_Y)
    after_anchor: Point = Point(DEFAULT_CENTER_X, DEFAULT_SHOULDER_Y)

    def to_dict(self):
        return {
            "before": self.before.to_dict(),
            "after": self.after.to_dict(),
            "useShoulderAlignment": self.use_shoulder_alignment,
            "cropTopOffset": self.crop_top_offset,
            "bodyScale": self.body_scale,
        }


# ==========================
# HELPERS
# ==========================

def image_size(img: Any) -> Tuple[float, float]:
    """Accept a (w, h) pair, a mapping, or any object with width/height."""
    if isinstance(img, (tuple, list)):
        width, height = img
    elif isinstance(img, dict):
        width, height = img["width"], img["height"]
    else:
        width, height = img.width, img.height
    width, height = float(width), float(height)
    if width <= 0 or height <= 0:
        raise ValueError(f"image dimensions must be positive, got {width}x{height}")
    return width, height


def calculate_cover_fit(
    img_width: float,
    img_height: float,
    target_width: float,
    target_height: float,
) -> DrawParams:
    """Aspect-fill: the image covers the target, excess is centered off-canvas."""
    img_aspect = img_width / img_height
    target_aspect = target_width / target_height

    if img_aspect > target_aspect:
        # wider than target: fit height, overflow width
        draw_height = target_height
        draw_width = target_height * img_aspect
    else:
        # taller than target: fit width, overflow height
        draw_width = target_width
        draw_height = target_width / img_aspect

    return DrawParams(
        draw_x=(target_width - draw_width) / 2,
        draw_y=(target_height - draw_height) / 2,
        draw_width=draw_width,
        draw_height=draw_height,
    )


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _shoulder_y(shoulders: Optional[Point]) -> float:
    return DEFAULT_SHOULDER_Y if shoulders is None else shoulders.y


def _export_body_height(landmarks: Optional[Landmarks]) -> float:
    """
    Body height for export scaling.

    A nose reported above the frame is extrapolated, so only the torso
    strategies are trusted for that photo.
    """
    nose = visible_landmark(landmarks, NOSE)
    strategies = TORSO_ONLY_STRATEGIES if nose is not None and is_head_cropped(landmarks) \
        else BODY_HEIGHT_STRATEGIES
    value = body_height_reference(landmarks, strategies)
    return DEFAULT_BODY_HEIGHT if value is None else value


def _choose_anchors(
    before_landmarks: Optional[Landmarks],
    after_landmarks: Optional[Landmarks],
) -> Tuple[bool, Point, Point]:
    """
    Pick the vertical anchor for the pair.

    Both photos always use the same anchor type. Shoulders replace the head
    as soon as either head is cropped; a photo without a visible shoulder
    line is anchored at DEFAULT_SHOULDER_Y.
    """
    before_shoulders = shoulder_center(before_landmarks)
    after_shoulders = shoulder_center(after_landmarks)

    before_x = before_shoulders.x if before_shoulders is not None else DEFAULT_CENTER_X
    after_x = after_shoulders.x if after_shoulders is not None else DEFAULT_CENTER_X

    if is_head_cropped(before_landmarks) or is_head_cropped(after_landmarks):
        return (
            True,
            Point(before_x, _shoulder_y(before_shoulders)),
            Point(after_x, _shoulder_y(after_shoulders)),
        )

    # neither head is cropped, so both noses are visible
    before_nose = visible_landmark(before_landmarks, NOSE)
    after_nose = visible_landmark(after_landmarks, NOSE)
    return False, Point(before_x, before_nose.y), Point(after_x, after_nose.y)


def _horizontal_range(width: float, target_width: float, max_crop: float) -> Tuple[float, float]:
    """drawX range that keeps the target covered and stays within the crop bound."""
    centered = (target_width - width) / 2
    crop = width * max_crop
    low = max(target_width - width, centered - crop)
    high = min(0.0, centered + crop)
    return low, high


def _align_horizontally(
    before_width: float,
    after_width: float,
    before_anchor_x: float,
    after_anchor_x: float,
    target_width: float,
    max_crop: float,
) -> Tuple[float, float]:
    """
    Put both anchors on a shared canvas X, as close to center as the
    available overflow allows. When no shared X exists the residual is split.
    """
    before_low, before_high = _horizontal_range(before_width, target_width, max_crop)
    after_low, after_high = _horizontal_range(after_width, target_width, max_crop)

    # canvas X reachable by each anchor
    before_reach = (before_low + before_anchor_x * before_width, before_high + before_anchor_x * before_width)
    after_reach = (after_low + after_anchor_x * after_width, after_high + after_anchor_x * after_width)

    shared_low = max(before_reach[0], after_reach[0])
    shared_high = min(before_reach[1], after_reach[1])

    if shared_low <= shared_high:
        anchor_canvas_x = _clamp(target_width / 2, shared_low, shared_high)
    else:
        anchor_canvas_x = (shared_low + shared_high) / 2

    before_x = _clamp(anchor_canvas_x - before_anchor_x * before_width, before_low, before_high)
    after_x = _clamp(anchor_canvas_x - after_anchor_x * after_width, after_low, after_high)
    return before_x, after_x


# ==========================
# MAIN LAYOUT
# ==========================

def calculate_aligned_draw_params(
    before_img: Any,
    after_img: Any,
    before_landmarks: Optional[Landmarks],
    after_landmarks: Optional[Landmarks],
    target_width: float,
    target_height: float,
    config: LayoutConfig = DEFAULT_LAYOUT,
) -> AlignedDrawResult:
    """
    Calculate aligned draw parameters for both images.

    Missing or short landmark arrays never raise; they fall back to the default
    shoulder line and body height so the export degrades to a roughly
    centered cover-fit.
    """
    if target_width <= 0 or target_height <= 0:
        raise ValueError(f"target must be positive, got {target_width}x{target_height}")

    # a short or malformed array carries no usable pose at all
    if not is_complete_pose(before_landmarks):
        before_landmarks = None
    if not is_complete_pose(after_landmarks):
        after_landmarks = None

    before_w, before_h = image_size(before_img)
    after_w, after_h = image_size(after_img)

    use_shoulders, before_anchor, after_anchor = _choose_anchors(before_landmarks, after_landmarks)

    # ==========================
    # PHASE 1: BODY SCALE
    # ==========================
    before_body = _export_body_height(before_landmarks)
    after_body = _export_body_height(after_landmarks)
    body_scale = before_body / after_body if after_body > 0 else 1.0
    body_scale = _clamp(body_scale, config.min_body_scale, config.max_body_scale)

    # ==========================
    # PHASE 1.5: OVERFLOW NORMALIZATION
    # ==========================
    before_fit = calculate_cover_fit(before_w, before_h, target_width, target_height)
    after_fit = calculate_cover_fit(after_w, after_h, target_width, target_height)

    before_overflow = before_fit.draw_height / target_height
    after_overflow = after_fit.draw_height / target_height
    target_overflow = max(before_overflow, after_overflow, config.min_overflow)

    before_zoom = target_overflow / before_overflow if before_overflow < target_overflow else 1.0
    after_zoom = target_overflow / after_overflow if after_overflow < target_overflow else 1.0
    after_zoom *= body_scale

    # A shrinking body scale must not take the after image below cover-fit
    # or below the minimum overflow; both images grow together so the
    # after/before ratio stays equal to body_scale.
    after_floor = max(config.min_overflow, after_overflow) / target_overflow
    shared_zoom = max(1.0, after_floor / body_scale)
    before_zoom *= shared_zoom
    after_zoom *= shared_zoom

    before_width = before_fit.draw_width * before_zoom
    before_height = before_fit.draw_height * before_zoom
    after_width = after_fit.draw_width * after_zoom
    after_height = after_fit.draw_height * after_zoom

    # ==========================
    # PHASE 2: HEADROOM CONSTRAINT
    # ==========================
    before_anchor_at_top = before_anchor.y * before_height
    after_anchor_at_top = after_anchor.y * after_height

    # the image with the least headroom decides where both anchors go
    constraint_y = min(before_anchor_at_top, after_anchor_at_top)
    min_anchor_y = target_height * config.min_headroom
    max_anchor_y = target_height * config.max_headroom
    target_anchor_y = _clamp(constraint_y, min_anchor_y, max_anchor_y)

    # ==========================
    # PHASE 3: POSITIONING
    # ==========================
    before_y = target_anchor_y - before_anchor_at_top
    after_y = target_anchor_y - after_anchor_at_top

    if not use_shoulders:
        # keep heads below the minimum headroom line
        before_y = max(before_y, min_anchor_y - before_anchor_at_top)
        after_y = max(after_y, min_anchor_y - after_anchor_at_top)

    # never expose the top of the canvas; lift both so anchors stay level
    crop_top_offset = max(0.0, before_y, after_y)
    before_y -= crop_top_offset
    after_y -= crop_top_offset

    before_x, after_x = _align_horizontally(
        before_width,
        after_width,
        before_anchor.x,
        after_anchor.x,
        target_width,
        config.max_horizontal_crop,
    )

    return AlignedDrawResult(
        before=DrawParams(before_x, before_y, before_width, before_height),
        after=DrawParams(after_x, after_y, after_width, after_height),
        use_shoulder_alignment=use_shoulders,
        crop_top_offset=crop_top_offset,
        body_scale=body_scale,
        before_anchor=before_anchor,
        after_anchor=after_anchor,
    )
