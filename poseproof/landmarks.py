# poseproof/landmarks.py
"""
Pose landmark types and the geometry helpers shared by the interactive
aligner and the export layout engine.

Landmarks follow the MediaPipe Pose convention: 33 points, x/y normalized
to the source image, visibility in [0, 1].
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple

from .config import HEAD_CROPPED_THRESHOLD, POSE_LANDMARK_COUNT, VISIBILITY_THRESHOLD


# ==========================
# CONSTANTS
# ==========================

# MediaPipe Pose landmark indices
NOSE = 0
LEFT_SHOULDER = 11
RIGHT_SHOULDER = 12
LEFT_HIP = 23
RIGHT_HIP = 24


@dataclass(frozen=True)
class Landmark:
    """One detected body keypoint."""
    x: float
    y: float
    z: float = 0.0
    visibility: float = 0.0

    @property
    def is_visible(self) -> bool:
        return self.visibility >= VISIBILITY_THRESHOLD


class Point(NamedTuple):
    x: float
    y: float


class AnchorType(str, Enum):
    HEAD = "head"
    SHOULDERS = "shoulders"
    HIPS = "hips"
    FULL = "full"


ANCHOR_INDICES: Dict[AnchorType, Tuple[int, ...]] = {
    AnchorType.HEAD: (NOSE,),
    AnchorType.SHOULDERS: (LEFT_SHOULDER, RIGHT_SHOULDER),
    AnchorType.HIPS: (LEFT_HIP, RIGHT_HIP),
    AnchorType.FULL: (NOSE, LEFT_HIP, RIGHT_HIP),
}

Landmarks = Sequence[Landmark]


# ==========================
# COERCION / ACCESS
# ==========================

def to_landmark(raw: Any) -> Landmark:
    """Accept a Landmark, a mapping, or any object with x/y/z/visibility."""
    if isinstance(raw, Landmark):
        return raw
    if isinstance(raw, dict):
        return Landmark(
            x=float(raw["x"]),
            y=float(raw["y"]),
            z=float(raw.get("z", 0.0)),
            visibility=float(raw.get("visibility", 0.0)),
        )
    return Landmark(
        x=float(raw.x),
        y=float(raw.y),
        z=float(getattr(raw, "z", 0.0)),
        visibility=float(getattr(raw, "visibility", 0.0)),
    )


def to_landmarks(raw: Optional[Sequence[Any]]) -> Optional[List[Landmark]]:
    if raw is None:
        return None
    return [to_landmark(item) for item in raw]


def is_complete_pose(landmarks: Optional[Landmarks]) -> bool:
    """Shorter arrays are treated as entirely invalid, never partially valid."""
    return landmarks is not None and len(landmarks) >= POSE_LANDMARK_COUNT


def visible_landmark(landmarks: Optional[Landmarks], index: int) -> Optional[Landmark]:
    if landmarks is None or index >= len(landmarks):
        return None
    lm = landmarks[index]
    if lm is None or not lm.is_visible:
        return None
    return lm


def is_head_cropped(landmarks: Optional[Landmarks]) -> bool:
    """True when the nose is not visible or sits above the visible frame.

    An incomplete landmark array counts as cropped.
    """
    if not is_complete_pose(landmarks):
        return True
    nose = visible_landmark(landmarks, NOSE)
    return nose is None or nose.y < HEAD_CROPPED_THRESHOLD


# ==========================
# CENTER POINTS
# ==========================

def center_of(landmarks: Optional[Landmarks], indices: Sequence[int]) -> Optional[Point]:
    """Plain mean of the visible landmarks at `indices`, or None."""
    points = [visible_landmark(landmarks, idx) for idx in indices]
    points = [lm for lm in points if lm is not None]
    if not points:
        return None
    return Point(
        x=sum(lm.x for lm in points) / len(points),
        y=sum(lm.y for lm in points) / len(points),
    )


def _pair_center(landmarks: Optional[Landmarks], left: int, right: int) -> Optional[Point]:
    if not is_complete_pose(landmarks):
        return None
    return center_of(landmarks, (left, right))


def shoulder_center(landmarks: Optional[Landmarks]) -> Optional[Point]:
    """Shoulder midpoint, or whichever single shoulder is visible."""
    return _pair_center(landmarks, LEFT_SHOULDER, RIGHT_SHOULDER)


def hip_center(landmarks: Optional[Landmarks]) -> Optional[Point]:
    return _pair_center(landmarks, LEFT_HIP, RIGHT_HIP)


# ==========================
# BODY HEIGHT REFERENCE
# ==========================

def _nose_to_hip_center(landmarks: Landmarks) -> Optional[float]:
    nose = visible_landmark(landmarks, NOSE)
    left_hip = visible_landmark(landmarks, LEFT_HIP)
    right_hip = visible_landmark(landmarks, RIGHT_HIP)
    if nose is None or left_hip is None or right_hip is None:
        return None
    return abs((left_hip.y + right_hip.y) / 2 - nose.y)


def _nose_to_single_hip(landmarks: Landmarks) -> Optional[float]:
    nose = visible_landmark(landmarks, NOSE)
    if nose is None:
        return None
    hip = visible_landmark(landmarks, LEFT_HIP) or visible_landmark(landmarks, RIGHT_HIP)
    if hip is None:
        return None
    return abs(hip.y - nose.y)


def _same_side_shoulder_to_hip(landmarks: Landmarks) -> Optional[float]:
    for shoulder_idx, hip_idx in ((LEFT_SHOULDER, LEFT_HIP), (RIGHT_SHOULDER, RIGHT_HIP)):
        shoulder = visible_landmark(landmarks, shoulder_idx)
        hip = visible_landmark(landmarks, hip_idx)
        if shoulder is not None and hip is not None:
            return abs(hip.y - shoulder.y)
    return None


BodyHeightStrategy = Tuple[str, Callable[[Landmarks], Optional[float]]]

# Tried in order; the first strategy that yields a value wins
BODY_HEIGHT_STRATEGIES: Tuple[BodyHeightStrategy, ...] = (
    ("nose_to_hip_center", _nose_to_hip_center),
    ("nose_to_single_hip", _nose_to_single_hip),
    ("shoulder_to_hip", _same_side_shoulder_to_hip),
)

# Used when the nose is present but reported above the frame
TORSO_ONLY_STRATEGIES: Tuple[BodyHeightStrategy, ...] = (
    ("shoulder_to_hip", _same_side_shoulder_to_hip),
)


def body_height_strategy(
    landmarks: Optional[Landmarks],
    strategies: Sequence[BodyHeightStrategy] = BODY_HEIGHT_STRATEGIES,
) -> Tuple[Optional[str], Optional[float]]:
    """Return (strategy_name, height) for the first strategy that succeeds."""
    if not is_complete_pose(landmarks):
        return None, None
    for name, strategy in strategies:
        value = strategy(landmarks)
        if value is not None:
            return name, value
    return None, None


def body_height_reference(
    landmarks: Optional[Landmarks],
    strategies: Sequence[BodyHeightStrategy] = BODY_HEIGHT_STRATEGIES,
) -> Optional[float]:
    """
    Normalized proxy for how tall the body appears in frame.

    Returns None when no strategy qualifies; callers substitute
    DEFAULT_BODY_HEIGHT.
    """
    _, value = body_height_strategy(landmarks, strategies)
    return value
