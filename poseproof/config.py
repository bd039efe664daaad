# poseproof/config.py
"""
Tunable constants for alignment and compositing.

The numbers below were calibrated against real before/after photo pairs.
Deployments can recalibrate the export layout through POSEPROOF_* env vars
(see LayoutConfig.from_env) without touching the algorithm.
"""

import os
from dataclasses import dataclass


# ==========================
# LANDMARKS
# ==========================

# Landmarks below this confidence are ignored
VISIBILITY_THRESHOLD = 0.5

# A nose reported above 2% of the frame is an extrapolated (cropped) head
HEAD_CROPPED_THRESHOLD = 0.02

# A usable pose has exactly this many entries
POSE_LANDMARK_COUNT = 33

# Fallbacks when the pose gives us nothing usable
# Shoulder line assumed for a photo whose shoulders are not visible
DEFAULT_SHOULDER_Y = 0.25
DEFAULT_BODY_HEIGHT = 0.5
DEFAULT_CENTER_X = 0.5


# ==========================
# INTERACTIVE ALIGNMENT
# ==========================

MIN_ALIGNMENT_SCALE = 0.5
MAX_ALIGNMENT_SCALE = 2.0


# ==========================
# EXPORT LAYOUT
# ==========================

# Was [0.8, 1.25] before calibration; that rejected legitimate disparities
MIN_BODY_SCALE = 0.65
MAX_BODY_SCALE = 1.60

MIN_HEADROOM_PERCENT = 0.05
MAX_HEADROOM_PERCENT = 0.20

# Every image overflows the target height by at least 15%
MIN_OVERFLOW = 1.15

# Horizontal anchor alignment may crop at most this share of width per side
MAX_HORIZONTAL_CROP = 0.20


# ==========================
# EXPORT OPTIONS
# ==========================

DEFAULT_RESOLUTION = 1080
SUPPORTED_RESOLUTIONS = (1080, 1440, 2160)
DEFAULT_QUALITY = 0.92
MIN_QUALITY = 0.8
MAX_QUALITY = 1.0

BACKGROUND_COLOR = (255, 255, 255)
EXPORT_FILENAME_PREFIX = "poseproof-export"


# ==========================
# ANIMATED EXPORT
# ==========================

# Half the still resolution keeps GIFs around 1-2 MB
GIF_RESOLUTION = 540
DEFAULT_ANIMATION_DURATION = 2.0
MAX_ANIMATION_DURATION = 10.0
ANIMATION_FILENAME_PREFIX = "poseproof"


@dataclass(frozen=True)
class LayoutConfig:
    """Calibration knobs for the export layout engine."""

    min_body_scale: float = MIN_BODY_SCALE
    max_body_scale: float = MAX_BODY_SCALE
    min_headroom: float = MIN_HEADROOM_PERCENT
    max_headroom: float = MAX_HEADROOM_PERCENT
    min_overflow: float = MIN_OVERFLOW
    max_horizontal_crop: float = MAX_HORIZONTAL_CROP

    def __post_init__(self):
        if not 0 < self.min_body_scale <= self.max_body_scale:
            raise ValueError(
                f"body scale bounds must satisfy 0 < min <= max, "
                f"got [{self.min_body_scale}, {self.max_body_scale}]"
            )
        if not 0 <= self.min_headroom <= self.max_headroom < 1:
            raise ValueError(
                f"headroom band must satisfy 0 <= min <= max < 1, "
                f"got [{self.min_headroom}, {self.max_headroom}]"
            )
        if self.min_overflow < 1:
            raise ValueError(f"min_overflow must be >= 1, got {self.min_overflow}")
        if not 0 <= self.max_horizontal_crop < 0.5:
            raise ValueError(
                f"max_horizontal_crop must be in [0, 0.5), got {self.max_horizontal_crop}"
            )

    @classmethod
    def from_env(cls) -> "LayoutConfig":
        """Build a config, overriding defaults from POSEPROOF_* variables."""
        return cls(
            min_body_scale=float(os.getenv("POSEPROOF_MIN_BODY_SCALE", MIN_BODY_SCALE)),
            max_body_scale=float(os.getenv("POSEPROOF_MAX_BODY_SCALE", MAX_BODY_SCALE)),
            min_headroom=float(os.getenv("POSEPROOF_MIN_HEADROOM", MIN_HEADROOM_PERCENT)),
            max_headroom=float(os.getenv("POSEPROOF_MAX_HEADROOM", MAX_HEADROOM_PERCENT)),
            min_overflow=float(os.getenv("POSEPROOF_MIN_OVERFLOW", MIN_OVERFLOW)),
            max_horizontal_crop=float(
                os.getenv("POSEPROOF_MAX_HORIZONTAL_CROP", MAX_HORIZONTAL_CROP)
            ),
        )


DEFAULT_LAYOUT = LayoutConfig()


def debug_alignment_enabled() -> bool:
    return os.getenv("POSEPROOF_DEBUG_ALIGNMENT", "false").lower() == "true"
