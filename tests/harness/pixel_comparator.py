"""Golden-image comparison for rendered exports."""

from dataclasses import dataclass
from typing import Optional

import numpy as np
from PIL import Image

# per-channel difference, as a fraction of 255, that counts as a changed pixel
DEFAULT_THRESHOLD = 0.1
# share of changed pixels still accepted (anti-aliasing, encoder noise)
DEFAULT_ALLOWED_DIFF = 0.005


@dataclass
class ComparisonResult:
    passed: bool
    diff_pixels: int
    total_pixels: int
    diff_ratio: float
    message: str
    diff_image: Optional[Image.Image] = None


def compare_images(
    actual: Image.Image,
    expected: Image.Image,
    threshold: float = DEFAULT_THRESHOLD,
    allowed_diff: float = DEFAULT_ALLOWED_DIFF,
    with_diff_image: bool = False,
) -> ComparisonResult:
    if actual.size != expected.size:
        return ComparisonResult(
            passed=False,
            diff_pixels=0,
            total_pixels=0,
            diff_ratio=1.0,
            message=f"dimension mismatch: {actual.size} vs {expected.size}",
        )

    a = np.asarray(actual.convert("RGB"), dtype=np.int16)
    e = np.asarray(expected.convert("RGB"), dtype=np.int16)
    changed = (np.abs(a - e) > threshold * 255).any(axis=2)

    diff_pixels = int(changed.sum())
    total = changed.size
    ratio = diff_pixels / total

    diff_image = None
    if with_diff_image:
        diff = np.zeros_like(a, dtype=np.uint8)
        diff[changed] = (255, 0, 0)
        diff_image = Image.fromarray(diff, "RGB")

    passed = ratio <= allowed_diff
    return ComparisonResult(
        passed=passed,
        diff_pixels=diff_pixels,
        total_pixels=total,
        diff_ratio=ratio,
        message=f"{diff_pixels}/{total} pixels differ ({ratio:.3%})",
        diff_image=diff_image,
    )
