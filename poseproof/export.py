# poseproof/export.py
"""
Export pipeline: validate options, decode both photos, run the aligned
layout, crop to the common visible height, composite and encode.

    export_composite(before, after, "4:5", ExportOptions(resolution=1440))

Options are checked before anything is decoded, so a bad request never
allocates a canvas.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from .alignment_log import build_log_entry, record_alignment
from .canvas import ExportFormat, FinalCanvas, apply_dynamic_crop, calculate_dimensions
from .compositor import compose
from .config import (
    DEFAULT_QUALITY,
    DEFAULT_RESOLUTION,
    EXPORT_FILENAME_PREFIX,
    MAX_QUALITY,
    MIN_QUALITY,
    SUPPORTED_RESOLUTIONS,
    LayoutConfig,
    debug_alignment_enabled,
)
from .errors import EncodingError, ExportError, ImageDecodeError, InvalidExportOptions
from .landmarks import to_landmarks
from .layout import AlignedDrawResult, calculate_aligned_draw_params
from .utils import MIME_TYPES, flatten_to_rgb, load_image, pil_to_bytes
from .watermark import WatermarkOptions, fetch_logo, validate_watermark_options

__all__ = [
    "ExportError",
    "InvalidExportOptions",
    "ImageDecodeError",
    "EncodingError",
    "PhotoInput",
    "ExportOptions",
    "ExportResult",
    "validate_export_request",
    "export_filename",
    "parse_export_format",
    "prepare_layout",
    "export_composite",
]

OUTPUT_FORMATS = {"png": ("PNG", "png"), "jpeg": ("JPEG", "jpg"), "jpg": ("JPEG", "jpg")}


@dataclass
class PhotoInput:
    """
    One side of the comparison.

    `image` is anything utils.load_image understands. Width and height are
    informational; the decoded pixel size is what the layout uses.
    """
    image: Any
    landmarks: Optional[Sequence[Any]] = None
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass
class ExportOptions:
    resolution: int = DEFAULT_RESOLUTION
    quality: float = DEFAULT_QUALITY
    include_labels: bool = False
    watermark: WatermarkOptions = field(default_factory=WatermarkOptions)
    output_format: str = "png"


@dataclass
class ExportResult:
    image_bytes: bytes
    filename: str
    width: int
    height: int
    mime_type: str
    layout: AlignedDrawResult
    canvas: FinalCanvas


def parse_export_format(export_format: Any) -> ExportFormat:
    try:
        return ExportFormat(export_format)
    except ValueError:
        allowed = ", ".join(f.value for f in ExportFormat)
        raise InvalidExportOptions(
            f"unsupported format {export_format!r}, expected one of {allowed}"
        ) from None


def validate_export_request(export_format: Any, options: ExportOptions) -> ExportFormat:
    """Raise InvalidExportOptions on any usage error; returns the parsed format."""
    if not MIN_QUALITY <= options.quality <= MAX_QUALITY:
        raise InvalidExportOptions(
            f"quality must be between {MIN_QUALITY} and {MAX_QUALITY}, got {options.quality}"
        )

    fmt = parse_export_format(export_format)

    if options.resolution not in SUPPORTED_RESOLUTIONS:
        raise InvalidExportOptions(
            f"unsupported resolution {options.resolution}, expected one of {SUPPORTED_RESOLUTIONS}"
        )

    if options.output_format.lower() not in OUTPUT_FORMATS:
        raise InvalidExportOptions(f"unsupported output format {options.output_format!r}")

    validate_watermark_options(options.watermark)
    return fmt


def export_filename(
    extension: str = "png",
    now: Optional[datetime] = None,
    prefix: str = EXPORT_FILENAME_PREFIX,
) -> str:
    now = now or datetime.now(timezone.utc)
    stamp = now.isoformat().replace(":", "-").replace(".", "-")
    return f"{prefix}-{stamp}.{extension}"


def _decode(photo: PhotoInput):
    img = load_image(photo.image)
    if img.width <= 0 or img.height <= 0:
        raise ImageDecodeError(f"decoded image has no pixels ({img.width}x{img.height})")
    return img, flatten_to_rgb(img)


def prepare_layout(
    before: PhotoInput,
    after: PhotoInput,
    fmt: ExportFormat,
    resolution: int,
    source: str,
) -> Tuple[np.ndarray, np.ndarray, AlignedDrawResult, FinalCanvas]:
    """Decode both photos and compute the cropped canvas they are drawn on."""
    before_img, before_pixels = _decode(before)
    after_img, after_pixels = _decode(after)

    before_landmarks = to_landmarks(before.landmarks)
    after_landmarks = to_landmarks(after.landmarks)

    provisional = calculate_dimensions(fmt, resolution)
    layout = calculate_aligned_draw_params(
        before_img.size,
        after_img.size,
        before_landmarks,
        after_landmarks,
        provisional.half_width,
        provisional.height,
        config=LayoutConfig.from_env(),
    )
    final = apply_dynamic_crop(layout, provisional, fmt)

    if debug_alignment_enabled():
        record_alignment(
            build_log_entry(
                layout,
                before_img.size,
                after_img.size,
                provisional.half_width,
                provisional.height,
                before_landmarks,
                after_landmarks,
                source=source,
            )
        )

    return before_pixels, after_pixels, layout, final


def export_composite(
    before: PhotoInput,
    after: PhotoInput,
    export_format: Any,
    options: Optional[ExportOptions] = None,
    logo_loader: Callable[[str], Image.Image] = fetch_logo,
    now: Optional[datetime] = None,
) -> ExportResult:
    """
    Produce the side-by-side export.

    Raises InvalidExportOptions, ImageDecodeError or EncodingError; missing
    or incomplete landmarks are never an error.
    """
    options = options or ExportOptions()
    fmt = validate_export_request(export_format, options)
    encoder, extension = OUTPUT_FORMATS[options.output_format.lower()]

    before_pixels, after_pixels, layout, final = prepare_layout(
        before, after, fmt, options.resolution, source=extension
    )

    image = compose(
        before_pixels,
        after_pixels,
        final,
        include_labels=options.include_labels,
        watermark=options.watermark,
        logo_loader=logo_loader,
    )
    data = pil_to_bytes(image, encoder, options.quality)

    return ExportResult(
        image_bytes=data,
        filename=export_filename(extension, now),
        width=final.width,
        height=final.height,
        mime_type=MIME_TYPES[encoder],
        layout=layout,
        canvas=final,
    )
