"""End-to-end export tests with synthetic photos."""

import io
from datetime import datetime, timezone
from pathlib import Path

import numpy as np
import pytest
from PIL import Image, ImageDraw

from poseproof.export import (
    EncodingError,
    ExportOptions,
    ImageDecodeError,
    InvalidExportOptions,
    PhotoInput,
    export_composite,
    export_filename,
)
from poseproof.watermark import WatermarkOptions
from tests.factories import make_pose, solid_png
from tests.harness.pixel_comparator import compare_images

RED = (255, 0, 0)
BLUE = (0, 0, 255)
CLEAN = WatermarkOptions(is_pro=True)
GOLDEN_DIR = Path(__file__).parent / "golden"


def photos(before_color=RED, after_color=BLUE, before_size=(600, 800), after_size=(600, 900)):
    before = PhotoInput(image=solid_png(*before_size, before_color), landmarks=make_pose(nose_y=0.15, hip_y=0.55))
    after = PhotoInput(image=solid_png(*after_size, after_color), landmarks=make_pose(nose_y=0.25, hip_y=0.75))
    return before, after


def decode(result):
    return Image.open(io.BytesIO(result.image_bytes))


class TestValidation:
    @pytest.mark.parametrize("quality", [0.5, 0.79, 1.01])
    def test_quality_out_of_range(self, quality):
        garbage = PhotoInput(image=b"not decoded yet")
        with pytest.raises(InvalidExportOptions, match="quality"):
            export_composite(garbage, garbage, "1:1", ExportOptions(quality=quality))

    def test_unknown_format(self):
        before, after = photos()
        with pytest.raises(InvalidExportOptions, match="format"):
            export_composite(before, after, "3:2")

    def test_unsupported_resolution(self):
        before, after = photos()
        with pytest.raises(InvalidExportOptions, match="resolution"):
            export_composite(before, after, "1:1", ExportOptions(resolution=720))

    def test_unsupported_output_format(self):
        before, after = photos()
        with pytest.raises(InvalidExportOptions):
            export_composite(before, after, "1:1", ExportOptions(output_format="webp"))

    def test_invalid_watermark(self):
        before, after = photos()
        with pytest.raises(InvalidExportOptions):
            export_composite(before, after, "1:1", ExportOptions(watermark=WatermarkOptions(opacity=2)))

    def test_usage_errors_are_value_errors(self):
        assert issubclass(InvalidExportOptions, ValueError)

    def test_corrupt_image(self):
        _, after = photos()
        with pytest.raises(ImageDecodeError):
            export_composite(PhotoInput(image=b"\x89PNG broken"), after, "1:1")


class TestComposite:
    @pytest.mark.parametrize("fmt, ratio", [("1:1", 1.0), ("4:5", 0.8), ("9:16", 9 / 16)])
    def test_dimensions_follow_format(self, fmt, ratio):
        before, after = photos()
        result = export_composite(before, after, fmt, ExportOptions(watermark=CLEAN))
        image = decode(result)
        assert image.size == (result.width, result.height)
        assert result.width == 2 * result.canvas.half_width
        assert result.canvas.half_width == round(result.height * ratio)
        assert result.height <= {"1:1": 1080, "4:5": 1350, "9:16": 1920}[fmt]

    def test_square_is_exactly_two_to_one(self):
        before, after = photos()
        result = export_composite(before, after, "1:1", ExportOptions(watermark=CLEAN))
        assert result.width == 2 * result.height

    def test_no_background_visible(self):
        before, after = photos()
        result = export_composite(before, after, "4:5", ExportOptions(watermark=CLEAN))
        arr = np.asarray(decode(result).convert("RGB"))
        half = result.canvas.half_width
        assert (arr[:, :half] == RED).all()
        assert (arr[:, half:] == BLUE).all()

    def test_missing_landmarks_still_export(self):
        before = PhotoInput(image=solid_png(500, 700, RED))
        after = PhotoInput(image=solid_png(800, 600, BLUE), landmarks=make_pose(count=3))
        result = export_composite(before, after, "1:1", ExportOptions(watermark=CLEAN))
        assert result.width == 2 * result.height
        assert result.layout.body_scale == 1.0

    def test_png_metadata(self):
        before, after = photos()
        now = datetime(2024, 1, 2, 3, 4, 5, 123000, tzinfo=timezone.utc)
        result = export_composite(before, after, "1:1", now=now)
        assert result.mime_type == "image/png"
        assert result.filename == "poseproof-export-2024-01-02T03-04-05-123000+00-00.png"
        assert result.image_bytes[:8] == b"\x89PNG\r\n\x1a\n"

    def test_jpeg_output(self):
        before, after = photos()
        result = export_composite(before, after, "1:1", ExportOptions(output_format="jpeg", quality=0.8))
        assert result.mime_type == "image/jpeg"
        assert result.filename.endswith(".jpg")
        assert result.image_bytes[:2] == b"\xff\xd8"

    def test_larger_resolution(self):
        before, after = photos()
        result = export_composite(before, after, "1:1", ExportOptions(resolution=1440, watermark=CLEAN))
        assert result.height <= 1440
        assert result.width == 2 * result.height

    def test_transparent_source_flattened(self):
        rgba = Image.new("RGBA", (600, 800), (0, 0, 0, 0))
        buf = io.BytesIO()
        rgba.save(buf, format="PNG")
        _, after = photos()
        result = export_composite(PhotoInput(image=buf.getvalue()), after, "1:1", ExportOptions(watermark=CLEAN))
        arr = np.asarray(decode(result).convert("RGB"))
        assert (arr[:, : result.canvas.half_width] == 255).all()


class TestGoldenImages:
    def patterned_photos(self):
        imgs = []
        for color in (RED, BLUE):
            img = Image.new("RGB", (600, 800), color)
            draw = ImageDraw.Draw(img)
            draw.ellipse((250, 80, 350, 200), fill=(240, 200, 170))
            draw.rectangle((200, 200, 400, 500), fill=(30, 120, 30))
            buf = io.BytesIO()
            img.save(buf, format="PNG")
            imgs.append(buf.getvalue())
        before = PhotoInput(image=imgs[0], landmarks=make_pose(nose_y=0.15, hip_y=0.55))
        after = PhotoInput(image=imgs[1], landmarks=make_pose(nose_y=0.2, hip_y=0.7))
        return before, after

    def banded_photos(self):
        """600x800 photos split into three horizontal colour bands each."""
        def banded(bands):
            img = Image.new("RGB", (600, 800))
            draw = ImageDraw.Draw(img)
            top = 0
            for bottom, color in bands:
                draw.rectangle((0, top, 599, bottom - 1), fill=color)
                top = bottom
            buf = io.BytesIO()
            img.save(buf, format="PNG")
            return buf.getvalue()

        before = banded([(200, (200, 60, 60)), (400, (60, 200, 60)), (800, (60, 60, 200))])
        after = banded([(200, (240, 200, 40)), (500, (40, 160, 240)), (800, (120, 40, 160))])
        return (
            PhotoInput(image=before, landmarks=make_pose(nose_y=0.15, hip_y=0.55)),
            PhotoInput(image=after, landmarks=make_pose(nose_y=0.2, hip_y=0.7)),
        )

    def test_matches_committed_baseline(self):
        # before is drawn 1350x1800 at (-135, -54), after 1080x1440 at (0, -72):
        # band edges land on rows 396/846 (left half) and 288/828 (right half)
        before, after = self.banded_photos()
        result = export_composite(before, after, "1:1", ExportOptions(watermark=CLEAN))
        assert (result.width, result.height) == (2160, 1080)

        comparison = compare_images(decode(result), Image.open(GOLDEN_DIR / "banded_1x1.png"))
        assert comparison.passed, comparison.message

    def test_detects_regression(self):
        before, after = self.patterned_photos()
        expected = decode(export_composite(before, after, "1:1"))
        actual = expected.copy().convert("RGB")
        ImageDraw.Draw(actual).rectangle((0, 0, 200, 200), fill=(255, 255, 255))

        comparison = compare_images(actual, expected, with_diff_image=True)
        assert not comparison.passed
        assert comparison.diff_image.size == expected.size

    def test_dimension_mismatch(self):
        a = Image.new("RGB", (10, 10))
        b = Image.new("RGB", (10, 12))
        result = compare_images(a, b)
        assert not result.passed
        assert "dimension mismatch" in result.message


def test_filename_format():
    now = datetime(2025, 6, 7, 8, 9, 10, tzinfo=timezone.utc)
    assert export_filename("jpg", now) == "poseproof-export-2025-06-07T08-09-10+00-00.jpg"


def test_encoding_error_is_export_error():
    from poseproof.errors import ExportError

    assert issubclass(EncodingError, ExportError)
