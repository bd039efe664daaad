# poseproof/models.py
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .config import DEFAULT_ANIMATION_DURATION, DEFAULT_QUALITY, DEFAULT_RESOLUTION
from .watermark import DEFAULT_OPACITY, DEFAULT_POSITION


class CamelModel(BaseModel):
    """Accepts both camelCase (what the web client sends) and snake_case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LandmarkModel(BaseModel):
    x: float
    y: float
    z: float = 0.0
    visibility: float = 0.0


class ImageSizeModel(BaseModel):
    width: float = Field(gt=0)
    height: float = Field(gt=0)


class PhotoPayload(CamelModel):
    image: str  # base64 or data URI
    landmarks: Optional[List[LandmarkModel]] = None
    width: Optional[int] = None
    height: Optional[int] = None


class WatermarkPayload(CamelModel):
    is_pro: bool = False
    custom_logo_url: Optional[str] = None
    position: str = DEFAULT_POSITION
    opacity: float = DEFAULT_OPACITY


class ExportOptionsPayload(CamelModel):
    resolution: int = DEFAULT_RESOLUTION
    quality: float = DEFAULT_QUALITY
    include_labels: bool = False
    watermark: WatermarkPayload = Field(default_factory=WatermarkPayload)
    output_format: str = "png"


class ExportRequest(CamelModel):
    before: PhotoPayload
    after: PhotoPayload
    # plain str so an unknown format is reported by the export core
    format: str = "1:1"
    options: ExportOptionsPayload = Field(default_factory=ExportOptionsPayload)


class ExportResponse(CamelModel):
    image: str  # data URI
    filename: str
    width: int
    height: int
    mime_type: str


class AlignmentRequest(CamelModel):
    landmarks_before: Optional[List[LandmarkModel]] = None
    landmarks_after: Optional[List[LandmarkModel]] = None
    anchor: str = "head"


class AlignmentResponse(CamelModel):
    scale: float
    offset_x: float
    offset_y: float
    can_align: bool


class DrawParamsRequest(CamelModel):
    before_image: ImageSizeModel
    after_image: ImageSizeModel
    landmarks_before: Optional[List[LandmarkModel]] = None
    landmarks_after: Optional[List[LandmarkModel]] = None
    format: str = "1:1"
    resolution: int = DEFAULT_RESOLUTION


class AnimationOptionsPayload(CamelModel):
    style: str = "crossfade"
    duration: float = DEFAULT_ANIMATION_DURATION
    include_labels: bool = False
    watermark: WatermarkPayload = Field(default_factory=WatermarkPayload)


class AnimationRequest(CamelModel):
    before: PhotoPayload
    after: PhotoPayload
    format: str = "1:1"
    options: AnimationOptionsPayload = Field(default_factory=AnimationOptionsPayload)


class AnimationResponse(ExportResponse):
    style: str
    frame_count: int
