# poseproof/main.py
import asyncio
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse

from .alignment import calculate_alignment, can_calculate_alignment
from .alignment_log import fetch_alignment_log
from .canvas import ExportFormat, apply_dynamic_crop, calculate_dimensions
from .config import SUPPORTED_RESOLUTIONS, LayoutConfig, debug_alignment_enabled
from .errors import EncodingError, ExportError, ImageDecodeError, InvalidExportOptions
from .job_manager import create_job, job_status, render_animation, render_export, validate_request
from .landmarks import AnchorType, to_landmarks
from .layout import calculate_aligned_draw_params
from .logger import console, log_export_request
from .metrics import router as metrics_router, ALIGNMENT_REQUESTS, EXPORT_REQUESTS, SHOULDER_FALLBACKS
from .models import (
    AlignmentRequest,
    AnimationRequest,
    AnimationResponse,
    AlignmentResponse,
    DrawParamsRequest,
    ExportRequest,
    ExportResponse,
    LandmarkModel,
)

app = FastAPI(title="PoseProof Export API", version="1.0.0")

# Include /metrics endpoint
app.include_router(metrics_router)


def _http_error(exc: ExportError) -> HTTPException:
    if isinstance(exc, InvalidExportOptions):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, ImageDecodeError):
        return HTTPException(status_code=400, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def _landmarks(models: Optional[List[LandmarkModel]]):
    if models is None:
        return None
    return to_landmarks([lm.model_dump() for lm in models])


def _format_label(value: str) -> str:
    return value if value in {f.value for f in ExportFormat} else "invalid"


def _parse_anchor(value: str) -> AnchorType:
    try:
        return AnchorType(value)
    except ValueError:
        allowed = ", ".join(a.value for a in AnchorType)
        raise HTTPException(status_code=422, detail=f"unknown anchor {value!r}, expected one of {allowed}")


@app.get("/")
def read_root() -> Dict[str, str]:
    return {"status": "ok", "message": "PoseProof export API"}


@app.post("/api/v1/alignment", response_model=AlignmentResponse, response_model_by_alias=True)
def align(payload: AlignmentRequest):
    """
    Interactive alignment for the live preview.

    Body:
      {
        "landmarksBefore": [{ "x": ..., "y": ..., "visibility": ... }, ...],
        "landmarksAfter":  [...],
        "anchor": "head" | "shoulders" | "hips" | "full"
      }
    """
    anchor = _parse_anchor(payload.anchor)
    ALIGNMENT_REQUESTS.labels(anchor=anchor.value).inc()

    before = _landmarks(payload.landmarks_before)
    after = _landmarks(payload.landmarks_after)

    result = calculate_alignment(before, after, anchor)
    can_align = can_calculate_alignment(before, anchor) and can_calculate_alignment(after, anchor)

    return AlignmentResponse(
        scale=result.scale,
        offset_x=result.offset_x,
        offset_y=result.offset_y,
        can_align=can_align,
    )


@app.post("/api/v1/alignment/draw-params")
def draw_params(payload: DrawParamsRequest) -> Dict[str, Any]:
    """Export layout for given image sizes, without any pixels involved."""
    try:
        fmt = ExportFormat(payload.format)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"unsupported format {payload.format!r}")
    if payload.resolution not in SUPPORTED_RESOLUTIONS:
        raise HTTPException(status_code=422, detail=f"unsupported resolution {payload.resolution}")

    before = _landmarks(payload.landmarks_before)
    after = _landmarks(payload.landmarks_after)

    provisional = calculate_dimensions(fmt, payload.resolution)
    layout = calculate_aligned_draw_params(
        (payload.before_image.width, payload.before_image.height),
        (payload.after_image.width, payload.after_image.height),
        before,
        after,
        provisional.half_width,
        provisional.height,
        config=LayoutConfig.from_env(),
    )
    if layout.use_shoulder_alignment:
        SHOULDER_FALLBACKS.inc()
    final = apply_dynamic_crop(layout, provisional, fmt)

    return {**layout.to_dict(), "canvas": final.to_dict()}


@app.post("/api/v1/export", response_model=ExportResponse, response_model_by_alias=True)
async def export(payload: ExportRequest):
    """
    Synchronous export; returns the encoded image as a data URI.
    """
    EXPORT_REQUESTS.labels(format=_format_label(payload.format), mode="sync").inc()
    log_export_request(
        f"Export @ {payload.options.resolution}", payload.format, payload.before.landmarks, payload.after.landmarks
    )

    try:
        return await asyncio.to_thread(render_export, payload)
    except ExportError as exc:
        level = "red" if isinstance(exc, EncodingError) else "yellow"
        console.log(f"[{level}]Export rejected: {exc}[/{level}]")
        raise _http_error(exc)


@app.post("/api/v1/export/gif", response_model=AnimationResponse, response_model_by_alias=True)
async def export_gif(payload: AnimationRequest):
    """
    Synchronous animated export (slider, crossfade or toggle GIF).
    """
    EXPORT_REQUESTS.labels(format=_format_label(payload.format), mode="gif").inc()
    log_export_request(
        f"{payload.options.style} GIF", payload.format, payload.before.landmarks, payload.after.landmarks
    )

    try:
        return await asyncio.to_thread(render_animation, payload)
    except ExportError as exc:
        level = "red" if isinstance(exc, EncodingError) else "yellow"
        console.log(f"[{level}]GIF export rejected: {exc}[/{level}]")
        raise _http_error(exc)


@app.post("/api/v1/export/submit")
async def submit_export(payload: ExportRequest):
    """
    Submit an export and immediately return job id + pending.

    Usage errors are reported right away rather than through the job.
    """
    try:
        validate_request(payload)
    except InvalidExportOptions as exc:
        raise _http_error(exc)

    EXPORT_REQUESTS.labels(format=_format_label(payload.format), mode="job").inc()

    job_id = create_job(payload)
    console.log(f"[blue]Received export job {job_id} ({payload.format})[/blue]")

    return JSONResponse(status_code=202, content={"id": job_id, "status": "pending"})


@app.get("/api/v1/export/status/{job_id}")
async def get_job_status(job_id: str):
    try:
        return job_status(job_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="job not found")


@app.get("/api/v1/debug/alignment-log")
def alignment_log(limit: int = Query(50, ge=1, le=500)):
    if not debug_alignment_enabled():
        raise HTTPException(status_code=403, detail="alignment debug logging is disabled")
    return {"entries": fetch_alignment_log(limit)}
