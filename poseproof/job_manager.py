# poseproof/job_manager.py
"""
Export execution for the HTTP layer.

render_export turns a validated request into a core export call; the
job helpers run it in the background and track status in memory.
"""

import asyncio
import uuid
from typing import Any, Dict, Set

from .animation import AnimationOptions, export_animation
from .export import ExportOptions, PhotoInput, export_composite, validate_export_request
from .logger import console
from .metrics import (
    EXPORT_PROCESSING_SECONDS,
    JOBS_COMPLETED,
    JOBS_IN_FLIGHT,
    SHOULDER_FALLBACKS,
)
from .models import AnimationRequest, ExportRequest, PhotoPayload, WatermarkPayload
from .utils import bytes_to_data_uri
from .watermark import WatermarkOptions

# In-memory job store
JOBS: Dict[str, Dict[str, Any]] = {}

# keeps running tasks referenced until they finish
_TASKS: Set[asyncio.Task] = set()


def _photo(payload: PhotoPayload) -> PhotoInput:
    landmarks = None
    if payload.landmarks is not None:
        landmarks = [lm.model_dump() for lm in payload.landmarks]
    return PhotoInput(
        image=payload.image,
        landmarks=landmarks,
        width=payload.width,
        height=payload.height,
    )


def _watermark(payload: WatermarkPayload) -> WatermarkOptions:
    return WatermarkOptions(
        is_pro=payload.is_pro,
        custom_logo_url=payload.custom_logo_url,
        position=payload.position,
        opacity=payload.opacity,
    )


def export_options(request: ExportRequest) -> ExportOptions:
    opts = request.options
    return ExportOptions(
        resolution=opts.resolution,
        quality=opts.quality,
        include_labels=opts.include_labels,
        watermark=_watermark(opts.watermark),
        output_format=opts.output_format,
    )


def animation_options(request: AnimationRequest) -> AnimationOptions:
    opts = request.options
    return AnimationOptions(
        style=opts.style,
        duration=opts.duration,
        include_labels=opts.include_labels,
        watermark=_watermark(opts.watermark),
    )


def render_export(request: ExportRequest) -> Dict[str, Any]:
    """Run one export synchronously and shape the response body."""
    with EXPORT_PROCESSING_SECONDS.time():
        result = export_composite(
            _photo(request.before),
            _photo(request.after),
            request.format,
            export_options(request),
        )

    if result.layout.use_shoulder_alignment:
        SHOULDER_FALLBACKS.inc()

    return {
        "image": bytes_to_data_uri(result.image_bytes, result.mime_type),
        "filename": result.filename,
        "width": result.width,
        "height": result.height,
        "mimeType": result.mime_type,
    }


def render_animation(request: AnimationRequest) -> Dict[str, Any]:
    """Run one GIF export synchronously and shape the response body."""
    with EXPORT_PROCESSING_SECONDS.time():
        result = export_animation(
            _photo(request.before),
            _photo(request.after),
            request.format,
            animation_options(request),
        )

    if result.layout.use_shoulder_alignment:
        SHOULDER_FALLBACKS.inc()

    return {
        "image": bytes_to_data_uri(result.image_bytes, result.mime_type),
        "filename": result.filename,
        "width": result.width,
        "height": result.height,
        "mimeType": result.mime_type,
        "style": result.style.value,
        "frameCount": result.frame_count,
    }


async def process_job(job_id: str, request: ExportRequest):
    """
    Background worker for one export job.

    Args:
        job_id: Unique job identifier
        request: Validated export request
    """
    console.log(f"[yellow]Starting background export for job {job_id}[/yellow]")

    try:
        result = await asyncio.to_thread(render_export, request)

        JOBS[job_id]["status"] = "done"
        JOBS[job_id]["result"] = result

        JOBS_COMPLETED.labels(status="done").inc()
        console.log(f"[green]Job {job_id} done ({result['width']}x{result['height']}).[/green]")

    except Exception as e:
        JOBS[job_id]["status"] = "error"
        JOBS[job_id]["error"] = str(e)

        JOBS_COMPLETED.labels(status="error").inc()
        console.log(f"[red]Job {job_id} failed: {e}[/red]")

    finally:
        JOBS_IN_FLIGHT.dec()


def create_job(request: ExportRequest) -> str:
    """
    Create job entry and schedule the background export.

    Returns:
        job_id: Unique identifier for tracking job status
    """
    job_id = uuid.uuid4().hex
    JOBS[job_id] = {"status": "pending"}

    JOBS_IN_FLIGHT.inc()

    loop = asyncio.get_running_loop()
    task = loop.create_task(process_job(job_id, request))
    _TASKS.add(task)
    task.add_done_callback(_TASKS.discard)

    return job_id


def job_status(job_id: str) -> Dict[str, Any]:
    """Status body for a known job; raises KeyError for unknown ids."""
    job = JOBS[job_id]
    status = job["status"]
    if status == "pending":
        return {"id": job_id, "status": "pending"}
    if status == "error":
        return {"id": job_id, "status": "error", "error": job.get("error")}
    return {"id": job_id, "status": "done", "result": job["result"]}


def validate_request(request: ExportRequest) -> None:
    """Fail fast on usage errors before a job is queued."""
    validate_export_request(request.format, export_options(request))
