"""Runway Gen-3 image-to-video tasks."""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from ..engines import Engine
from ..errors import ConfigurationError, InvalidRequestError, ProviderError
from ..models import FAILED, QUEUED, RUNNING, SUCCEEDED, GenerationRequest, RunwayJob
from .common import ProviderContext, call_json, error_text

logger = logging.getLogger(__name__)

# Gen-3 takes resolution-style ratios; 1:1 has no equivalent
RATIO_MAP = {
    "16:9": "1280:768",
    "9:16": "768:1280",
    "1280:768": "1280:768",
    "768:1280": "768:1280",
}

STATUS_MAP = {
    "PENDING": QUEUED,
    "THROTTLED": QUEUED,
    "RUNNING": RUNNING,
    "SUCCEEDED": SUCCEEDED,
    "FAILED": FAILED,
    "CANCELED": FAILED,
}


def map_ratio(aspect_ratio: Any) -> Optional[str]:
    return RATIO_MAP.get(str(aspect_ratio or "").strip())


def map_status(status: Any) -> str:
    normalized = str(status or "").strip().upper()
    if not normalized:
        return QUEUED
    return STATUS_MAP.get(normalized, RUNNING)


def _headers(ctx: ProviderContext) -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {ctx.settings.runway_api_key}",
        "X-Runway-Version": ctx.settings.runway_api_version,
    }


def _require_key(ctx: ProviderContext) -> None:
    if not ctx.settings.runway_api_key:
        logger.error("[runway] Missing RUNWAY_API_KEY in environment")
        raise ConfigurationError("Runway API key not configured")


def submit(ctx: ProviderContext, engine: Engine, req: GenerationRequest) -> RunwayJob:
    _require_key(ctx)

    ratio = map_ratio(req.aspect_ratio)
    if not ratio:
        logger.warning("[runway] Unsupported aspect ratio: %s", req.aspect_ratio)
        raise InvalidRequestError("Aspect ratio not supported for Runway Gen-3")

    if not req.prompt_image:
        logger.warning("[runway] Missing promptImage for Runway Gen-3 job")
        raise InvalidRequestError("Runway Gen-3 requires an image upload")

    payload = {
        "model": engine.api_model,
        "promptText": req.prompt,
        "promptImage": req.prompt_image,
        "ratio": ratio,
        "duration": req.length_seconds,
        "watermark": False,
    }
    if engine.supports_seed and req.seed is not None:
        payload["seed"] = req.seed

    endpoint = f"{ctx.settings.runway_api_base}/image_to_video"
    logger.info(
        "[runway] Submitting to %s: %s",
        endpoint,
        {**payload, "promptImage": f"data-url ({len(req.prompt_image)} chars)"},
    )
    data = call_json(ctx, "POST", endpoint, "Runway", json=payload, headers=_headers(ctx))

    job_id = data.get("id")
    if not job_id:
        logger.error("[runway] No job identifier in response: %s", data)
        raise ProviderError("Missing job id from provider")
    logger.info("[runway] Accepted job %s", job_id)

    return RunwayJob(
        id=str(job_id),
        engine_id=engine.id,
        provider=engine.provider,
        prompt=req.prompt,
        length_seconds=req.length_seconds,
        aspect_ratio=req.aspect_ratio,
        seed=payload.get("seed"),
        model=engine.api_model,
        size=ratio,
    )


def find_video_url(outputs: List[Any]) -> Optional[str]:
    """Pick the .mp4 output, or failing that the first URL Runway returned."""
    urls = []
    for item in outputs:
        if isinstance(item, str):
            urls.append(item)
        elif isinstance(item, dict):
            uri = item.get("uri") or item.get("url")
            if isinstance(uri, str):
                urls.append(uri)
    for url in urls:
        if urlparse(url).path.lower().endswith(".mp4"):
            return url
    return urls[0] if urls else None


def poll(ctx: ProviderContext, job: RunwayJob) -> None:
    _require_key(ctx)

    status_url = f"{ctx.settings.runway_api_base}/tasks/{job.id}"
    logger.info("[runway] Polling job %s via %s", job.id, status_url)
    data = call_json(ctx, "GET", status_url, "Runway", headers=_headers(ctx))

    job.remote_status = data.get("status") or job.remote_status
    job.status = map_status(data.get("status"))
    job.error = error_text(data.get("failure") or data.get("error"))

    outputs = data.get("output")
    if not isinstance(outputs, list):
        outputs = data.get("outputs") if isinstance(data.get("outputs"), list) else []
    if not job.video_url:
        job.video_url = find_video_url(outputs)

    job.raw = data


def download_headers(ctx: ProviderContext, job: RunwayJob) -> Dict[str, str]:
    return {}
