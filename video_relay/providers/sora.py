"""OpenAI Sora video jobs.

Sora responses have moved around between API revisions (ids nested under
``data``, assets as a dict or a list, timestamps in seconds, milliseconds or
ISO strings), so every response goes through ``normalize_response`` before it
touches a job record.
"""

import logging
import math
import time
from datetime import datetime
from typing import Any, Dict, Optional

from ..engines import Engine
from ..errors import ConfigurationError, ProviderError
from ..media import parse_reference_image, reference_image_name
from ..models import SUCCEEDED, GenerationRequest, SoraJob, map_status
from .common import ProviderContext, call_json, error_text, read_string

logger = logging.getLogger(__name__)

MODEL_FALLBACK = "sora-2"
SIZE_FALLBACK = "1280x720"
SECONDS_FALLBACK = "4"

ALLOWED_MODELS = ("sora-2", "sora-2-pro")
ALLOWED_SIZES = ("1280x720", "720x1280", "1792x1024", "1024x1792")
ALLOWED_SECONDS = ("4", "8", "12")


def _coerce(value: Any, allowed, fallback: str) -> str:
    if value is None:
        return fallback
    text = str(value).strip()
    return text if text in allowed else fallback


def coerce_model(value: Any, fallback: str = MODEL_FALLBACK) -> str:
    return _coerce(value, ALLOWED_MODELS, fallback)


def coerce_size(value: Any, fallback: str = SIZE_FALLBACK) -> str:
    return _coerce(value, ALLOWED_SIZES, fallback)


def coerce_seconds(value: Any, fallback: str = SECONDS_FALLBACK) -> str:
    return _coerce(value, ALLOWED_SECONDS, fallback)


def to_unix_seconds(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            try:
                return round(datetime.fromisoformat(text.replace("Z", "+00:00")).timestamp())
            except ValueError:
                return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, (int, float)):
        # Millisecond timestamps
        return round(value / 1000) if value > 1e12 else round(value)
    return None


def _first_url(collection: Any, *keys: str) -> Optional[str]:
    if not isinstance(collection, list):
        return None
    for entry in collection:
        if not isinstance(entry, dict):
            continue
        for key in keys:
            url = read_string(entry.get(key))
            if url:
                return url
    return None


def extract_download_url(video: Dict[str, Any]) -> Optional[str]:
    direct = read_string(video.get("download_url")) or read_string(video.get("content_url"))
    if direct:
        return direct

    assets = video.get("assets")
    if isinstance(assets, dict) and isinstance(assets.get("video"), dict):
        nested = read_string(assets["video"].get("download_url"))
        if nested:
            return nested

    return _first_url(assets, "download_url", "url") or _first_url(video.get("output"), "download_url", "url")


def extract_thumbnail_url(video: Dict[str, Any]) -> Optional[str]:
    direct = read_string(video.get("thumbnail_url"))
    if direct:
        return direct

    assets = video.get("assets")
    if isinstance(assets, dict) and isinstance(assets.get("thumbnail"), dict):
        nested = read_string(assets["thumbnail"].get("url"))
        if nested:
            return nested

    if isinstance(assets, list):
        for asset in assets:
            if isinstance(asset, dict) and asset.get("type") == "thumbnail":
                url = read_string(asset.get("url"))
                if url:
                    return url
    return None


def resolve_video_id(video: Dict[str, Any], now: int) -> str:
    direct = read_string(video.get("id")) or read_string(video.get("video_id"))
    if direct:
        return direct
    data = video.get("data")
    if isinstance(data, dict) and read_string(data.get("id")):
        return data["id"]
    return f"video_{now}"


def normalize_response(video: Any, fallback: Dict[str, str]) -> Dict[str, Any]:
    """Flatten a Sora video object into the fields the relay relies on.

    ``fallback`` supplies prompt, model, size and seconds when the response
    leaves them out.
    """
    now = int(time.time())
    data = video if isinstance(video, dict) else {}

    status = read_string(data.get("status")) or read_string(data.get("state")) or "queued"
    created_at = to_unix_seconds(data.get("created_at"))
    completed_at = to_unix_seconds(data.get("completed_at"))
    if completed_at is None and status == "completed":
        completed_at = now

    seconds = data.get("seconds")
    return {
        **data,
        "id": resolve_video_id(data, now),
        "status": status,
        "prompt": fallback.get("prompt"),
        "model": coerce_model(read_string(data.get("model")) or fallback.get("model")),
        "size": coerce_size(read_string(data.get("size")) or fallback.get("size")),
        "seconds": coerce_seconds(str(seconds) if seconds is not None else fallback.get("seconds")),
        "created_at": created_at if created_at is not None else now,
        "completed_at": completed_at,
        "remix_video_id": (
            read_string(data.get("remix_video_id"))
            or read_string(data.get("remix_of"))
            or read_string(data.get("remixed_from_video_id"))
        ),
        "download_url": extract_download_url(data),
        "thumbnail_url": extract_thumbnail_url(data),
        "error": data.get("error"),
    }


def _headers(ctx: ProviderContext) -> Dict[str, str]:
    settings = ctx.settings
    headers = {"Authorization": f"Bearer {settings.openai_api_key}"}
    if settings.openai_org_id:
        headers["OpenAI-Organization"] = settings.openai_org_id
    if settings.openai_project_id:
        headers["OpenAI-Project"] = settings.openai_project_id
    return headers


def _require_key(ctx: ProviderContext) -> None:
    if not ctx.settings.openai_api_key:
        logger.error("[sora] Missing OPENAI_API_KEY in environment")
        raise ConfigurationError("OpenAI API key not configured")


def submit(ctx: ProviderContext, engine: Engine, req: GenerationRequest) -> SoraJob:
    _require_key(ctx)

    model = engine.choose_model(req.model, fallback=ALLOWED_MODELS)
    size = engine.choose_size(req.size, req.aspect_ratio, fallback=ALLOWED_SIZES)
    seconds_fallback = str(engine.length_default)
    seconds = coerce_seconds(str(req.length_seconds), seconds_fallback)

    reference = None
    if engine.allows_reference_image:
        reference = parse_reference_image(req.prompt_image, reference_image_name(req.prompt_image_name))

    endpoint = f"{ctx.settings.openai_base_url}/videos"
    fields = {"prompt": req.prompt, "model": model, "size": size, "seconds": seconds}
    logger.info("[sora] Submitting to %s: %s (reference image: %s)", endpoint, fields, bool(reference))

    if reference:
        data = call_json(
            ctx,
            "POST",
            endpoint,
            "OpenAI",
            data=fields,
            files={"input_reference": (reference.filename, reference.data, reference.mime_type)},
            headers=_headers(ctx),
        )
    else:
        data = call_json(ctx, "POST", endpoint, "OpenAI", json=fields, headers=_headers(ctx))

    if not (data.get("id") or data.get("video_id") or isinstance(data.get("data"), dict)):
        logger.error("[sora] Video response missing id: %s", data)
        raise ProviderError("Missing job id from provider")

    normalized = normalize_response(data, fields)
    logger.info("[sora] Accepted video %s (%s)", normalized["id"], normalized["status"])

    return SoraJob(
        id=normalized["id"],
        engine_id=engine.id,
        provider=engine.provider,
        prompt=req.prompt,
        length_seconds=int(normalized["seconds"]),
        aspect_ratio=size,
        model=normalized["model"],
        size=normalized["size"],
        status=map_status(normalized["status"]),
        remote_status=normalized["status"],
        video_url=normalized["download_url"],
        thumbnail_url=normalized["thumbnail_url"],
        error=error_text(normalized["error"]),
        reference_image_name=reference.filename if reference else None,
        raw=data,
    )


def poll(ctx: ProviderContext, job: SoraJob) -> None:
    _require_key(ctx)

    status_url = f"{ctx.settings.openai_base_url}/videos/{job.id}"
    logger.info("[sora] Polling video %s via %s", job.id, status_url)
    data = call_json(ctx, "GET", status_url, "OpenAI", headers=_headers(ctx))

    fallback = {
        "prompt": job.prompt,
        "model": job.model or MODEL_FALLBACK,
        "size": job.size or job.aspect_ratio or SIZE_FALLBACK,
        "seconds": coerce_seconds(
            str(job.length_seconds) if job.length_seconds is not None else None, SECONDS_FALLBACK
        ),
    }
    normalized = normalize_response(data, fallback)

    job.remote_status = normalized["status"] or job.remote_status
    job.status = map_status(normalized["status"])
    job.model = normalized["model"]
    job.size = normalized["size"]
    job.aspect_ratio = job.size
    job.length_seconds = int(normalized["seconds"])
    job.video_url = normalized["download_url"] or job.video_url
    job.thumbnail_url = normalized["thumbnail_url"] or job.thumbnail_url
    job.error = error_text(normalized["error"])

    # Completed videos without a signed URL are fetched through the content endpoint
    if job.status == SUCCEEDED and not job.video_url:
        job.video_url = content_url(ctx, job.id)

    job.raw = data


def content_url(ctx: ProviderContext, video_id: str) -> str:
    return f"{ctx.settings.openai_base_url}/videos/{video_id}/content"


def download_headers(ctx: ProviderContext, job: SoraJob) -> Dict[str, str]:
    # Never hand the OpenAI key to a third-party CDN
    if job.video_url and job.video_url.startswith(ctx.settings.openai_base_url):
        return _headers(ctx)
    return {}
