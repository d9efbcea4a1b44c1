"""Google Veo through the Gemini API long-running operations."""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from ..config import Settings
from ..engines import Engine
from ..errors import ConfigurationError, ProviderError
from ..media import parse_reference_image, reference_image_name
from ..models import FAILED, RUNNING, SUCCEEDED, GeminiJob, GenerationRequest
from .common import ProviderContext, error_text

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "veo-3.1-generate-preview"
DEFAULT_ASPECT_RATIO = "16:9"
ASPECT_RATIOS = ("16:9", "9:16")
DEFAULT_RESOLUTION = "720p"


def default_client(settings: Settings) -> genai.Client:
    http_options = None
    if settings.gemini_api_base:
        http_options = types.HttpOptions(base_url=settings.gemini_api_base)
    return genai.Client(api_key=settings.gemini_api_key, http_options=http_options)


def _client(ctx: ProviderContext):
    if not ctx.settings.gemini_api_key:
        logger.error("[gemini] Missing GEMINI_API_KEY in environment")
        raise ConfigurationError("Gemini API key not configured")
    return ctx.client("gemini", ctx.genai_factory or default_client)


def _provider_error(e: genai_errors.APIError, action: str) -> ProviderError:
    code = e.code if isinstance(e.code, int) and e.code >= 400 else 502
    return ProviderError(e.message or f"Gemini {action} failed", status_code=code)


def operation_id(name: str) -> str:
    return name.rsplit("/", 1)[-1] if "/" in name else name


def operation_payload(operation: Any) -> Dict[str, Any]:
    if hasattr(operation, "model_dump"):
        return operation.model_dump(mode="json", exclude_none=True)
    return {"name": getattr(operation, "name", None), "done": getattr(operation, "done", None)}


def first_video_uri(operation: Any) -> Optional[str]:
    response = getattr(operation, "response", None) or getattr(operation, "result", None)
    videos = getattr(response, "generated_videos", None) or []
    for generated in videos:
        video = getattr(generated, "video", None)
        uri = getattr(video, "uri", None)
        if uri:
            return uri
    return None


def submit(ctx: ProviderContext, engine: Engine, req: GenerationRequest) -> GeminiJob:
    client = _client(ctx)

    model = engine.choose_model(req.model, fallback=(DEFAULT_MODEL,))
    resolution = "1080p" if (req.size or "").strip() == "1080p" else DEFAULT_RESOLUTION
    aspect_ratio = (req.aspect_ratio or "").strip()
    if aspect_ratio not in ASPECT_RATIOS:
        aspect_ratio = DEFAULT_ASPECT_RATIO

    reference = None
    if engine.allows_reference_image and req.prompt_image:
        reference = parse_reference_image(req.prompt_image, reference_image_name(req.prompt_image_name))

    config_fields = {
        "aspect_ratio": aspect_ratio,
        "duration_seconds": req.length_seconds,
        "number_of_videos": 1,
    }
    # 720p is the service default and older Veo models reject the field
    if resolution != DEFAULT_RESOLUTION:
        config_fields["resolution"] = resolution
    config = types.GenerateVideosConfig(**config_fields)

    image = None
    if reference:
        image = types.Image(image_bytes=reference.data, mime_type=reference.mime_type)

    logger.info(
        "[gemini] Submitting video generation: model=%s aspect=%s resolution=%s duration=%s image=%s",
        model,
        aspect_ratio,
        resolution,
        req.length_seconds,
        bool(reference),
    )
    try:
        operation = client.models.generate_videos(
            model=model,
            prompt=req.prompt,
            image=image,
            config=config,
        )
    except genai_errors.APIError as e:
        logger.error("[gemini] Video generation error: %s", e)
        raise _provider_error(e, "video generation") from e

    name = getattr(operation, "name", None)
    if not name:
        logger.error("[gemini] No operation name returned: %s", operation)
        raise ProviderError("Missing operation name from provider")
    logger.info("[gemini] Accepted operation %s", name)

    return GeminiJob(
        id=operation_id(name),
        engine_id=engine.id,
        provider=engine.provider,
        prompt=req.prompt,
        length_seconds=req.length_seconds,
        aspect_ratio=aspect_ratio,
        model=model,
        size=resolution,
        reference_image_name=reference.filename if reference else None,
        operation_name=name,
    )


def poll(ctx: ProviderContext, job: GeminiJob) -> None:
    client = _client(ctx)

    name = job.operation_name or (job.id if job.id.startswith("operations/") else f"operations/{job.id}")
    logger.info("[gemini] Polling operation %s", name)
    try:
        operation = client.operations.get(types.GenerateVideosOperation(name=name))
    except genai_errors.APIError as e:
        logger.error("[gemini] Polling error: %s", e)
        raise _provider_error(e, "polling") from e

    done = getattr(operation, "done", None) is True
    failure = getattr(operation, "error", None)
    if not done:
        job.status = RUNNING
    elif failure:
        job.status = FAILED
        job.error = error_text(failure)
    else:
        job.status = SUCCEEDED
    job.remote_status = "completed" if done else "in_progress"

    if job.status == SUCCEEDED and not job.video_url:
        job.video_url = first_video_uri(operation)

    job.raw = operation_payload(operation)


def download_headers(ctx: ProviderContext, job: GeminiJob) -> Dict[str, str]:
    # Generated file URIs need the API key; other hosts do not get it
    host = urlparse(job.video_url or "").hostname or ""
    if host.endswith("googleapis.com") and ctx.settings.gemini_api_key:
        return {"x-goog-api-key": ctx.settings.gemini_api_key}
    return {}
