"""Pollo-style aggregator hosting the Pollo, Kling, Pika and Wanx models."""

import logging
from typing import Any, Dict, List, Optional

from ..engines import Engine
from ..errors import ConfigurationError, ProviderError
from ..models import GenerationRequest, PolloJob, map_status
from .common import ProviderContext, call_json, error_text, read_string

logger = logging.getLogger(__name__)

PROVIDERS = ("pollo", "kling-ai", "pika", "wanx")


def _require_config(ctx: ProviderContext) -> None:
    if not ctx.settings.video_api_base or not ctx.settings.video_api_key:
        logger.error("[pollo] Missing VIDEO_API_BASE or VIDEO_API_KEY in environment")
        raise ConfigurationError("Pollo API key not configured")


def submit(ctx: ProviderContext, engine: Engine, req: GenerationRequest) -> PolloJob:
    _require_config(ctx)

    model_input = {
        "prompt": req.prompt,
        "aspectRatio": req.aspect_ratio,
        "length": req.length_seconds,
    }
    if engine.supports_seed and req.seed is not None:
        model_input["seed"] = req.seed

    target_url = f"{ctx.settings.video_api_base}/{engine.provider}/{engine.api_model}"
    logger.info("[pollo] Submitting to %s: %s", target_url, model_input)
    data = call_json(
        ctx,
        "POST",
        target_url,
        "Pollo",
        json={"input": model_input},
        headers={"x-api-key": ctx.settings.video_api_key},
    )

    job_id = data.get("taskId") or data.get("job_id") or data.get("id")
    if not job_id:
        logger.error("[pollo] No job identifier in response: %s", data)
        raise ProviderError("Missing job id from provider")
    logger.info("[pollo] Accepted job %s", job_id)

    return PolloJob(
        id=str(job_id),
        engine_id=engine.id,
        provider=engine.provider,
        prompt=req.prompt,
        length_seconds=req.length_seconds,
        aspect_ratio=req.aspect_ratio,
        seed=model_input.get("seed"),
        model=engine.api_model,
        size=req.size or req.aspect_ratio,
    )


def find_video_url(data: Dict[str, Any]) -> Optional[str]:
    generations = data.get("generations")
    if isinstance(generations, list):
        for generation in generations:
            if isinstance(generation, dict) and read_string(generation.get("url")):
                return generation["url"]
    return read_string(data.get("output_url")) or read_string(data.get("video_url"))


def poll(ctx: ProviderContext, job: PolloJob) -> None:
    _require_config(ctx)

    status_url = f"{ctx.settings.video_api_base}/{job.id}/status"
    logger.info("[pollo] Polling job %s via %s", job.id, status_url)
    data = call_json(
        ctx,
        "GET",
        status_url,
        "Pollo",
        headers={"x-api-key": ctx.settings.video_api_key},
    )

    job.remote_status = read_string(data.get("status")) or job.remote_status
    job.status = map_status(data.get("status"))
    job.error = error_text(data.get("error"))
    generations: Optional[List[Dict[str, Any]]] = data.get("generations")
    if isinstance(generations, list):
        job.generations = generations
    if not job.video_url:
        job.video_url = find_video_url(data)

    job.raw = data


def download_headers(ctx: ProviderContext, job: PolloJob) -> Dict[str, str]:
    return {}
