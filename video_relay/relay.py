import logging
import time
from typing import Any, Callable, Dict, List, Optional

import requests

from . import vision
from .config import Settings
from .downloads import build_download_path, download_file
from .engines import ASPECT_RATIOS, Engine, engine_descriptors, load_engines
from .errors import InvalidRequestError, UnknownJobError
from .models import SUCCEEDED, GenerationRequest, Job
from .providers import ProviderContext, adapter_for
from .providers.common import coerce_seed
from .store import JobStore

logger = logging.getLogger(__name__)

# Providers that pick their own framing when no aspect ratio is given
ASPECT_OPTIONAL_PROVIDERS = ("openai", "gemini")


def parse_generation_request(body: Dict[str, Any], engines: Dict[str, Engine]) -> GenerationRequest:
    """Validate a generate body against the engine catalog."""
    engine_id = body.get("engineId")
    engine = engines.get(engine_id) if isinstance(engine_id, str) else None
    if engine is None:
        logger.warning("[generate] Invalid engineId received: %s", engine_id)
        raise InvalidRequestError("Bad engine")

    prompt = body.get("prompt")
    if not isinstance(prompt, str) or not prompt.strip():
        logger.warning("[generate] Prompt is required for engine: %s", engine.id)
        raise InvalidRequestError("Prompt required")

    aspect_ratio = body.get("aspectRatio")
    aspect_ratio = aspect_ratio.strip() if isinstance(aspect_ratio, str) and aspect_ratio.strip() else None
    if not aspect_ratio and engine.provider not in ASPECT_OPTIONAL_PROVIDERS:
        logger.warning("[generate] Aspect ratio is required for engine: %s", engine.id)
        raise InvalidRequestError("Aspect ratio required")

    requested_length = body["duration"] if body.get("duration") is not None else body.get("lengthSeconds")
    try:
        length = engine.resolve_length(requested_length)
    except InvalidRequestError as e:
        logger.warning("[generate] %s for engine %s (requested %r)", e.message, engine.id, requested_length)
        raise

    size = body["resolution"] if body.get("resolution") is not None else body.get("size")
    prompt_image = body.get("promptImage")

    return GenerationRequest(
        engine_id=engine.id,
        prompt=prompt.strip(),
        length_seconds=length,
        aspect_ratio=aspect_ratio,
        seed=coerce_seed(body.get("seed")) if engine.supports_seed else None,
        prompt_image=prompt_image if isinstance(prompt_image, str) and prompt_image else None,
        prompt_image_name=body.get("promptImageName") if isinstance(body.get("promptImageName"), str) else None,
        model=body.get("model") if isinstance(body.get("model"), str) else None,
        size=size.strip() if isinstance(size, str) and size.strip() else None,
    )


class VideoRelay:
    """Forwards generation requests to vendors and tracks the resulting jobs.

    Nothing runs in the background: every status poll from a client makes one
    vendor call, and the first poll that sees a finished video downloads it.
    """

    def __init__(
        self,
        settings: Settings,
        store: Optional[JobStore] = None,
        session: Optional[requests.Session] = None,
        genai_factory: Optional[Callable[[Settings], Any]] = None,
        openai_factory: Optional[Callable[[Settings], Any]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings
        self.store = store if store is not None else JobStore()
        self.engines = load_engines(settings.runway_model)
        self.ctx = ProviderContext(
            settings=settings,
            session=session or requests.Session(),
            genai_factory=genai_factory,
            openai_factory=openai_factory,
        )
        self._sleep = sleep

    def meta(self) -> Dict[str, Any]:
        return {"engines": engine_descriptors(self.engines), "aspectRatios": list(ASPECT_RATIOS)}

    def generate(self, body: Dict[str, Any]) -> Job:
        logger.info(
            "[generate] Received request: %s",
            {
                "engineId": body.get("engineId"),
                "prompt": body.get("prompt"),
                "aspectRatio": body.get("aspectRatio"),
                "seed": body.get("seed"),
                "lengthSeconds": body.get("duration", body.get("lengthSeconds")),
                "promptImageProvided": bool(body.get("promptImage")),
                "model": body.get("model"),
                "size": body.get("resolution", body.get("size")),
            },
        )
        req = parse_generation_request(body, self.engines)
        engine = self.engines[req.engine_id]
        job = adapter_for(engine.provider).submit(self.ctx, engine, req)
        return self.store.add(job)

    def get_job(self, job_id: str) -> Job:
        job = self.store.get(job_id)
        if job is None:
            logger.warning("[status] Unknown job ID requested: %s", job_id)
            raise UnknownJobError(job_id)
        return job

    def refresh(self, job_id: str) -> Job:
        """Poll the vendor once and download the video the first time it is ready."""
        job = self.get_job(job_id)
        adapter = adapter_for(job.provider)
        adapter.poll(self.ctx, job)
        logger.info("[status] Job %s is %s (vendor: %s)", job.id, job.status, job.remote_status)

        if job.needs_download:
            path = build_download_path(self.settings.download_dir, job)
            download_file(
                self.ctx.session,
                job.video_url,
                path,
                headers=adapter.download_headers(self.ctx, job),
                timeout=self.settings.request_timeout,
            )
            job.local_path = str(path)
        elif job.status == SUCCEEDED and not job.video_url:
            logger.warning("[status] No downloadable video URL found for job: %s", job.id)

        self.store.save(job)
        return job

    def jobs(self) -> List[Job]:
        return self.store.all()

    def describe_image(self, body: Dict[str, Any]) -> Dict[str, str]:
        return vision.describe_image(self.ctx, body, sleep=self._sleep)
