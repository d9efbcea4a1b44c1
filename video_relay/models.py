from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, List, Optional

QUEUED = "queued"
RUNNING = "running"
SUCCEEDED = "succeeded"
FAILED = "failed"

# Vendor status words shared by Sora and the Pollo-style aggregators
STATUS_VOCABULARY = {
    QUEUED: ("pending", "queued", "waiting", "submitted"),
    RUNNING: ("processing", "running", "generating", "in_progress", "creating"),
    SUCCEEDED: ("completed", "succeeded", "finished", "ready"),
    FAILED: ("failed", "errored", "error", "canceled", "cancelled", "rejected"),
}


def map_status(raw: Any) -> str:
    """Map a vendor status word onto the job lifecycle.

    Empty statuses count as queued. Words outside the vocabulary count as
    running: the vendor still owns the job and the client keeps polling.
    """
    normalized = str(raw or "").strip().lower()
    if not normalized:
        return QUEUED
    for state, words in STATUS_VOCABULARY.items():
        if normalized in words:
            return state
    return RUNNING


def utc_now_iso() -> str:
    now = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return now.replace("+00:00", "Z")


@dataclass
class GenerationRequest:
    engine_id: str
    prompt: str
    length_seconds: int
    aspect_ratio: Optional[str] = None
    seed: Optional[int] = None
    prompt_image: Optional[str] = None
    prompt_image_name: Optional[str] = None
    model: Optional[str] = None
    size: Optional[str] = None


@dataclass
class Job:
    """Common part of a tracked vendor job.

    Subclasses pin the provider family and name the field under which the
    last raw vendor response is exposed.
    """

    raw_key: ClassVar[str] = "raw"

    id: str
    engine_id: str
    provider: str
    prompt: str
    length_seconds: Optional[int] = None
    aspect_ratio: Optional[str] = None
    seed: Optional[int] = None
    model: Optional[str] = None
    size: Optional[str] = None
    status: str = QUEUED
    remote_status: Optional[str] = None
    created_at: str = field(default_factory=utc_now_iso)
    local_path: Optional[str] = None
    video_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    error: Optional[str] = None
    reference_image_name: Optional[str] = None
    raw: Optional[Dict[str, Any]] = None

    @property
    def download_label(self) -> Optional[str]:
        return self.aspect_ratio or self.size

    @property
    def needs_download(self) -> bool:
        return self.status == SUCCEEDED and bool(self.video_url) and not self.local_path

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "engineId": self.engine_id,
            "provider": self.provider,
            "prompt": self.prompt,
            "aspectRatio": self.aspect_ratio,
            "seed": self.seed,
            "status": self.status,
            "remoteStatus": self.remote_status,
            "createdAt": self.created_at,
            "localPath": self.local_path,
            "videoUrl": self.video_url,
            "thumbnailUrl": self.thumbnail_url,
            "lengthSeconds": self.length_seconds,
            "model": self.model,
            "size": self.size,
            "error": self.error,
            "referenceImageName": self.reference_image_name,
        }
        data.update(self.extra_fields())
        if self.raw is not None:
            data[self.raw_key] = self.raw
        return data

    def extra_fields(self) -> Dict[str, Any]:
        return {}


@dataclass
class RunwayJob(Job):
    raw_key: ClassVar[str] = "runway"


@dataclass
class SoraJob(Job):
    raw_key: ClassVar[str] = "openai"

    @property
    def download_label(self) -> Optional[str]:
        return self.size or self.aspect_ratio


@dataclass
class GeminiJob(Job):
    raw_key: ClassVar[str] = "gemini"

    operation_name: Optional[str] = None

    @property
    def download_label(self) -> Optional[str]:
        return self.size or self.aspect_ratio

    def extra_fields(self) -> Dict[str, Any]:
        return {"geminiOperationName": self.operation_name}


@dataclass
class PolloJob(Job):
    raw_key: ClassVar[str] = "pollo"

    generations: Optional[List[Dict[str, Any]]] = None

    def extra_fields(self) -> Dict[str, Any]:
        return {"generations": self.generations}
