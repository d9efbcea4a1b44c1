import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip()
    return value or default


def _env_bool(name: str, default: bool) -> bool:
    value = _env(name)
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes")


def _env_list(name: str) -> List[str]:
    value = _env(name) or ""
    return [o.strip() for o in value.split(",") if o.strip()]


@dataclass
class Settings:
    port: int = 4000
    download_dir: Path = field(default_factory=lambda: Path.cwd() / "downloads")

    # Pollo-style aggregator (pollo, kling-ai, pika, wanx)
    video_api_base: Optional[str] = None
    video_api_key: Optional[str] = None

    runway_api_base: str = "https://api.dev.runwayml.com/v1"
    runway_api_key: Optional[str] = None
    runway_api_version: str = "2024-11-06"
    runway_model: str = "gen3a_turbo"

    openai_api_key: Optional[str] = None
    openai_base_url: str = "https://api.openai.com/v1"
    openai_org_id: Optional[str] = None
    openai_project_id: Optional[str] = None

    gemini_api_key: Optional[str] = None
    gemini_api_base: Optional[str] = None

    fal_api_key: Optional[str] = None
    fal_api_base: str = "https://queue.fal.run"
    fal_poll_attempts: int = 30
    fal_poll_interval: float = 2.0

    request_timeout: float = 120.0

    cors_origins: List[str] = field(default_factory=list)
    log_level: str = "INFO"
    ratelimit_enabled: bool = True
    generate_rate_limit: str = "30 per minute"
    status_rate_limit: str = "240 per minute"
    debug: bool = False

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        """Build settings from the process environment (and a .env file)."""
        if dotenv:
            load_dotenv()

        download_dir = _env("DOWNLOAD_DIR")
        return cls(
            port=int(_env("PORT", "4000")),
            download_dir=Path(download_dir) if download_dir else Path.cwd() / "downloads",
            video_api_base=_env("VIDEO_API_BASE"),
            video_api_key=_env("VIDEO_API_KEY"),
            runway_api_base=_env("RUNWAY_API_BASE", cls.runway_api_base),
            runway_api_key=_env("RUNWAY_API_KEY"),
            runway_api_version=_env("RUNWAY_API_VERSION", cls.runway_api_version),
            runway_model=_env("RUNWAY_MODEL", cls.runway_model),
            openai_api_key=_env("OPENAI_API_KEY"),
            openai_base_url=_env("OPENAI_BASE_URL", cls.openai_base_url).rstrip("/"),
            openai_org_id=_env("OPENAI_ORG_ID"),
            openai_project_id=_env("OPENAI_PROJECT_ID"),
            gemini_api_key=_env("GEMINI_API_KEY"),
            gemini_api_base=_env("GEMINI_API_BASE"),
            fal_api_key=_env("FAL_API_KEY") or _env("VITE_FAL_API_KEY"),
            fal_api_base=_env("FAL_API_BASE", cls.fal_api_base).rstrip("/"),
            fal_poll_attempts=int(_env("FAL_POLL_ATTEMPTS", "30")),
            fal_poll_interval=float(_env("FAL_POLL_INTERVAL", "2")),
            request_timeout=float(_env("REQUEST_TIMEOUT", "120")),
            cors_origins=_env_list("CORS_ORIGINS"),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            ratelimit_enabled=_env_bool("RATELIMIT_ENABLED", True),
            generate_rate_limit=_env("GENERATE_RATE_LIMIT", cls.generate_rate_limit),
            status_rate_limit=_env("STATUS_RATE_LIMIT", cls.status_rate_limit),
            debug=_env_bool("FLASK_DEBUG", False),
        )
