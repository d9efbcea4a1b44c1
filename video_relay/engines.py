import math
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Tuple

from .errors import InvalidRequestError

ASPECT_RATIOS = ["1:1", "9:16", "16:9"]


@dataclass(frozen=True)
class Engine:
    id: str
    label: str
    provider: str
    api_model: str
    supports_seed: bool
    min_length: int = 5
    max_length: int = 20
    default_length: Optional[int] = None
    allowed_durations: Optional[Tuple[int, ...]] = None
    requires_prompt_image: bool = False
    models: Optional[Tuple[str, ...]] = None
    default_model: Optional[str] = None
    sizes: Optional[Tuple[str, ...]] = None
    default_size: Optional[str] = None
    allows_reference_image: bool = False

    @property
    def length_default(self) -> int:
        return self.default_length if self.default_length is not None else self.min_length

    def descriptor(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "supportsSeed": self.supports_seed,
            "minLength": self.min_length,
            "maxLength": self.max_length,
            "defaultLength": self.length_default,
            "provider": self.provider,
            "allowedDurations": list(self.allowed_durations) if self.allowed_durations else None,
            "requiresPromptImage": self.requires_prompt_image,
            "defaultModel": self.default_model,
            "models": list(self.models) if self.models else None,
            "defaultSize": self.default_size,
            "sizes": list(self.sizes) if self.sizes else None,
            "allowsReferenceImage": self.allows_reference_image,
        }

    def resolve_length(self, requested: Any) -> int:
        """Validate a requested clip length, falling back to the engine default."""
        length = _round_length(requested)
        if length is None:
            length = self.length_default

        if length < self.min_length or length > self.max_length:
            raise InvalidRequestError(
                f"Length must be between {self.min_length} and {self.max_length} seconds"
            )
        if self.allowed_durations and length not in self.allowed_durations:
            allowed = ", ".join(str(d) for d in self.allowed_durations)
            raise InvalidRequestError(f"Length must be one of: {allowed}")
        return length

    def choose_model(self, requested: Any, fallback: Optional[Tuple[str, ...]] = None) -> str:
        allowed = self.models or fallback or (self.api_model,)
        default = self.default_model or allowed[0]
        candidate = requested.strip() if isinstance(requested, str) else ""
        return candidate if candidate in allowed else default

    def choose_size(
        self,
        requested: Any,
        aspect_ratio: Any = None,
        fallback: Optional[Tuple[str, ...]] = None,
    ) -> Optional[str]:
        allowed = self.sizes or fallback
        if not allowed:
            return None
        default = self.default_size or allowed[0]
        for value in (requested, aspect_ratio):
            candidate = value.strip() if isinstance(value, str) else ""
            if candidate in allowed:
                return candidate
        return default


def _round_length(value: Any) -> Optional[int]:
    # bool is an int subclass; a checkbox value is not a length
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if isinstance(value, (int, float)) and math.isfinite(value):
        return int(math.floor(value + 0.5))
    return None


ENGINES: Tuple[Engine, ...] = (
    Engine("pollo-v1-6", "Pollo v1.6", "pollo", "pollo-v1-6", True, 5, 20, 10),
    Engine(
        "runway-gen3a",
        "Runway Gen-3 Alpha Turbo",
        "runway",
        "gen3a_turbo",
        True,
        5,
        10,
        5,
        allowed_durations=(5, 10),
        requires_prompt_image=True,
    ),
    Engine("kling-v2-5-turbo", "Kling v2.5 Turbo", "kling-ai", "kling-v2-5-turbo", False, 5, 15, 6),
    Engine("kling-v2-1-master", "Kling v2.1 Master", "kling-ai", "kling-v2-1-master", False, 5, 15, 6),
    Engine("pika-v2-2", "Pika v2.2", "pika", "pika-v2-2", True, 5, 20, 6),
    Engine("pika-v2-1", "Pika v2.1", "pika", "pika-v2-1", True, 5, 20, 6),
    Engine("wan-v2-5-preview", "Wanx v2.5 Preview", "wanx", "wan-v2-5-preview", True, 5, 20, 8),
    Engine("wan-v2-2-flash", "Wanx v2.2 Flash", "wanx", "wan-v2-2-flash", True, 5, 20, 6),
    Engine("wan-v2-2-plus", "Wanx v2.2 Plus", "wanx", "wan-v2-2-plus", True, 5, 20, 6),
    Engine("wanx-v2-1", "Wanx v2.1", "wanx", "wanx-v2-1", True, 5, 20, 6),
    Engine(
        "sora-2",
        "Sora 2",
        "openai",
        "sora-2",
        False,
        4,
        12,
        8,
        allowed_durations=(4, 8, 12),
        models=("sora-2", "sora-2-pro"),
        default_model="sora-2",
        sizes=("1280x720", "720x1280", "1792x1024", "1024x1792"),
        default_size="1280x720",
        allows_reference_image=True,
    ),
    Engine(
        "gemini-api",
        "Gemini API - Veo",
        "gemini",
        "veo-3.1-generate-preview",
        False,
        4,
        8,
        8,
        allowed_durations=(4, 6, 8),
        models=(
            "veo-3.1-generate-preview",
            "veo-3.1-fast-generate-preview",
            "veo-3.0-generate-001",
            "veo-3.0-fast-generate-001",
            "veo-2.0-generate-001",
        ),
        default_model="veo-3.1-generate-preview",
        sizes=("720p", "1080p"),
        default_size="720p",
        allows_reference_image=True,
    ),
)


def load_engines(runway_model: Optional[str] = None) -> Dict[str, Engine]:
    """Return the engine catalog keyed by id, in display order."""
    catalog = {}
    for engine in ENGINES:
        if engine.provider == "runway" and runway_model:
            engine = replace(engine, api_model=runway_model)
        catalog[engine.id] = engine
    return catalog


def engine_descriptors(engines: Dict[str, Engine]) -> List[Dict[str, Any]]:
    return [engine.descriptor() for engine in engines.values()]
