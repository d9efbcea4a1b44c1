from types import ModuleType

from . import gemini, pollo, runway, sora
from .common import ProviderContext

ADAPTERS = {
    "runway": runway,
    "openai": sora,
    "gemini": gemini,
}
ADAPTERS.update({provider: pollo for provider in pollo.PROVIDERS})


def adapter_for(provider: str) -> ModuleType:
    """Adapter module for a provider tag; unknown tags go to the aggregator."""
    return ADAPTERS.get(provider, pollo)


__all__ = ["ADAPTERS", "ProviderContext", "adapter_for"]
