"""HTTP relay for third-party video generation APIs."""

from .app import create_app
from .config import Settings
from .relay import VideoRelay
from .store import JobStore

__version__ = "0.1.0"

__all__ = ["create_app", "Settings", "VideoRelay", "JobStore", "__version__"]
