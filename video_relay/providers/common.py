import logging
import math
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import requests

from ..config import Settings
from ..errors import ProviderError, extract_error_message

logger = logging.getLogger(__name__)


@dataclass
class ProviderContext:
    """What an adapter needs to talk to its vendor."""

    settings: Settings
    session: requests.Session
    genai_factory: Optional[Callable[[Settings], Any]] = None
    openai_factory: Optional[Callable[[Settings], Any]] = None
    _clients: Dict[str, Any] = field(default_factory=dict, init=False, repr=False)
    _clients_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @property
    def timeout(self) -> float:
        return self.settings.request_timeout

    def client(self, name: str, factory: Callable[[Settings], Any]) -> Any:
        """Build an SDK client on first use and reuse it afterwards."""
        with self._clients_lock:
            if name not in self._clients:
                logger.info("[%s] Creating client", name)
                self._clients[name] = factory(self.settings)
            return self._clients[name]


def call_json(
    ctx: ProviderContext,
    method: str,
    url: str,
    vendor: str,
    **kwargs: Any,
) -> Dict[str, Any]:
    """Make one vendor call and return its JSON body.

    Raises ProviderError carrying the vendor status (502 when there is none)
    and the best message that can be pulled out of the body.
    """
    try:
        resp = ctx.session.request(method, url, timeout=ctx.timeout, **kwargs)
    except requests.RequestException as e:
        logger.error("[%s] Request to %s failed: %s", vendor, url, e)
        raise ProviderError(f"{vendor} request failed: {e}") from e

    try:
        body = resp.json()
    except ValueError:
        body = None

    if resp.status_code >= 400:
        logger.error("[%s] %s %s returned %s: %s", vendor, method, url, resp.status_code, body)
        message = extract_error_message(body, f"{vendor} request failed with HTTP {resp.status_code}")
        raise ProviderError(message, status_code=resp.status_code)

    if not isinstance(body, dict):
        raise ProviderError(f"{vendor} returned an invalid response")
    return body


def read_string(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def error_text(value: Any) -> Optional[str]:
    """Flatten a vendor error (string or object) into a message."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        message = value.get("message") or value.get("code")
        if message:
            return str(message)
    return str(value)


def coerce_seed(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool) or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return int(number)
