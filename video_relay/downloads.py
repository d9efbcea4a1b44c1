import logging
import re
import time
from pathlib import Path
from typing import Dict, Optional

import requests

from .errors import DownloadError
from .models import Job

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def slugify(text: Optional[str]) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (text or "").lower()).strip("-")
    return slug[:40]


def path_label(value: Optional[str]) -> str:
    label = (value or "").replace(":", "x")
    label = re.sub(r"[^A-Za-z0-9]+", "_", label)
    return label or "unknown"


def build_download_path(root: Path, job: Job, timestamp_ms: Optional[int] = None) -> Path:
    """Compute (and create) ``root/engine/prompt-slug/label/engine_ts.mp4``."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    directory = Path(root) / job.engine_id / (slugify(job.prompt) or "untitled") / path_label(job.download_label)
    logger.info("[download] Creating download directory: %s", directory)
    directory.mkdir(parents=True, exist_ok=True)
    return directory / f"{job.engine_id}_{timestamp_ms}.mp4"


def download_file(
    session: requests.Session,
    url: str,
    path: Path,
    headers: Optional[Dict[str, str]] = None,
    timeout: Optional[float] = None,
) -> Path:
    logger.info("[download] Downloading video from %s to %s", url, path)
    try:
        with session.request("GET", url, headers=headers or {}, stream=True, timeout=timeout) as resp:
            if resp.status_code >= 400:
                raise DownloadError(f"Download failed with HTTP {resp.status_code}")
            with open(path, "wb") as f:
                for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
    except DownloadError:
        Path(path).unlink(missing_ok=True)
        raise
    except (requests.RequestException, OSError) as e:
        Path(path).unlink(missing_ok=True)
        raise DownloadError(f"Download failed: {e}") from e
    logger.info("[download] Video download complete: %s", path)
    return Path(path)
