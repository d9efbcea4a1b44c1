import logging
import threading
from typing import Dict, List, Optional

from .models import Job

logger = logging.getLogger(__name__)


class JobStore:
    """In-memory job table keyed by the vendor-assigned id.

    Records live for the lifetime of the process. The lock only protects the
    mapping; two overlapping polls of one job still race on the record itself.
    """

    def __init__(self):
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()

    def add(self, job: Job) -> Job:
        with self._lock:
            self._jobs[job.id] = job
        logger.info("[add] Job stored: %s (%s/%s)", job.id, job.provider, job.engine_id)
        return job

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def save(self, job: Job) -> None:
        with self._lock:
            self._jobs[job.id] = job

    def all(self) -> List[Job]:
        with self._lock:
            return list(self._jobs.values())

    def __contains__(self, job_id: object) -> bool:
        with self._lock:
            return job_id in self._jobs

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)
