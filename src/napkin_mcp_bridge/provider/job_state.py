from __future__ import annotations

from enum import Enum


class JobStatus(str, Enum):
    """Lifecycle of one provider job.

    ``TIMEOUT`` is never reported by the provider; the poller assigns it when the
    attempt budget runs out.
    """

    SUBMITTED = "submitted"
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    ERROR = "error"
    TIMEOUT = "timeout"

    @classmethod
    def parse(cls, raw: object) -> JobStatus:
        # Unrecognized or missing statuses keep the job in flight.
        if isinstance(raw, str):
            try:
                return cls(raw.strip().lower())
            except ValueError:
                pass
        return cls.PROCESSING

    @property
    def is_failure(self) -> bool:
        return self in (JobStatus.FAILED, JobStatus.ERROR)

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.ERROR, JobStatus.TIMEOUT)
