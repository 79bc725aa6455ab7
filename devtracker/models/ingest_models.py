"""Queue job and job outcome models.

A Job is one unit of ingestion work: exactly one Reddit item to normalize
and store for one tracked account. Processing a job yields a JobResult,
which the queue adapter uses to decide between removing, retrying or
dead-lettering the job.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class JobStatus(str, Enum):
    """Outcome of processing one job."""
    COMPLETED = "completed"
    DISCARDED = "discarded"
    RETRYABLE_ERROR = "retryable_error"
    PERMANENT_ERROR = "permanent_error"


@dataclass
class Job:
    """A queued ingestion job.

    Attributes:
        id: Queue-assigned job ID
        account_id: Tracked account the item belongs to (may be missing)
        game: Game identifier used for the write API path
        post: Raw Reddit item (`{"kind": ..., "data": {...}}`)
        attempts: Number of failed delivery attempts so far
    """
    id: str
    account_id: Any
    game: str
    post: Dict[str, Any] = field(default_factory=dict)
    attempts: int = 0

    def to_data(self) -> Dict[str, Any]:
        """Return the enqueue payload shape (`{accountId, game, post}`)."""
        return {
            "accountId": self.account_id,
            "game": self.game,
            "post": self.post,
        }

    @classmethod
    def from_data(cls, job_id: str, data: Dict[str, Any], attempts: int = 0) -> "Job":
        return cls(
            id=job_id,
            account_id=data.get("accountId"),
            game=data.get("game", ""),
            post=data.get("post") or {},
            attempts=attempts,
        )


@dataclass
class JobResult:
    """Explicit result of processing a job.

    Attributes:
        status: One of the JobStatus values
        reason: Short machine-readable reason (e.g. "duplicate", "missing_account_id")
        error: Exception that caused a failure, if any
        status_code: Upstream HTTP status code when the failure came from an HTTP call
    """
    status: JobStatus
    reason: str = ""
    error: Optional[BaseException] = None
    status_code: Optional[int] = None

    @classmethod
    def completed(cls) -> "JobResult":
        return cls(JobStatus.COMPLETED)

    @classmethod
    def discarded(cls, reason: str, error: Optional[BaseException] = None) -> "JobResult":
        return cls(JobStatus.DISCARDED, reason=reason, error=error)

    @classmethod
    def retryable(cls, error: BaseException, reason: str = "error",
                  status_code: Optional[int] = None) -> "JobResult":
        return cls(JobStatus.RETRYABLE_ERROR, reason=reason, error=error, status_code=status_code)

    @classmethod
    def permanent(cls, error: BaseException, reason: str,
                  status_code: Optional[int] = None) -> "JobResult":
        return cls(JobStatus.PERMANENT_ERROR, reason=reason, error=error, status_code=status_code)
