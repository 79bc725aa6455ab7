"""Redis-backed ingestion queue with a global start-rate limiter.

Jobs are stored as Redis hashes and moved between lists:

    {prefix}:waiting : job IDs ready to run (LPUSH in, RPOPLPUSH out, so FIFO)
    {prefix}:active  : job IDs currently being processed
    {prefix}:failed  : job IDs that exhausted their delivery attempts
    {prefix}:job:{id}: job payload and attempt count

The limiter allows at most `max_jobs` job starts per `window_ms`, shared by
every worker using the same Redis instance. The window opens with the first
start, so with max_jobs=1 two starts are always at least one window apart.

Typical usage::

    redis_client = connect_redis(os.environ.get("REDIS_URL"))
    queue = JobQueue(redis_client, limiter=RateLimiter(redis_client, window_ms=2000))
    queue.enqueue({"accountId": 12, "game": "rainbow6", "post": item})
    queue.process(orchestrator.handle, stop_event=stop)
"""

import json
import threading
import time
from typing import Any, Callable, Dict, Optional

import redis
import structlog

from devtracker.backend.utils.errors import QueueUnavailableError, retry_with_backoff
from devtracker.models.ingest_models import Job, JobResult, JobStatus

logger = structlog.get_logger()

DEFAULT_QUEUE_NAME = "reddit-posts"
DEFAULT_WINDOW_MS = 2000
DEFAULT_MAX_ATTEMPTS = 3

# Shortest sleep while waiting for a limiter window to close
_MIN_LIMITER_SLEEP = 0.01


def connect_redis(redis_url: Optional[str], max_retries: int = 3, base_delay: float = 0.5) -> redis.Redis:
    """Open and verify the Redis connection backing the queue.

    Args:
        redis_url: Connection URL (REDIS_URL); None or empty disables ingestion
        max_retries: Ping retries before giving up
        base_delay: Initial backoff delay in seconds

    Returns:
        redis.Redis: Client with decoded string responses

    Raises:
        QueueUnavailableError: If REDIS_URL is missing or malformed, or Redis stays unreachable
    """
    if not redis_url:
        logger.error("queue_unavailable", reason="REDIS_URL not configured")
        raise QueueUnavailableError("No queue backing store configured (REDIS_URL is not set)")

    try:
        client = redis.Redis.from_url(redis_url, decode_responses=True)
        retry_with_backoff(
            client.ping,
            max_retries=max_retries,
            base_delay=base_delay,
            retryable_exceptions=(redis.ConnectionError, redis.TimeoutError),
            operation="redis_ping",
        )
    except (ValueError, redis.RedisError) as e:
        logger.error("queue_unavailable", reason=str(e), error_type=type(e).__name__)
        raise QueueUnavailableError(f"Queue backing store unreachable: {e}") from e

    return client


class RateLimiter:
    """Fixed-window limiter on job starts, shared through Redis.

    Attributes:
        key: Redis key holding the current window's start count
        max_jobs: Job starts allowed per window
        window_ms: Window length in milliseconds
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        key: str = f"devtracker:queue:{DEFAULT_QUEUE_NAME}:limiter",
        max_jobs: int = 1,
        window_ms: int = DEFAULT_WINDOW_MS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_jobs < 1:
            raise ValueError("max_jobs must be at least 1")
        if window_ms < 1:
            raise ValueError("window_ms must be at least 1")

        self.redis = redis_client
        self.key = key
        self.max_jobs = max_jobs
        self.window_ms = window_ms
        self._sleep = sleep

    def try_acquire(self) -> float:
        """Try to take a start slot in the current window.

        Returns:
            float: 0.0 when a slot was taken, otherwise seconds until the
                window closes
        """
        pipe = self.redis.pipeline()
        pipe.set(self.key, 0, nx=True, px=self.window_ms)
        pipe.incr(self.key)
        pipe.pttl(self.key)
        _, count, ttl_ms = pipe.execute()

        if count <= self.max_jobs:
            return 0.0

        if ttl_ms == -1:
            # Key lost its expiry (INCR raced an expiry), close the window again
            self.redis.pexpire(self.key, self.window_ms)
            ttl_ms = self.window_ms

        return max(ttl_ms, 0) / 1000.0

    def wait_for_slot(self) -> None:
        """Block until a start slot is acquired."""
        while True:
            wait = self.try_acquire()
            if wait <= 0:
                return
            self._sleep(max(wait, _MIN_LIMITER_SLEEP))


class JobQueue:
    """Durable job queue with at-least-once delivery.

    A single consumer runs one job at a time. Handler results decide what
    happens to the job:

        COMPLETED       : job removed
        DISCARDED       : job removed, reason logged
        PERMANENT_ERROR : job removed (e.g. duplicate content), never retried
        RETRYABLE_ERROR : job re-queued until max_attempts, then dead-lettered

    A handler that raises is treated as RETRYABLE_ERROR.
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        name: str = DEFAULT_QUEUE_NAME,
        limiter: Optional[RateLimiter] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        poll_interval: float = 1.0,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.redis = redis_client
        self.name = name
        self.prefix = f"devtracker:queue:{name}"
        self.limiter = limiter or RateLimiter(redis_client, key=f"{self.prefix}:limiter")
        self.max_attempts = max_attempts
        self.poll_interval = poll_interval

        self.waiting_key = f"{self.prefix}:waiting"
        self.active_key = f"{self.prefix}:active"
        self.failed_key = f"{self.prefix}:failed"
        self.id_key = f"{self.prefix}:id"

    def _job_key(self, job_id: str) -> str:
        return f"{self.prefix}:job:{job_id}"

    def enqueue(self, data: Dict[str, Any]) -> Job:
        """Add a job (`{accountId, game, post}`) to the end of the queue."""
        job_id = str(self.redis.incr(self.id_key))

        pipe = self.redis.pipeline()
        pipe.hset(self._job_key(job_id), mapping={
            "data": json.dumps(data),
            "attempts": 0,
        })
        pipe.lpush(self.waiting_key, job_id)
        pipe.execute()

        job = Job.from_data(job_id, data)
        logger.debug("job_enqueued", job_id=job_id, game=job.game)
        return job

    def get_job(self, job_id: str) -> Optional[Job]:
        stored = self.redis.hgetall(self._job_key(job_id))
        if not stored:
            return None
        return Job.from_data(job_id, json.loads(stored["data"]), int(stored.get("attempts", 0)))

    def counts(self) -> Dict[str, int]:
        """Return the number of waiting, active and failed jobs."""
        return {
            "waiting": self.redis.llen(self.waiting_key),
            "active": self.redis.llen(self.active_key),
            "failed": self.redis.llen(self.failed_key),
        }

    def recover_stalled(self) -> int:
        """Move jobs left active by a stopped worker back to waiting.

        Only safe while no other consumer is running.

        Returns:
            int: Number of jobs moved
        """
        moved = 0
        while self.redis.rpoplpush(self.active_key, self.waiting_key) is not None:
            moved += 1

        if moved:
            logger.warning("stalled_jobs_recovered", queue=self.name, count=moved)
        return moved

    def remove(self, job_id: str) -> None:
        """Delete a job from the active list and drop its payload."""
        pipe = self.redis.pipeline()
        pipe.lrem(self.active_key, 0, job_id)
        pipe.delete(self._job_key(job_id))
        pipe.execute()

    def _settle(self, job: Job, result: JobResult) -> None:
        if result.status == JobStatus.COMPLETED:
            self.remove(job.id)
            logger.info("job_completed", job_id=job.id, game=job.game)
            return

        if result.status == JobStatus.DISCARDED:
            self.remove(job.id)
            logger.info("job_discarded", job_id=job.id, game=job.game, reason=result.reason)
            return

        if result.status == JobStatus.PERMANENT_ERROR:
            self.remove(job.id)
            logger.info(
                "job_removed_duplicate" if result.reason == "duplicate" else "job_removed",
                job_id=job.id,
                game=job.game,
                reason=result.reason,
                status_code=result.status_code
            )
            return

        attempts = int(self.redis.hincrby(self._job_key(job.id), "attempts", 1))
        error = str(result.error) if result.error else result.reason

        pipe = self.redis.pipeline()
        pipe.lrem(self.active_key, 0, job.id)
        if attempts < self.max_attempts:
            pipe.lpush(self.waiting_key, job.id)
            pipe.execute()
            logger.warning(
                "job_retry_scheduled",
                job_id=job.id,
                game=job.game,
                attempts=attempts,
                max_attempts=self.max_attempts,
                error=error
            )
        else:
            pipe.lpush(self.failed_key, job.id)
            pipe.execute()
            logger.error(
                "job_failed",
                job_id=job.id,
                game=job.game,
                attempts=attempts,
                error=error
            )

    def process_next(self, handler: Callable[[Job], JobResult]) -> Optional[JobResult]:
        """Run the oldest waiting job through `handler`.

        Waits for the rate limiter before the job starts.

        Returns:
            JobResult of the job, or None when the queue is empty
        """
        job_id = self.redis.rpoplpush(self.waiting_key, self.active_key)
        if job_id is None:
            return None

        job = self.get_job(job_id)
        if job is None:
            # Payload vanished (removed while waiting)
            self.redis.lrem(self.active_key, 0, job_id)
            logger.warning("job_payload_missing", job_id=job_id)
            return JobResult.discarded("missing_payload")

        self.limiter.wait_for_slot()
        logger.info("job_started", job_id=job.id, game=job.game, attempts=job.attempts)

        try:
            result = handler(job)
        except Exception as e:
            logger.error("job_handler_error", job_id=job.id, game=job.game, exc_info=True)
            result = JobResult.retryable(e, reason="handler_error")

        if not isinstance(result, JobResult):
            result = JobResult.completed()

        self._settle(job, result)
        return result

    def process(
        self,
        handler: Callable[[Job], JobResult],
        stop_event: Optional[threading.Event] = None,
        max_jobs: Optional[int] = None,
    ) -> int:
        """Consume jobs until stopped.

        Args:
            handler: The single consumer, called once per job
            stop_event: Set to stop after the current job
            max_jobs: Stop after this many jobs (None runs until stopped)

        Returns:
            int: Number of jobs processed
        """
        stop_event = stop_event or threading.Event()
        processed = 0

        logger.info("queue_consumer_started", queue=self.name, **self.counts())

        while not stop_event.is_set():
            if max_jobs is not None and processed >= max_jobs:
                break

            result = self.process_next(handler)
            if result is None:
                stop_event.wait(self.poll_interval)
                continue
            processed += 1

        logger.info("queue_consumer_stopped", queue=self.name, processed=processed)
        return processed
