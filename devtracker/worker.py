"""Reddit ingestion worker.

Connects to the queue, wires the fetcher, orchestrator and write API client
together, and consumes jobs until interrupted. Without a queue backing store
(REDIS_URL) the worker refuses to start; the HTTP API is unaffected.

Usage:
    python -m devtracker.worker [--window-ms 2000] [--max-attempts 3]
    devtracker-worker

Requires env vars: API_TOKEN, and REDIS_URL for the queue (exit code 2 when it
is missing or unreachable)
"""

import argparse
import os
import signal
import sys
import threading
from dataclasses import dataclass, field
from typing import List, Optional

from devtracker.account_cache import AccountCache
from devtracker.backend.integrations.tracker_api import DEFAULT_API_URL, TrackerAPIClient
from devtracker.backend.queue import JobQueue, RateLimiter, connect_redis
from devtracker.backend.utils.errors import QueueUnavailableError
from devtracker.backend.utils.logging_config import get_logger, setup_logging
from devtracker.ingest import IngestionOrchestrator
from devtracker.reddit import DEFAULT_USER_AGENT, RedditClient


def _load_dotenv(path: str = ".env") -> None:
    """Load a .env file into os.environ without overriding existing values."""
    if os.path.exists(path):
        with open(path) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#") and "=" in line:
                    key, _, value = line.partition("=")
                    os.environ.setdefault(key.strip(), value.strip().strip('"').strip("'"))


@dataclass
class IngestConfig:
    """Worker settings read from the environment."""
    redis_url: str
    api_token: str
    api_url: str = DEFAULT_API_URL
    user_agent: str = DEFAULT_USER_AGENT
    http_timeout: float = 15.0
    queue_name: str = "reddit-posts"
    limiter_max: int = 1
    limiter_window_ms: int = 2000
    max_attempts: int = 3
    poll_interval: float = 1.0
    cache_games: List[str] = field(default_factory=list)
    cache_refresh_seconds: float = 300.0

    @classmethod
    def from_env(cls) -> "IngestConfig":
        """Read and validate worker settings.

        An empty REDIS_URL is kept as is; connect_redis() rejects it as a
        missing queue backing store.

        Raises:
            ValueError: If API_TOKEN is missing or empty
        """
        if not os.environ.get("API_TOKEN", "").strip():
            raise ValueError("Missing required environment variable(s): API_TOKEN")

        env = os.environ.get
        return cls(
            redis_url=env("REDIS_URL", "").strip(),
            api_token=env("API_TOKEN").strip(),
            api_url=env("DEVTRACKER_API_URL", "").strip() or DEFAULT_API_URL,
            user_agent=env("REDDIT_USER_AGENT", "").strip() or DEFAULT_USER_AGENT,
            http_timeout=float(env("HTTP_TIMEOUT_SECONDS", 15)),
            queue_name=env("INGEST_QUEUE_NAME", "").strip() or "reddit-posts",
            limiter_max=int(env("INGEST_LIMITER_MAX", 1)),
            limiter_window_ms=int(env("INGEST_LIMITER_WINDOW_MS", 2000)),
            max_attempts=int(env("INGEST_MAX_ATTEMPTS", 3)),
            poll_interval=float(env("INGEST_POLL_INTERVAL", 1.0)),
            cache_games=[g.strip() for g in env("ACCOUNT_CACHE_GAMES", "").split(",") if g.strip()],
            cache_refresh_seconds=float(env("ACCOUNT_CACHE_REFRESH_SECONDS", 300)),
        )


def build_queue(config: IngestConfig, redis_client=None) -> JobQueue:
    """Create the job queue and its limiter.

    Raises:
        QueueUnavailableError: If the queue backing store is missing or unreachable
    """
    if redis_client is None:
        redis_client = connect_redis(config.redis_url)

    limiter = RateLimiter(
        redis_client,
        key=f"devtracker:queue:{config.queue_name}:limiter",
        max_jobs=config.limiter_max,
        window_ms=config.limiter_window_ms,
    )
    return JobQueue(
        redis_client,
        name=config.queue_name,
        limiter=limiter,
        max_attempts=config.max_attempts,
        poll_interval=config.poll_interval,
    )


def run_worker(config: IngestConfig, stop_event: Optional[threading.Event] = None,
               redis_client=None) -> int:
    """Consume the ingestion queue until `stop_event` is set.

    Returns:
        int: Number of jobs processed
    """
    logger = get_logger(__name__)
    queue = build_queue(config, redis_client)

    api_client = TrackerAPIClient(config.api_url, config.api_token, timeout=config.http_timeout)
    reddit_client = RedditClient(user_agent=config.user_agent, timeout=config.http_timeout)

    account_cache = None
    if config.cache_games:
        account_cache = AccountCache(api_client, config.cache_games, config.cache_refresh_seconds)
        account_cache.start()

    orchestrator = IngestionOrchestrator(reddit_client, api_client, account_cache)

    logger.info(
        "reddit_worker_started",
        queue=config.queue_name,
        limiter_max=config.limiter_max,
        limiter_window_ms=config.limiter_window_ms,
        max_attempts=config.max_attempts,
    )

    try:
        queue.recover_stalled()
        return queue.process(orchestrator.handle, stop_event=stop_event)
    finally:
        if account_cache is not None:
            account_cache.stop()
        logger.info("reddit_worker_stopped", reddit_requests=reddit_client.request_count)


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Consume the Reddit post ingestion queue")
    parser.add_argument("--window-ms", type=int, help="Limiter window in milliseconds (default: INGEST_LIMITER_WINDOW_MS or 2000)")
    parser.add_argument("--max-attempts", type=int, help="Delivery attempts before a job is dead-lettered")
    parser.add_argument("--log-dir", default="logs", help="Log directory (default: logs)")
    args = parser.parse_args(argv)

    _load_dotenv()
    setup_logging(log_dir=args.log_dir, log_filename="worker.log")
    logger = get_logger(__name__)

    try:
        config = IngestConfig.from_env()
    except ValueError as e:
        logger.error("worker_config_invalid", error=str(e))
        print(f"Error: {e}")
        sys.exit(1)

    if args.window_ms is not None:
        config.limiter_window_ms = args.window_ms
    if args.max_attempts is not None:
        config.max_attempts = args.max_attempts

    stop_event = threading.Event()

    def _request_stop(signum, frame):
        logger.info("worker_stop_requested", signal=signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)

    try:
        run_worker(config, stop_event)
    except QueueUnavailableError as e:
        print(f"Error: ingestion disabled: {e}")
        sys.exit(2)


if __name__ == "__main__":
    main()
