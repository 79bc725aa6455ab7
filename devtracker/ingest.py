"""Ingestion orchestration for queued Reddit items.

For each job: check the account, normalize the raw item (fetching the parent
thread for replies), and submit the resulting Post to the write API. Every
outcome is returned as a JobResult; the queue decides what to do with it.

Outcome mapping:
    no accountId / untracked account    -> DISCARDED
    Reddit fetch failure                -> RETRYABLE_ERROR
    other normalization failure / None  -> DISCARDED
    write API duplicate (409)           -> PERMANENT_ERROR ("duplicate")
    other write API failure             -> RETRYABLE_ERROR
    stored                              -> COMPLETED
"""

from typing import Optional

import structlog

from devtracker.account_cache import AccountCache
from devtracker.backend.integrations.tracker_api import DuplicateResourceError, TrackerAPIError
from devtracker.models.ingest_models import Job, JobResult
from devtracker.normalizer import normalize_item
from devtracker.reddit import RedditAPIError

logger = structlog.get_logger()


class IngestionOrchestrator:
    """Turns one queued job into one stored post.

    Attributes:
        reddit_client: Thread fetcher used for reply parent context
        api_client: Write API client (TrackerAPIClient)
        account_cache: Optional AccountCache used to drop untracked accounts
    """

    def __init__(self, reddit_client, api_client, account_cache: Optional[AccountCache] = None):
        self.reddit_client = reddit_client
        self.api_client = api_client
        self.account_cache = account_cache

    def handle(self, job: Job) -> JobResult:
        """Process a job and report its outcome."""
        log = logger.bind(job_id=job.id, game=job.game)

        if not job.account_id:
            log.info("job_missing_account")
            return JobResult.discarded("missing_account_id")

        if self.account_cache is not None and self.account_cache.is_tracked(job.game, job.account_id) is False:
            log.info("job_untracked_account", account_id=job.account_id)
            return JobResult.discarded("untracked_account")

        try:
            post = normalize_item(job.account_id, job.post, self.reddit_client)
        except RedditAPIError as e:
            log.warning("job_parent_fetch_failed", error=str(e), status_code=e.status_code)
            return JobResult.retryable(e, reason="reddit_fetch_failed", status_code=e.status_code)
        except Exception as e:
            log.warning("job_normalize_failed", error=str(e), error_type=type(e).__name__)
            return JobResult.discarded("normalize_failed", error=e)

        if not post:
            log.info("job_empty_post")
            return JobResult.discarded("empty_post")

        try:
            self.api_client.submit_post(job.game, post)
        except DuplicateResourceError as e:
            log.info("post_duplicate", url=post.url, status_code=e.status_code)
            return JobResult.permanent(e, reason="duplicate", status_code=e.status_code)
        except TrackerAPIError as e:
            log.warning("post_submit_failed", url=post.url, error=str(e), status_code=e.status_code)
            return JobResult.retryable(e, reason="submit_failed", status_code=e.status_code)

        return JobResult.completed()
