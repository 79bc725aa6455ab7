"""
Tests for the ingestion orchestrator.

Behavioral tests verifying the JobResult returned for each outcome of a
job: stored, discarded (malformed or untracked), duplicate, and retryable
fetch or submit failures.
"""

import pytest
from unittest.mock import MagicMock

from devtracker.backend.integrations.tracker_api import DuplicateResourceError, TrackerAPIError
from devtracker.ingest import IngestionOrchestrator
from devtracker.models.ingest_models import Job, JobStatus
from devtracker.reddit import RedditAPIError
from tests.reddit_fixtures import comment, reply_item, submission, thread


@pytest.fixture
def reddit_client():
    client = MagicMock()
    client.fetch_thread.return_value = thread([comment("dk2abc", author="player1")])
    return client


@pytest.fixture
def api_client():
    return MagicMock()


@pytest.fixture
def orchestrator(reddit_client, api_client):
    return IngestionOrchestrator(reddit_client, api_client)


def _job(post=None, account_id=12, game="rainbow6"):
    return Job(id="1", account_id=account_id, game=game, post=post if post is not None else reply_item())


class TestHandle:
    """Test outcome mapping of IngestionOrchestrator.handle()."""

    def test_stored_post_completes(self, orchestrator, api_client):
        result = orchestrator.handle(_job())

        assert result.status == JobStatus.COMPLETED
        game, post = api_client.submit_post.call_args[0]
        assert game == "rainbow6"
        assert post.account_id == 12
        assert post.text.startswith("<blockquote>")

    @pytest.mark.parametrize("account_id", [None, "", 0])
    def test_missing_account_is_discarded(self, orchestrator, reddit_client, api_client, account_id):
        """No submission or fetch is attempted without an account."""
        result = orchestrator.handle(_job(account_id=account_id))

        assert result.status == JobStatus.DISCARDED
        assert result.reason == "missing_account_id"
        reddit_client.fetch_thread.assert_not_called()
        api_client.submit_post.assert_not_called()

    def test_malformed_item_is_discarded(self, orchestrator, api_client):
        result = orchestrator.handle(_job(post={"kind": "t1"}))

        assert result.status == JobStatus.DISCARDED
        assert result.reason == "normalize_failed"
        assert isinstance(result.error, ValueError)
        api_client.submit_post.assert_not_called()

    def test_reddit_failure_is_retryable(self, orchestrator, reddit_client, api_client):
        reddit_client.fetch_thread.side_effect = RedditAPIError("returned 503", status_code=503)

        result = orchestrator.handle(_job())

        assert result.status == JobStatus.RETRYABLE_ERROR
        assert result.reason == "reddit_fetch_failed"
        assert result.status_code == 503
        api_client.submit_post.assert_not_called()

    def test_duplicate_is_permanent(self, orchestrator, api_client):
        api_client.submit_post.side_effect = DuplicateResourceError("returned 409", status_code=409)

        result = orchestrator.handle(_job())

        assert result.status == JobStatus.PERMANENT_ERROR
        assert result.reason == "duplicate"
        assert result.status_code == 409

    @pytest.mark.parametrize("status_code", [500, 502, None])
    def test_other_submit_failures_are_retryable(self, orchestrator, api_client, status_code):
        api_client.submit_post.side_effect = TrackerAPIError("failed", status_code=status_code)

        result = orchestrator.handle(_job())

        assert result.status == JobStatus.RETRYABLE_ERROR
        assert result.reason == "submit_failed"
        assert result.status_code == status_code

    def test_unknown_kind_is_still_submitted(self, orchestrator, api_client):
        item = {"kind": "t4", "data": {"id": "m1", "subreddit": "Rainbow6", "created_utc": 1}}

        result = orchestrator.handle(_job(post=item))

        assert result.status == JobStatus.COMPLETED
        post = api_client.submit_post.call_args[0][1]
        assert post.url == ""
        assert post.text == ""

    def test_submission_needs_no_fetch(self, orchestrator, reddit_client):
        result = orchestrator.handle(_job(post=submission(selftext_html="&lt;p&gt;hi&lt;/p&gt;")))

        assert result.status == JobStatus.COMPLETED
        reddit_client.fetch_thread.assert_not_called()


class TestAccountFilter:
    """Test the optional tracked-account check."""

    def test_untracked_account_is_discarded(self, reddit_client, api_client):
        cache = MagicMock()
        cache.is_tracked.return_value = False
        orchestrator = IngestionOrchestrator(reddit_client, api_client, cache)

        result = orchestrator.handle(_job(account_id=99))

        assert result.status == JobStatus.DISCARDED
        assert result.reason == "untracked_account"
        cache.is_tracked.assert_called_once_with("rainbow6", 99)
        api_client.submit_post.assert_not_called()

    @pytest.mark.parametrize("tracked", [True, None])
    def test_tracked_or_unknown_account_is_processed(self, reddit_client, api_client, tracked):
        """An unloaded cache (None) never drops jobs."""
        cache = MagicMock()
        cache.is_tracked.return_value = tracked
        orchestrator = IngestionOrchestrator(reddit_client, api_client, cache)

        result = orchestrator.handle(_job())

        assert result.status == JobStatus.COMPLETED
