"""Reddit Integration Module

This module fetches full comment threads from Reddit's public JSON endpoint
so that a developer's reply can be shown together with the comment it
answers.

Reddit rejects requests that do not carry a descriptive User-Agent, so every
request made through RedditClient sends one.
"""

import os
from typing import Any, List, Optional

import requests
import structlog

logger = structlog.get_logger()

REDDIT_API_BASE = "https://www.reddit.com"
SINGLE_THREAD_PATH = "/comments/{thread_id}.json?limit=1000"
DEFAULT_USER_AGENT = "devtracker-indexer/1.0"
DEFAULT_TIMEOUT = 15.0


class RedditAPIError(Exception):
    """Raised when a thread cannot be fetched from Reddit.

    Attributes:
        status_code: HTTP status returned by Reddit (None for network errors)
        url: Requested URL
    """

    def __init__(self, message: str, status_code: Optional[int] = None, url: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


def parse_id(reddit_id: str) -> str:
    """Strip the comment/submission type prefix from a Reddit ID.

    Example:
        >>> parse_id("t1_dk2x8yz")
        'dk2x8yz'
        >>> parse_id("t3_6ok3fs")
        '6ok3fs'
        >>> parse_id("6ok3fs")
        '6ok3fs'
    """
    return str(reddit_id).replace("t1_", "", 1).replace("t3_", "", 1)


class RedditClient:
    """Minimal client for Reddit's public thread endpoint.

    Each call is a fresh fetch; nothing is cached between jobs.

    Attributes:
        api_base: Reddit host, without trailing slash
        user_agent: Client identification sent with every request
        timeout: Request timeout in seconds
        request_count: Number of thread requests issued by this client
    """

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        api_base: str = REDDIT_API_BASE,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        if not user_agent or not user_agent.strip():
            raise ValueError("A descriptive user agent is required for Reddit requests")

        self.api_base = api_base.rstrip("/")
        self.user_agent = user_agent.strip()
        self.timeout = timeout
        self.session = session or requests.Session()
        self.request_count = 0

    @classmethod
    def from_env(cls) -> "RedditClient":
        """Build a client from REDDIT_USER_AGENT and HTTP_TIMEOUT_SECONDS."""
        user_agent = os.environ.get("REDDIT_USER_AGENT", "").strip() or DEFAULT_USER_AGENT
        timeout = float(os.environ.get("HTTP_TIMEOUT_SECONDS", DEFAULT_TIMEOUT))
        return cls(user_agent=user_agent, timeout=timeout)

    def get_thread_url(self, thread_id: str) -> str:
        """Return the JSON URL of a thread, accepting prefixed or bare IDs.

        Example:
            >>> RedditClient().get_thread_url("t3_6ok3fs")
            'https://www.reddit.com/comments/6ok3fs.json?limit=1000'
        """
        return self.api_base + SINGLE_THREAD_PATH.format(thread_id=parse_id(thread_id))

    def fetch_thread(self, thread_id: str) -> List[Any]:
        """Fetch a full thread document.

        Args:
            thread_id: Submission ID, with or without the "t3_" prefix

        Returns:
            list: The thread document, `[submission_listing, comment_listing]`

        Raises:
            RedditAPIError: On network errors, non-2xx responses or a body
                that is not a JSON listing array
        """
        url = self.get_thread_url(thread_id)
        self.request_count += 1

        try:
            response = self.session.get(
                url,
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(
                "reddit_fetch_failed",
                url=url,
                error=str(e),
                error_type=type(e).__name__
            )
            raise RedditAPIError(f"Reddit request to {url} failed: {e}", url=url) from e

        if not 200 <= response.status_code < 300:
            logger.error("reddit_fetch_failed", url=url, status_code=response.status_code)
            raise RedditAPIError(
                f"{url} returned {response.status_code}",
                status_code=response.status_code,
                url=url,
            )

        try:
            document = response.json()
        except ValueError as e:
            raise RedditAPIError(
                f"{url} returned a body that is not JSON",
                status_code=response.status_code,
                url=url,
            ) from e

        if not isinstance(document, list):
            raise RedditAPIError(
                f"{url} did not return a listing array",
                status_code=response.status_code,
                url=url,
            )

        logger.debug(
            "reddit_thread_fetched",
            thread_id=parse_id(thread_id),
            listings=len(document),
            request_count=self.request_count
        )
        return document
