"""
Developer Tracker API Integration Module

HTTP client for the tracker's authenticated write API:
- Submit normalized posts (POST /{game}/posts)
- List tracked accounts for a game (GET /{game}/accounts)

The write API answers 409 when a post with the same URL already exists.
That status is surfaced as DuplicateResourceError so the ingestion queue
can drop the job instead of retrying it.

Environment variables: API_TOKEN (required), DEVTRACKER_API_URL, HTTP_TIMEOUT_SECONDS
"""

import os
from typing import Any, Dict, List, Optional

import requests
import structlog

from devtracker.models.reddit_models import Post

logger = structlog.get_logger()

DEFAULT_API_URL = "https://api.developertracker.com"
DEFAULT_TIMEOUT = 15.0

HTTP_CONFLICT = 409


class TrackerAPIError(Exception):
    """Base exception for write API failures.

    Attributes:
        status_code: HTTP status returned by the API (None for network errors)
        url: Requested URL
    """

    def __init__(self, message: str, status_code: Optional[int] = None, url: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class DuplicateResourceError(TrackerAPIError):
    """Exception when the API already holds the submitted resource (HTTP 409)."""
    pass


class TrackerAPIClient:
    """Bearer-token client for the tracker API.

    Attributes:
        base_url: API root, without trailing slash
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        if not token:
            raise ValueError("API token is required for the tracker API")

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self._headers = {"Authorization": f"Bearer {token}"}

    @classmethod
    def from_env(cls) -> "TrackerAPIClient":
        """Build a client from API_TOKEN, DEVTRACKER_API_URL and HTTP_TIMEOUT_SECONDS.

        Raises:
            ValueError: If API_TOKEN is missing or empty
        """
        token = os.environ.get("API_TOKEN", "").strip()
        if not token:
            raise ValueError("Missing required environment variable(s): API_TOKEN")

        return cls(
            base_url=os.environ.get("DEVTRACKER_API_URL", "").strip() or DEFAULT_API_URL,
            token=token,
            timeout=float(os.environ.get("HTTP_TIMEOUT_SECONDS", DEFAULT_TIMEOUT)),
        )

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"

        try:
            response = self.session.request(
                method,
                url,
                headers=self._headers,
                timeout=self.timeout,
                **kwargs
            )
        except requests.RequestException as e:
            raise TrackerAPIError(f"{method} {url} failed: {e}", url=url) from e

        if response.status_code == HTTP_CONFLICT:
            raise DuplicateResourceError(
                f"{url} returned {response.status_code}",
                status_code=response.status_code,
                url=url,
            )

        if not 200 <= response.status_code < 300:
            raise TrackerAPIError(
                f"{url} returned {response.status_code}",
                status_code=response.status_code,
                url=url,
            )

        return response

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET a path and return the decoded JSON body."""
        response = self._request("GET", path, params=params)
        try:
            return response.json()
        except ValueError as e:
            raise TrackerAPIError(
                f"GET {path} returned a body that is not JSON",
                status_code=response.status_code,
            ) from e

    def post(self, path: str, payload: Dict[str, Any]) -> None:
        """POST a JSON payload. Any 2xx response is success."""
        self._request("POST", path, json=payload)

    def submit_post(self, game: str, post: Post) -> None:
        """Store a normalized post for a game.

        Raises:
            DuplicateResourceError: If a post with the same URL already exists
            TrackerAPIError: On any other failure
        """
        self.post(f"/{game}/posts", post.to_payload())
        logger.info("post_submitted", game=game, url=post.url, account_id=post.account_id)

    def list_accounts(self, game: str) -> List[Dict[str, Any]]:
        """Return the tracked accounts of a game (`id`, `identifier`, `service`).

        Raises:
            TrackerAPIError: If the request fails or the body is not a list of accounts
        """
        body = self.get(f"/{game}/accounts")
        accounts = body["data"] if isinstance(body, dict) and "data" in body else body
        if not isinstance(accounts, list) or not all(isinstance(a, dict) for a in accounts):
            raise TrackerAPIError(
                f"GET /{game}/accounts returned an unexpected body: {type(accounts).__name__}"
            )
        return accounts
