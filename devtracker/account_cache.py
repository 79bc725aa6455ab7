"""Tracked-account cache for the ingestion worker.

Holds the IDs of the accounts the tracker follows for each configured game,
so the worker can drop jobs for accounts that are no longer tracked without
a write API round trip. The cache is owned by the worker, handed to the
orchestrator explicitly, and refreshed by its own timer thread.
"""

import threading
from typing import Any, Dict, Iterable, Optional, Set

import structlog

from devtracker.backend.integrations.tracker_api import TrackerAPIError
from devtracker.backend.utils.errors import retry_with_backoff

logger = structlog.get_logger()

DEFAULT_REFRESH_SECONDS = 300.0


class AccountCache:
    """Per-game sets of tracked account IDs with timed refresh.

    Example:
        >>> with AccountCache(api_client, ["rainbow6"], refresh_interval=300) as cache:
        ...     cache.is_tracked("rainbow6", 12)
        True
    """

    def __init__(
        self,
        api_client,
        games: Iterable[str],
        refresh_interval: float = DEFAULT_REFRESH_SECONDS,
        max_retries: int = 2,
    ):
        self.api_client = api_client
        self.games = [game for game in games if game]
        self.refresh_interval = refresh_interval
        self.max_retries = max_retries

        self._accounts: Dict[str, Set[str]] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def refresh(self) -> None:
        """Reload the account list of every configured game.

        A game whose list cannot be loaded keeps its previous entries.
        """
        for game in self.games:
            try:
                accounts = retry_with_backoff(
                    lambda: self.api_client.list_accounts(game),
                    max_retries=self.max_retries,
                    base_delay=1.0,
                    retryable_exceptions=(TrackerAPIError,),
                    operation="account_cache_refresh",
                )
            except TrackerAPIError as e:
                logger.warning(
                    "account_cache_refresh_failed",
                    game=game,
                    error=str(e),
                    status_code=e.status_code
                )
                continue

            if not isinstance(accounts, list):
                logger.warning("account_cache_refresh_failed", game=game,
                               error=f"unexpected account list: {type(accounts).__name__}")
                continue

            ids = {
                str(account["id"]) for account in accounts
                if isinstance(account, dict) and account.get("id") is not None
            }
            with self._lock:
                self._accounts[game] = ids

            logger.info("account_cache_refreshed", game=game, accounts=len(ids))

    def is_tracked(self, game: str, account_id: Any) -> Optional[bool]:
        """Return whether an account is tracked for a game.

        Returns:
            True or False once the game has been loaded, None otherwise
        """
        with self._lock:
            accounts = self._accounts.get(game)
        if accounts is None:
            return None
        return str(account_id) in accounts

    def _run(self) -> None:
        while not self._stop.wait(self.refresh_interval):
            self.refresh()

    def start(self) -> None:
        """Load the cache once, then refresh it every refresh_interval seconds."""
        if self._thread is not None:
            return

        self.refresh()
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="account-cache", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop the refresh thread."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None

    def __enter__(self) -> "AccountCache":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
