"""
Tests for the ingestion worker entry point.

Behavioral tests verifying environment configuration, queue wiring, and
the exit codes of the CLI when configuration or the queue is missing.
"""

import os
import threading

import pytest
from unittest.mock import patch

from devtracker.backend.utils.errors import QueueUnavailableError
from devtracker.models.ingest_models import JobResult
from devtracker.worker import IngestConfig, build_queue, main, run_worker
from tests.reddit_fixtures import reply_item


@pytest.fixture
def config():
    return IngestConfig(redis_url="redis://localhost:6379/0", api_token="secret", limiter_window_ms=10)


class TestIngestConfig:
    """Test IngestConfig.from_env()."""

    def test_defaults(self):
        with patch.dict('os.environ', {'REDIS_URL': 'redis://r:6379/0', 'API_TOKEN': 'abc'}, clear=True):
            config = IngestConfig.from_env()

        assert config.queue_name == "reddit-posts"
        assert config.limiter_max == 1
        assert config.limiter_window_ms == 2000
        assert config.max_attempts == 3
        assert config.user_agent == "devtracker-indexer/1.0"
        assert config.cache_games == []

    def test_overrides(self):
        with patch.dict('os.environ', {
            'REDIS_URL': 'redis://r:6379/0',
            'API_TOKEN': 'abc',
            'INGEST_LIMITER_WINDOW_MS': '5000',
            'INGEST_MAX_ATTEMPTS': '5',
            'ACCOUNT_CACHE_GAMES': 'rainbow6, division2',
            'HTTP_TIMEOUT_SECONDS': '30',
        }, clear=True):
            config = IngestConfig.from_env()

        assert config.limiter_window_ms == 5000
        assert config.max_attempts == 5
        assert config.cache_games == ["rainbow6", "division2"]
        assert config.http_timeout == 30.0

    def test_missing_api_token(self):
        with patch.dict('os.environ', {'REDIS_URL': 'redis://r:6379/0', 'API_TOKEN': ''}, clear=True):
            with pytest.raises(ValueError, match='API_TOKEN'):
                IngestConfig.from_env()

    def test_missing_redis_url_is_left_to_the_queue(self):
        """A missing queue store is reported when connecting, not as a config error."""
        with patch.dict('os.environ', {'API_TOKEN': 'abc'}, clear=True):
            config = IngestConfig.from_env()

        assert config.redis_url == ""

        with pytest.raises(QueueUnavailableError, match="REDIS_URL"):
            build_queue(config)


class TestRunWorker:
    """Test queue wiring."""

    def test_build_queue_uses_config(self, config, fake_redis):
        config.max_attempts = 4

        queue = build_queue(config, redis_client=fake_redis)

        assert queue.name == "reddit-posts"
        assert queue.max_attempts == 4
        assert queue.limiter.window_ms == 10
        assert queue.limiter.max_jobs == 1

    def test_processes_jobs_until_stopped(self, config, fake_redis):
        queue = build_queue(config, redis_client=fake_redis)
        queue.enqueue({"accountId": 1, "game": "rainbow6", "post": reply_item()})
        stop = threading.Event()
        handled = []

        def handle(job):
            handled.append(job.id)
            stop.set()
            return JobResult.completed()

        with patch("devtracker.worker.IngestionOrchestrator") as orchestrator_cls:
            orchestrator_cls.return_value.handle.side_effect = handle
            processed = run_worker(config, stop_event=stop, redis_client=fake_redis)

        assert processed == 1
        assert handled == ["1"]
        assert queue.counts() == {"waiting": 0, "active": 0, "failed": 0}

    def test_stalled_jobs_recovered_on_start(self, config, fake_redis):
        queue = build_queue(config, redis_client=fake_redis)
        queue.enqueue({"accountId": 1, "game": "rainbow6", "post": reply_item()})
        fake_redis.rpoplpush(queue.waiting_key, queue.active_key)
        stop = threading.Event()
        stop.set()

        run_worker(config, stop_event=stop, redis_client=fake_redis)

        assert queue.counts() == {"waiting": 1, "active": 0, "failed": 0}


class TestMain:
    """Test CLI exit codes."""

    @pytest.fixture(autouse=True)
    def isolated(self, tmp_path, monkeypatch):
        """Run main() in a temp dir with a clean environment and no signal handlers installed."""
        monkeypatch.chdir(tmp_path)
        with patch.dict('os.environ', {}, clear=True), patch("devtracker.worker.signal.signal"):
            yield

    def test_missing_config_exits_1(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            main(["--log-dir", str(tmp_path / "logs")])

        assert exc_info.value.code == 1

    def test_queue_unavailable_exits_2(self, tmp_path):
        os.environ['REDIS_URL'] = 'redis://localhost:6390/0'
        os.environ['API_TOKEN'] = 'abc'

        with patch("devtracker.worker.run_worker", side_effect=QueueUnavailableError("unreachable")):
            with pytest.raises(SystemExit) as exc_info:
                main(["--log-dir", str(tmp_path / "logs")])

        assert exc_info.value.code == 2

    @pytest.mark.parametrize('redis_url', [None, 'not-a-redis-url'])
    def test_missing_or_malformed_redis_url_exits_2(self, tmp_path, redis_url):
        os.environ['API_TOKEN'] = 'abc'
        if redis_url is not None:
            os.environ['REDIS_URL'] = redis_url

        with pytest.raises(SystemExit) as exc_info:
            main(["--log-dir", str(tmp_path / "logs")])

        assert exc_info.value.code == 2

    def test_cli_overrides(self, tmp_path):
        os.environ['REDIS_URL'] = 'redis://localhost:6379/0'
        os.environ['API_TOKEN'] = 'abc'

        with patch("devtracker.worker.run_worker") as run:
            main(["--window-ms", "5000", "--max-attempts", "7", "--log-dir", str(tmp_path / "logs")])

        config = run.call_args[0][0]
        assert config.limiter_window_ms == 5000
        assert config.max_attempts == 7

    def test_dotenv_loaded(self, tmp_path):
        (tmp_path / ".env").write_text("# worker\nREDIS_URL=redis://localhost:6379/1\nAPI_TOKEN='from-file'\n")

        with patch("devtracker.worker.run_worker") as run:
            main(["--log-dir", str(tmp_path / "logs")])

        config = run.call_args[0][0]
        assert config.redis_url == "redis://localhost:6379/1"
        assert config.api_token == "from-file"
