"""
Shared pytest fixtures.

These fixtures provide temporary databases, an API client with seeded games,
developers and accounts, a token file, and an in-memory Redis for the queue.
All tests are behavioral - they verify what the code should do, not how it does it.
"""

import json
import os
import tempfile

import pytest

API_TOKEN = "test-token"
LIMITED_TOKEN = "limited-token"


@pytest.fixture
def temp_db_path():
    """Provide a temporary database file path that is cleaned up after test."""
    with tempfile.NamedTemporaryFile(suffix='.db', delete=False) as f:
        db_path = f.name

    yield db_path

    if os.path.exists(db_path):
        os.unlink(db_path)
    # Also cleanup WAL files if they exist
    for suffix in ['-wal', '-shm']:
        wal_file = db_path + suffix
        if os.path.exists(wal_file):
            os.unlink(wal_file)


@pytest.fixture
def tokens_file(tmp_path):
    """Write a token file granting the full token every write route."""
    path = tmp_path / "tokens.json"
    path.write_text(json.dumps({
        API_TOKEN: {
            "paths": ["/games", "/{game}/posts", "/{game}/accounts", "/{game}/developers"]
        },
        LIMITED_TOKEN: {"paths": ["/games"]},
    }))
    return str(path)


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {API_TOKEN}"}


def _seed(conn):
    """Two games; rainbow6 has a dev with reddit + twitter accounts and a community manager."""
    conn.executemany(
        "INSERT INTO games (id, identifier, name, short_name) VALUES (?, ?, ?, ?)",
        [(1, "rainbow6", "Rainbow Six Siege", "R6S"), (2, "division2", "The Division 2", "TD2")]
    )
    conn.executemany(
        "INSERT INTO developers (id, game_id, name, nick, group_name, role) VALUES (?, ?, ?, ?, ?, ?)",
        [
            (1, 1, "Alex", "Ubi_Dev", "developers", "Game Designer"),
            (2, 1, "Sam", "Ubi_CM", "community", "Community Manager"),
            (3, 2, "Kim", "Massive_Dev", "developers", "Producer"),
        ]
    )
    conn.executemany(
        "INSERT INTO accounts (id, developer_id, identifier, service) VALUES (?, ?, ?, ?)",
        [
            (1, 1, "Ubi_Dev", "reddit"),
            (2, 1, "UbiDevTweets", "twitter"),
            (3, 2, "Ubi_CM", "reddit"),
            (4, 3, "Massive_Dev", "reddit"),
        ]
    )
    conn.commit()


@pytest.fixture
def test_client(temp_db_path, tokens_file, monkeypatch):
    """Provide a FastAPI TestClient backed by a temporary seeded database.

    Sets DB_PATH and TOKENS_PATH so the app lifespan and the token check use
    the temporary files. Uses the context manager so lifespan startup/shutdown run.
    """
    from fastapi.testclient import TestClient
    from devtracker.api.app import app

    monkeypatch.setenv('DB_PATH', temp_db_path)
    monkeypatch.setenv('TOKENS_PATH', tokens_file)

    with TestClient(app) as client:
        _seed(app.state.db)
        yield client


@pytest.fixture
def fake_redis():
    """In-memory Redis with decoded responses, as returned by connect_redis()."""
    import fakeredis

    client = fakeredis.FakeRedis(decode_responses=True)
    client.flushall()
    yield client
    client.flushall()
