"""Database connection manager with FK enforcement, WAL mode and schema bootstrap."""

import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

SCHEMA_SQL_PATH = Path(__file__).parent / "schema.sql"
DEFAULT_DB_PATH = "./data/devtracker.db"


def open_connection(db_path: str = None) -> sqlite3.Connection:
    """
    Open an SQLite connection with FK enforcement and WAL mode.

    Args:
        db_path: Path to the SQLite database file. If None, reads from DB_PATH
                 environment variable, falling back to './data/devtracker.db'.

    Returns:
        sqlite3.Connection: Connection usable across threads, with
                           row_factory set to sqlite3.Row.
    """
    if db_path is None:
        db_path = os.environ.get('DB_PATH', DEFAULT_DB_PATH)

    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


@contextmanager
def get_connection(db_path: str = None) -> Generator[sqlite3.Connection, None, None]:
    """
    Context manager around open_connection() that always closes the connection.

    Example:
        with get_connection() as conn:
            rows = conn.execute("SELECT * FROM games").fetchall()
    """
    conn = None
    try:
        conn = open_connection(db_path)
        yield conn
    finally:
        if conn is not None:
            conn.close()


def init_schema(conn: sqlite3.Connection) -> None:
    """
    Create all tables and indexes if they do not exist yet.

    executescript() resets per-connection PRAGMAs, so foreign keys are
    re-enabled afterwards.
    """
    conn.executescript(SCHEMA_SQL_PATH.read_text())
    conn.execute("PRAGMA foreign_keys = ON")
