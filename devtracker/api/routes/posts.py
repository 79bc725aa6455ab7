"""Developer post endpoints.

- GET  /{game}/posts: List posts with search/service/group filters
- GET  /{game}/posts/{post_id}: Get single post
- POST /{game}/posts: Store a post (token required)

Posts are unique by URL: a sha256 of the url is stored in a UNIQUE column
and a second submission of the same url is answered with 409
DUPLICATE_RESOURCE, which the ingestion worker treats as "already stored".
"""

import hashlib
import sqlite3
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request

from devtracker.api.dependencies import require_token
from devtracker.api.models import PaginationParams, PostCreate
from devtracker.api.responses import (
    DUPLICATE_RESOURCE,
    NOT_FOUND,
    raise_api_error,
    wrap_response,
)
from devtracker.api.routes.games import get_game_or_404
from devtracker.backend.utils.logging_config import get_logger

router = APIRouter(tags=["posts"])
logger = get_logger(__name__)

_POST_SELECT = """
    SELECT
        p.id, p.content, p.section, p.timestamp, p.topic, p.topic_url, p.url,
        a.id AS account_id, a.identifier AS account_identifier, a.service AS account_service,
        d.id AS developer_id, d.name AS developer_name, d.nick AS developer_nick,
        d.group_name AS developer_group, d.role AS developer_role
    FROM posts p
    JOIN accounts a ON a.id = p.account_id
    JOIN developers d ON d.id = a.developer_id
"""


def url_hash(url: str) -> str:
    """Hash used for URL uniqueness."""
    return hashlib.sha256(url.encode("utf-8")).hexdigest()


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _post_from_row(row) -> Dict[str, Any]:
    """Shape a joined post row as post -> account -> developer."""
    return {
        "id": row["id"],
        "content": row["content"],
        "section": row["section"],
        "timestamp": row["timestamp"],
        "topic": row["topic"],
        "topic_url": row["topic_url"],
        "url": row["url"],
        "account": {
            "id": row["account_id"],
            "identifier": row["account_identifier"],
            "service": row["account_service"],
            "developer": {
                "id": row["developer_id"],
                "name": row["developer_name"],
                "nick": row["developer_nick"],
                "group": row["developer_group"],
                "role": row["developer_role"],
            },
        },
    }


@router.get("/{game}/posts")
async def list_posts(
    request: Request,
    game: str,
    search: Optional[str] = Query(None, description="Substring match on content or topic"),
    services: Optional[str] = Query(None, description="Comma-separated services (e.g. reddit)"),
    groups: Optional[str] = Query(None, description="Comma-separated developer groups"),
    pagination: PaginationParams = Depends()
):
    """List a game's posts, newest first.

    Query Parameters:
        search: Case-insensitive substring match on content or topic
        services: Only posts from accounts on these services
        groups: Only posts from developers in these groups
        limit: Maximum results to return (default 50, max 100)
        offset: Number of results to skip (default 0)

    Returns:
        Response envelope with posts and the total matching count
    """
    db = request.app.state.db
    game_row = get_game_or_404(db, game)

    where_clauses = ["d.game_id = ?"]
    params: List[Any] = [game_row["id"]]

    if search:
        where_clauses.append("(p.content LIKE ? OR p.topic LIKE ?)")
        params.extend([f"%{search}%", f"%{search}%"])

    service_list = _split_csv(services)
    if service_list:
        where_clauses.append(f"a.service IN ({', '.join('?' for _ in service_list)})")
        params.extend(service_list)

    group_list = _split_csv(groups)
    if group_list:
        where_clauses.append(f"d.group_name IN ({', '.join('?' for _ in group_list)})")
        params.extend(group_list)

    where_sql = "WHERE " + " AND ".join(where_clauses)

    count_query = f"""
        SELECT COUNT(*) AS total
        FROM posts p
        JOIN accounts a ON a.id = p.account_id
        JOIN developers d ON d.id = a.developer_id
        {where_sql}
    """
    total = db.execute(count_query, params).fetchone()["total"]

    rows = db.execute(
        f"{_POST_SELECT} {where_sql} ORDER BY p.timestamp DESC, p.id DESC LIMIT ? OFFSET ?",
        params + [pagination.limit, pagination.offset]
    ).fetchall()

    return wrap_response([_post_from_row(row) for row in rows], total=total)


@router.get("/{game}/posts/{post_id}")
async def get_post(request: Request, game: str, post_id: int):
    """Get a single post of a game.

    Raises:
        HTTPException 404: If the game or post does not exist
    """
    db = request.app.state.db
    game_row = get_game_or_404(db, game)

    row = db.execute(
        f"{_POST_SELECT} WHERE p.id = ? AND d.game_id = ?",
        (post_id, game_row["id"])
    ).fetchone()
    if row is None:
        raise_api_error(NOT_FOUND, f"Post {post_id} not found")

    return wrap_response(_post_from_row(row))


@router.post("/{game}/posts", status_code=201, dependencies=[Depends(require_token)])
async def create_post(request: Request, game: str, body: PostCreate):
    """Store a post for one of the game's accounts.

    Returns:
        Response envelope with the stored post

    Raises:
        HTTPException 404: If the game does not exist or the account is not one of its accounts
        HTTPException 409: If a post with the same url is already stored
    """
    db = request.app.state.db
    game_row = get_game_or_404(db, game)

    account = db.execute(
        """
        SELECT a.id FROM accounts a
        JOIN developers d ON d.id = a.developer_id
        WHERE a.id = ? AND d.game_id = ?
        """,
        (body.account_id, game_row["id"])
    ).fetchone()
    if account is None:
        raise_api_error(NOT_FOUND, f"Account {body.account_id} not found for game '{game}'")

    try:
        cursor = db.execute(
            """
            INSERT INTO posts (account_id, content, section, timestamp, topic, topic_url, url, url_hash)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                body.account_id, body.content, body.section, body.timestamp,
                body.topic, body.topic_url, body.url, url_hash(body.url),
            )
        )
        db.commit()
    except sqlite3.IntegrityError:
        db.rollback()
        logger.info("duplicate_post_rejected", game=game, url=body.url)
        raise_api_error(DUPLICATE_RESOURCE, f"Post with url '{body.url}' already exists")

    logger.info("post_created", game=game, post_id=cursor.lastrowid, account_id=body.account_id)

    row = db.execute(f"{_POST_SELECT} WHERE p.id = ?", (cursor.lastrowid,)).fetchone()
    return wrap_response(_post_from_row(row))
