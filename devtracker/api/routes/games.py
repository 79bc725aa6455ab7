"""Game, developer and account endpoints.

- GET  /games: List tracked games (token required)
- POST /games: Register a game (token required)
- GET  /{game}/accounts: List accounts tracked for a game (token required)
- POST /{game}/accounts: Attach an account to a developer (token required)
- POST /{game}/developers: Register a developer for a game (token required)

GET /{game}/accounts is what the ingestion worker's account cache polls.
"""

import sqlite3
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request

from devtracker.api.dependencies import require_token
from devtracker.api.models import AccountCreate, DeveloperCreate, GameCreate
from devtracker.api.responses import (
    DUPLICATE_RESOURCE,
    NOT_FOUND,
    raise_api_error,
    wrap_response,
)
from devtracker.backend.utils.logging_config import get_logger

router = APIRouter(tags=["games"])
logger = get_logger(__name__)


def get_game_or_404(db: sqlite3.Connection, identifier: str) -> Dict[str, Any]:
    """Look up a game by identifier or raise NOT_FOUND."""
    row = db.execute(
        "SELECT id, identifier, name, short_name, hostname FROM games WHERE identifier = ?",
        (identifier,)
    ).fetchone()
    if row is None:
        raise_api_error(NOT_FOUND, f"Game '{identifier}' not found")
    return dict(row)


@router.get("/games", dependencies=[Depends(require_token)])
async def list_games(request: Request):
    """List all games."""
    db = request.app.state.db
    rows = db.execute(
        "SELECT id, identifier, name, short_name, hostname FROM games ORDER BY identifier"
    ).fetchall()
    games = [dict(row) for row in rows]
    return wrap_response(games, total=len(games))


@router.post("/games", status_code=201, dependencies=[Depends(require_token)])
async def create_game(request: Request, body: GameCreate):
    """Register a new game.

    Returns:
        Response envelope with the created game

    Raises:
        HTTPException 409: If the identifier is already taken
    """
    db = request.app.state.db
    try:
        db.execute(
            "INSERT INTO games (identifier, name, short_name, hostname) VALUES (?, ?, ?, ?)",
            (body.identifier, body.name, body.short_name, body.hostname)
        )
        db.commit()
    except sqlite3.IntegrityError:
        db.rollback()
        raise_api_error(DUPLICATE_RESOURCE, f"Game '{body.identifier}' already exists")

    logger.info("game_created", game=body.identifier)
    return wrap_response(get_game_or_404(db, body.identifier))


@router.get("/{game}/accounts", dependencies=[Depends(require_token)])
async def list_accounts(
    request: Request,
    game: str,
    service: Optional[str] = Query(None, description="Filter by service (e.g. reddit)"),
):
    """List the accounts tracked for a game.

    Query Parameters:
        service: Only return accounts on this service

    Returns:
        Response envelope with accounts, each carrying its developer
    """
    db = request.app.state.db
    game_row = get_game_or_404(db, game)

    where_clauses = ["d.game_id = ?"]
    params = [game_row["id"]]

    if service:
        where_clauses.append("a.service = ?")
        params.append(service)

    rows = db.execute(
        f"""
        SELECT a.id, a.identifier, a.service, a.developer_id,
               d.name AS developer_name, d.nick AS developer_nick,
               d.group_name AS developer_group
        FROM accounts a
        JOIN developers d ON d.id = a.developer_id
        WHERE {" AND ".join(where_clauses)}
        ORDER BY a.id
        """,
        params
    ).fetchall()

    accounts = [
        {
            "id": row["id"],
            "identifier": row["identifier"],
            "service": row["service"],
            "developer": {
                "id": row["developer_id"],
                "name": row["developer_name"],
                "nick": row["developer_nick"],
                "group": row["developer_group"],
            },
        }
        for row in rows
    ]
    return wrap_response(accounts, total=len(accounts))


@router.post("/{game}/accounts", status_code=201, dependencies=[Depends(require_token)])
async def create_account(request: Request, game: str, body: AccountCreate):
    """Attach a service account to one of the game's developers.

    Raises:
        HTTPException 404: If the game or developer does not exist
        HTTPException 409: If the account is already tracked
    """
    db = request.app.state.db
    game_row = get_game_or_404(db, game)

    developer = db.execute(
        "SELECT id FROM developers WHERE id = ? AND game_id = ?",
        (body.developer_id, game_row["id"])
    ).fetchone()
    if developer is None:
        raise_api_error(NOT_FOUND, f"Developer {body.developer_id} not found for game '{game}'")

    try:
        cursor = db.execute(
            "INSERT INTO accounts (developer_id, identifier, service) VALUES (?, ?, ?)",
            (body.developer_id, body.identifier, body.service)
        )
        db.commit()
    except sqlite3.IntegrityError:
        db.rollback()
        raise_api_error(
            DUPLICATE_RESOURCE,
            f"Account '{body.identifier}' on {body.service} already exists"
        )

    logger.info("account_created", game=game, account_id=cursor.lastrowid, service=body.service)
    return wrap_response({
        "id": cursor.lastrowid,
        "developer_id": body.developer_id,
        "identifier": body.identifier,
        "service": body.service,
    })


@router.post("/{game}/developers", status_code=201, dependencies=[Depends(require_token)])
async def create_developer(request: Request, game: str, body: DeveloperCreate):
    """Register a developer for a game."""
    db = request.app.state.db
    game_row = get_game_or_404(db, game)

    cursor = db.execute(
        """
        INSERT INTO developers (game_id, name, nick, group_name, role, active)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (game_row["id"], body.name, body.nick, body.group, body.role, int(body.active))
    )
    db.commit()

    logger.info("developer_created", game=game, developer_id=cursor.lastrowid)
    return wrap_response({
        "id": cursor.lastrowid,
        "game_id": game_row["id"],
        "name": body.name,
        "nick": body.nick,
        "group": body.group,
        "role": body.role,
        "active": body.active,
    })
