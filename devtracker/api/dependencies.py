"""FastAPI dependency providers.

Bearer-token authorisation for the write/admin endpoints.

Tokens live in a JSON file (TOKENS_PATH, default ./config/tokens.json)::

    {
        "3f2c...": {"paths": ["/{game}/posts", "/{game}/accounts"]}
    }

Each token lists the route templates it may call. The file is re-read on
every request so tokens can be granted or revoked without a restart.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from devtracker.api.responses import FORBIDDEN, UNAUTHORIZED, raise_api_error
from devtracker.backend.utils.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_TOKENS_PATH = "./config/tokens.json"

_bearer = HTTPBearer(auto_error=False)


def load_tokens(tokens_path: Optional[str] = None) -> Dict[str, Any]:
    """Read the token file; a missing file grants nothing."""
    path = Path(tokens_path or os.environ.get("TOKENS_PATH", DEFAULT_TOKENS_PATH))
    if not path.exists():
        logger.warning("tokens_file_missing", path=str(path))
        return {}

    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def require_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> str:
    """Require a bearer token granted for the matched route.

    Returns:
        The accepted token

    Raises:
        HTTPException 401: If the token is missing or unknown
        HTTPException 403: If the token is not granted for this route
    """
    if credentials is None or not credentials.credentials:
        raise_api_error(UNAUTHORIZED, "Bearer token required")

    token = credentials.credentials
    token_data = load_tokens().get(token)
    if not token_data:
        logger.warning("unknown_token", path=request.url.path)
        raise_api_error(UNAUTHORIZED, "Unknown token")

    route = request.scope.get("route")
    route_path = getattr(route, "path", request.url.path)

    if route_path not in token_data.get("paths", []):
        logger.warning("token_not_granted", route=route_path)
        raise_api_error(FORBIDDEN, f"Token not authorised for {route_path}")

    return token
