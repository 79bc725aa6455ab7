"""Pydantic models for API request/response structures.

This module defines the standard response and error envelopes used across all API endpoints,
pagination parameters for list endpoints, and the request bodies of the write endpoints.

Response Structure:
    All successful responses use ResponseEnvelope with:
    - data: The actual response payload (any type)
    - meta: Metadata including timestamp, version, and optional total count

Error Structure:
    All error responses use ErrorEnvelope with:
    - error: ErrorDetail containing code and message

Write bodies use the camelCase field names of the ingestion wire format
(`accountId`, `topicUrl`), so they are declared with aliases.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class MetaModel(BaseModel):
    """Metadata included in all successful responses.

    Attributes:
        timestamp: ISO 8601 formatted UTC timestamp of the response
        version: API version string
        total: Optional total count of items (used with pagination)
    """
    timestamp: str
    version: str
    total: Optional[int] = None


class ResponseEnvelope(BaseModel):
    """Standard response envelope for all successful API responses."""
    data: Any
    meta: MetaModel


class ErrorDetail(BaseModel):
    """Error details included in error responses.

    Attributes:
        code: Machine-readable error code (see responses.py for constants)
        message: Human-readable error message
    """
    code: str
    message: str


class ErrorEnvelope(BaseModel):
    """Standard error envelope for all error responses."""
    error: ErrorDetail


class PaginationParams(BaseModel):
    """Query parameters for paginated list endpoints.

    Attributes:
        limit: Maximum number of items to return (default 50, max 100)
        offset: Number of items to skip (default 0, min 0)
    """
    limit: int = Field(default=50, ge=1, le=100, description="Maximum number of items to return")
    offset: int = Field(default=0, ge=0, description="Number of items to skip")


class PostCreate(BaseModel):
    """Body of POST /{game}/posts, as sent by the ingestion worker."""
    model_config = ConfigDict(populate_by_name=True)

    account_id: int = Field(alias="accountId")
    content: str
    section: Optional[str] = None
    timestamp: int
    topic: Optional[str] = None
    topic_url: Optional[str] = Field(default=None, alias="topicUrl")
    url: str


class GameCreate(BaseModel):
    """Body of POST /games."""
    model_config = ConfigDict(populate_by_name=True)

    identifier: str = Field(min_length=1)
    name: Optional[str] = None
    short_name: Optional[str] = Field(default=None, alias="shortName")
    hostname: Optional[str] = None


class DeveloperCreate(BaseModel):
    """Body of POST /{game}/developers."""
    name: Optional[str] = None
    nick: Optional[str] = None
    group: Optional[str] = None
    role: Optional[str] = None
    active: bool = True


class AccountCreate(BaseModel):
    """Body of POST /{game}/accounts."""
    model_config = ConfigDict(populate_by_name=True)

    developer_id: int = Field(alias="developerId")
    identifier: str = Field(min_length=1)
    service: str = Field(min_length=1)
