"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from storefront.auth import resolve_identity
from storefront.changes import ChangeFeed, InMemoryChangeFeed, RedisChangeFeed
from storefront.config import Settings, get_settings
from storefront.db import DbClient, InMemoryDbClient, PostgresDbClient
from storefront.storage import InMemoryStorageClient, S3StorageClient, StorageClient

_db_client: DbClient | None = None
_storage_client: StorageClient | None = None
_change_feed: ChangeFeed | None = None

bearer_scheme = HTTPBearer(auto_error=False)


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = InMemoryDbClient()
    else:
        _db_client = PostgresDbClient(settings.database_url)
    return _db_client


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.s3_bucket:
        _storage_client = InMemoryStorageClient()
    else:
        _storage_client = S3StorageClient(
            bucket=settings.s3_bucket,
            region=settings.s3_region or "",
            endpoint=settings.s3_endpoint,
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
        )
    return _storage_client


def get_change_feed() -> ChangeFeed:
    """
    Return a singleton change feed shared by all writes in this process.
    """
    global _change_feed
    if _change_feed:
        return _change_feed

    settings = get_settings()
    if settings.redis_url and not settings.use_in_memory_backends:
        _change_feed = RedisChangeFeed(
            url=settings.redis_url,
            prefix=settings.change_feed_prefix,
        )
    else:
        _change_feed = InMemoryChangeFeed()
    return _change_feed


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    if not credentials:
        return None
    return credentials.credentials


def get_identity(
    token: Optional[str] = Depends(get_bearer_token),
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
) -> Optional[str]:
    """Resolve the caller's user id, or None for anonymous requests."""
    return resolve_identity(db, settings, token)
