"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from storefront.config import get_settings
from storefront.cookies import CookiePolicy
from storefront.db import DbClient, InMemoryDbClient, PostgresDbClient
from storefront.session import SessionCodec, make_codec
from storefront.storage import InMemoryStorageClient, S3StorageClient, StorageClient

_db_client: DbClient | None = None
_storage_client: StorageClient | None = None
_session_codec: SessionCodec | None = None


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
    if settings.use_in_memory_backends or not settings.storage_bucket:
        _storage_client = InMemoryStorageClient()
    else:
        _storage_client = S3StorageClient(
            bucket=settings.storage_bucket,
            region=settings.storage_region or "",
            endpoint=settings.storage_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            public_base_url=settings.storage_public_base_url,
        )
    return _storage_client


def get_session_codec() -> SessionCodec:
    """Plain JSON cookies unless a session secret is configured."""
    global _session_codec
    if _session_codec:
        return _session_codec
    _session_codec = make_codec(get_settings().session_secret)
    return _session_codec


def get_cookie_policy() -> CookiePolicy:
    return CookiePolicy.from_settings(get_settings())
