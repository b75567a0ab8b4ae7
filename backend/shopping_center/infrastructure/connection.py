"""
MongoDB client construction and connection utilities.

This module provides:
- Settings validation shared by every repository
- Sync (PyMongo) and async (Motor) client factories
- Health check and sanitised connection info for logging
"""

import logging

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from shopping_center.config import DbSettings

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def validate_db_settings(settings: DbSettings | None) -> DbSettings:
    """
    Fail fast when the connection string or database name is missing.
    """
    if settings is None:
        raise ConfigurationError("Database settings are required")
    if not settings.connection_string or not settings.connection_string.strip():
        raise ConfigurationError("Database connection string cannot be empty")
    if not settings.database_name or not settings.database_name.strip():
        raise ConfigurationError("Database name cannot be empty")
    return settings


def create_client(settings: DbSettings) -> MongoClient:
    """
    Create a PyMongo client. Connects lazily on first operation.
    """
    return MongoClient(
        settings.connection_string,
        tz_aware=True,
        serverSelectionTimeoutMS=settings.server_selection_timeout_ms,
    )


def create_async_client(settings: DbSettings) -> AsyncIOMotorClient:
    """
    Create a Motor client. Connects lazily on first operation.
    """
    return AsyncIOMotorClient(
        settings.connection_string,
        tz_aware=True,
        serverSelectionTimeoutMS=settings.server_selection_timeout_ms,
    )


def check_connection(client: MongoClient) -> bool:
    """
    Check if the MongoDB server answers a ping.
    """
    try:
        client.admin.command("ping")
        return True
    except PyMongoError as e:
        logger.warning(f"MongoDB ping failed: {e}")
        return False


async def check_connection_async(client: AsyncIOMotorClient) -> bool:
    """
    Async variant of check_connection().
    """
    try:
        await client.admin.command("ping")
        return True
    except PyMongoError as e:
        logger.warning(f"MongoDB ping failed: {e}")
        return False


def get_db_info(settings: DbSettings) -> dict:
    """
    Get connection information that is safe to log or print.
    """
    return {
        "url": sanitize_mongodb_url(settings.connection_string),
        "database": settings.database_name,
    }


def sanitize_mongodb_url(url: str) -> str:
    """
    Hide password in MongoDB URL for safe logging.
    """
    if "@" not in url:
        return url

    # Handle mongodb+srv:// or mongodb://
    if "://" in url:
        protocol, rest = url.split("://", 1)
        if "@" in rest:
            credentials, host = rest.rsplit("@", 1)
            if ":" in credentials:
                username = credentials.split(":", 1)[0]
                return f"{protocol}://{username}:***@{host}"
    return url
