"""MongoDB repository layer.

This package provides:
- Document base model with id and timestamp fields
- Collection-name registration table
- Filter builder and projections
- Sync and async generic repositories
"""

from .connection import (
    check_connection,
    check_connection_async,
    create_async_client,
    create_client,
    get_db_info,
    sanitize_mongodb_url,
)
from .exceptions import ConfigurationError, InvalidIdError, RepositoryError
from .filters import (
    MATCH_ALL,
    And,
    Condition,
    Filter,
    FilterSpec,
    Not,
    Operator,
    Or,
    Projection,
    Where,
)
from .models import (
    Document,
    PyObjectId,
    collection,
    get_collection_name,
    parse_object_id,
    register_collection,
)
from .repository import AsyncMongoRepository, MongoRepository

__all__ = [
    # Repositories
    "MongoRepository",
    "AsyncMongoRepository",
    # Documents
    "Document",
    "PyObjectId",
    "collection",
    "register_collection",
    "get_collection_name",
    "parse_object_id",
    # Filters
    "Filter",
    "FilterSpec",
    "Condition",
    "Operator",
    "And",
    "Or",
    "Not",
    "MATCH_ALL",
    "Where",
    "Projection",
    # Connection
    "create_client",
    "create_async_client",
    "check_connection",
    "check_connection_async",
    "get_db_info",
    "sanitize_mongodb_url",
    # Errors
    "RepositoryError",
    "ConfigurationError",
    "InvalidIdError",
]
