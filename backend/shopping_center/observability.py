"""Logfire observability initialization and instrumentation."""

import logging

import logfire

from shopping_center import __version__
from shopping_center.config import Settings

logger = logging.getLogger(__name__)


def initialize_logfire(settings: Settings) -> bool:
    """
    Initialize Logfire with PyMongo instrumentation.

    Must be called ONCE at application startup, before any repository is
    created, so that driver command listeners are registered.

    This function configures Logfire and instruments:
    - PyMongo (every command sent by MongoRepository and AsyncMongoRepository)
    - Python logging (bridges to Logfire)

    Args:
        settings: Application settings containing Logfire token

    Returns:
        True when Logfire was configured.
    """
    if not settings.logfire_token:
        logger.debug("Logfire token not set - observability disabled")
        return False

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name="shopping-center",
            service_version=__version__,
        )

        logfire.instrument_pymongo()

        # Bridge Python logging to Logfire
        root_logger = logging.getLogger()
        root_logger.addHandler(logfire.LogfireLoggingHandler())

        logger.info("Logfire tracking initialized")
        return True

    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")
        # Continue running - observability is optional
        return False
