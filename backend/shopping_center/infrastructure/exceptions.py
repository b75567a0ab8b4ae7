"""Custom exceptions for the repository layer."""


class RepositoryError(Exception):
    """Base exception for repository errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(RepositoryError):
    """Missing or blank connection settings."""

    pass


class InvalidIdError(RepositoryError, ValueError):
    """Identifier is not a valid 24-character hex ObjectId."""

    def __init__(self, value: object):
        super().__init__(f"Invalid document id: {value!r}")
        self.value = value
