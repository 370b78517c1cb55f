"""Custom exceptions for the Terra alert monitor.

Provides a hierarchy of domain-specific exceptions so collaborator failures
can be caught at the boundary nearest their source.
"""


class TerraError(Exception):
    """Base exception for all application errors."""


class ConfigurationError(TerraError):
    """Raised at startup when the configuration is invalid."""


class TransportError(TerraError):
    """Raised when an ingestion, delivery or log I/O step fails."""


class MalformedReadingError(TerraError):
    """Raised when an incoming reading payload cannot be interpreted at all."""


class DatabaseError(TransportError):
    """Base exception for database-related errors."""


class DatabaseNotConnectedError(DatabaseError):
    """Raised when attempting database operations without a connection."""

    def __init__(self, message: str = "Database not connected") -> None:
        super().__init__(message)
