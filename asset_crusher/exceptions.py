"""Exceptions related to asset-crusher."""

__all__ = [
    "CrusherException",
    "ConfigurationError",
    "IoError",
    "InvalidInputError",
    "CapacityError",
    "ProcessingTimeoutError",
]


class CrusherException(Exception):
    """Generic base exception used for this library."""


class ConfigurationError(CrusherException):
    """Raised when a configuration file or group reference is not valid."""


class IoError(CrusherException):
    """Raised when reading or writing a file failed after all retries."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"I/O failure for {path}: {message}")
        self.path = path
        self.message = message


class InvalidInputError(CrusherException):
    """Raised when an artifact or its sources are not formatted as expected."""


class CapacityError(CrusherException):
    """Raised when the cache can not accept any more entries."""


class ProcessingTimeoutError(CrusherException):
    """Raised when building an artifact did not finish in time."""
