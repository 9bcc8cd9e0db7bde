"""Daybook exception hierarchy."""


class DaybookError(Exception):
    """Base exception for all Daybook errors."""


class StoreConnectionError(DaybookError):
    """Raised when the store cannot be opened (corrupted, denied, unreachable)."""


class StorageError(DaybookError):
    """Raised when a single store operation fails; nothing was applied."""


class ValidationError(DaybookError, ValueError):
    """Raised when caller-supplied data is rejected before touching the store."""
