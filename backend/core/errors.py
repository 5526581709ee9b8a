"""
POS Monitor error taxonomy.

ConfigurationError is fatal at startup. StorageError subclasses are raised by
the storage adapter and translated to HTTP responses in api.main.
"""


class ConfigurationError(RuntimeError):
    """Backend location missing/invalid or not creatable. Never recovered."""


class StorageError(RuntimeError):
    """Base class for failures reported by the storage adapter."""


class IntegrityViolation(StorageError):
    """Foreign key, unique or not-null constraint rejected a write."""

    def __init__(self, message: str, *, reason: str = "constraint"):
        super().__init__(message)
        self.reason = reason  # foreign_key | unique | not_null | immutable | invalid_value | constraint


class StorageUnavailable(StorageError):
    """The backend could not be reached or did not answer in time."""

    def __init__(self, message: str, *, timed_out: bool = False):
        super().__init__(message)
        self.timed_out = timed_out
