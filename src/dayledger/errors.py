"""Exceptions shared across the core and the adapters."""


class MalformedRecordError(ValueError):
    """Raised when a stored record is missing required fields or has the wrong shape."""

    pass


class PersistenceError(OSError):
    """Raised by store adapters when a write to the backing store fails."""

    pass


class TaskNotFoundError(KeyError):
    """Raised when an operation addresses a task id that does not exist."""

    pass


class TaskCompletedError(ValueError):
    """Raised when a strike targets a task that is already completed."""

    pass
