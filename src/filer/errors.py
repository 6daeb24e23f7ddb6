"""Exceptions raised by the file store.

Argument problems are raised synchronously to the caller as
``InvalidArgumentError``. Every other error is raised inside a background
pipeline, logged, and turned into a ``None`` result for the completion.
"""


class FilerError(Exception):
    """Base exception for file store errors."""

    pass


class InvalidArgumentError(FilerError, ValueError):
    """Raised when an operation is called with invalid arguments."""

    pass


class NotFoundError(FilerError):
    """Raised when a source or target path does not exist."""

    pass


class DirectoryCreateError(FilerError):
    """Raised when a category directory cannot be created."""

    pass


class WriteError(FilerError):
    """Raised when file contents cannot be written or published."""

    pass


class ReadError(FilerError):
    """Raised when file contents cannot be read."""

    pass


class DeleteError(FilerError):
    """Raised when a file or directory cannot be removed."""

    pass


class AllocationExhaustedError(FilerError):
    """Raised when no unique file name was found within the retry cap."""

    pass


class FilerLockError(FilerError):
    """Raised when unable to acquire a category lock."""

    pass
