"""Shared exceptions module."""

from typing import Optional


class SyncSearchException(Exception):
    """Base exception for SyncSearch services."""

    def __init__(self, message: Optional[str] = "Unexpected SyncSearch error"):
        """Create a new SyncSearchException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class NotFoundException(SyncSearchException):
    """Exception raised when an object is not found in the durable store."""

    def __init__(self, message: Optional[str] = "Object not found"):
        """Create a new NotFoundException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        super().__init__(message)


class ConfigurationError(SyncSearchException):
    """Raised when a sync cannot start: missing credentials or no source configured."""

    def __init__(self, message: Optional[str] = "Client is not configured for syncing"):
        """Create a new ConfigurationError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        super().__init__(message)


class SourceUnavailableError(SyncSearchException):
    """Raised when a remote source cannot be listed or reached."""

    def __init__(self, message: Optional[str] = "Source is unavailable"):
        """Create a new SourceUnavailableError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        super().__init__(message)


class AuthExpiredError(SourceUnavailableError):
    """Raised when the credentials for a remote source are expired or revoked."""

    def __init__(self, message: Optional[str] = "Source authorization expired"):
        """Create a new AuthExpiredError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        super().__init__(message)


class CursorInvalidError(SyncSearchException):
    """Raised by a change feed when the stored cursor is expired or rejected."""

    def __init__(self, message: Optional[str] = "Change cursor is no longer valid"):
        """Create a new CursorInvalidError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        super().__init__(message)


class ItemNotFoundError(SyncSearchException):
    """Raised when a remote item no longer exists at the source."""

    def __init__(self, remote_id: str, message: Optional[str] = None):
        """Create a new ItemNotFoundError instance.

        Args:
        ----
            remote_id (str): The source's id of the missing item.
            message (str, optional): The error message. Defaults to one naming the item.

        """
        self.remote_id = remote_id
        super().__init__(message or f"Remote item {remote_id} was not found")


class FetchError(SyncSearchException):
    """Raised when the content of a remote item cannot be fetched."""

    def __init__(self, message: Optional[str] = "Failed to fetch item content"):
        """Create a new FetchError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        super().__init__(message)


class RateLimitedError(SyncSearchException):
    """Raised when the summarization provider rejects a call due to rate limiting."""

    def __init__(
        self,
        message: Optional[str] = "Rate limit exceeded",
        retry_after: Optional[float] = None,
    ):
        """Create a new RateLimitedError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.
            retry_after (float, optional): Seconds the provider asked us to wait.

        """
        self.retry_after = retry_after
        super().__init__(message)


class GenerationError(SyncSearchException):
    """Raised when a summary or answer could not be generated."""

    def __init__(
        self, message: Optional[str] = "Failed to generate text", retryable: bool = False
    ):
        """Create a new GenerationError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.
            retryable (bool): Whether the failure is transient (timeouts, 5xx).

        """
        self.retryable = retryable
        super().__init__(message)


class SyncInProgressError(SyncSearchException):
    """Raised when a sync is requested for a client that is already syncing."""

    def __init__(self, message: Optional[str] = "A sync is already running for this client"):
        """Create a new SyncInProgressError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        super().__init__(message)


class DuplicateTagError(SyncSearchException):
    """Raised when a tag with the same name already exists on a client."""

    def __init__(self, name: str):
        """Create a new DuplicateTagError instance.

        Args:
        ----
            name (str): The duplicated tag name.

        """
        self.name = name
        super().__init__(f"Tag '{name}' already exists for this client")
