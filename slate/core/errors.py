"""Error types shared across the capture pipeline and command surface."""


class SlateError(Exception):
    """Base exception for Slate."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message)
        self.original_error = original_error

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.original_error:
            return f"{base_msg} (Caused by: {type(self.original_error).__name__}: {self.original_error})"
        return base_msg


class ValidationError(SlateError):
    """Missing or malformed command argument."""
    pass


class NotFoundError(SlateError):
    """Operation targeted an id that is not stored."""
    pass


class StorageError(SlateError):
    """Persistence layer rejected a read or write."""
    pass


class EnrichmentError(SlateError):
    """Link metadata could not be fetched or parsed."""
    pass


class Skip(Exception):
    """Raised by the classifier when a capture must not be stored."""
    pass
