class BoardError(Exception):
    """Base class for every error raised by the board core."""


class PostValidationError(BoardError):
    """Submitted title or message is missing or too long.

    The message is user-facing and is returned as-is in the HTTP response.
    """

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class DecodeError(BoardError):
    """A stored record could not be turned back into a Post."""


class UploadTooLarge(BoardError):
    """The submission exceeded the upload size cap."""

    def __init__(self, limit: int):
        super().__init__(f"Upload exceeds the {limit} byte limit.")
        self.limit = limit


class StoreError(BoardError):
    """The underlying store failed to read or write."""
