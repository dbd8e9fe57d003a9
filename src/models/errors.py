from __future__ import annotations


class ShareError(Exception):
    """Base class for errors raised by the share core.

    The class-level ``message`` is short and stable; it is what HTTP clients
    see. An instance may carry a more detailed text for logs.
    """

    status_code: int = 500
    message: str = "internal error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.message)


class EmptyInputError(ShareError):
    status_code = 400
    message = "text is required"


class NoFileError(ShareError):
    status_code = 400
    message = "no file uploaded"


class PayloadTooLargeError(ShareError):
    status_code = 413
    message = "file too large"

    def __init__(self, limit: int | None = None) -> None:
        self.limit = limit
        super().__init__(f"upload exceeds {limit} bytes" if limit else None)


class TextTooLargeError(PayloadTooLargeError):
    message = "text too large"


class NotFoundError(ShareError):
    # absent and expired look the same to callers
    status_code = 404
    message = "not found or expired"


class BlobMissingError(NotFoundError):
    """A live file record whose backing blob cannot be read."""

    def __init__(self, storage_key: str) -> None:
        self.storage_key = storage_key
        super().__init__(f"blob {storage_key} missing")


class DuplicateCodeError(ShareError):
    """Insert of a code that is already live; indicates a generator bug."""

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(f"duplicate code {code}")


class CodeSpaceExhaustedError(ShareError):
    status_code = 503
    message = "code space exhausted"
