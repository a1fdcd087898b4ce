from __future__ import annotations
"""Exceptions raised by the S3 access layer."""


class S3AccessError(RuntimeError):
    """Base class for every error raised by :mod:`s3_access`."""


class UsageError(S3AccessError, ValueError):
    """Raised when the caller supplies invalid arguments."""


class DataIntegrityError(S3AccessError):
    """Raised when a read cannot return exactly the bytes requested."""


class RemoteProtocolError(DataIntegrityError):
    """Raised when the object store answers with an error document."""

    def __init__(self, message: str, *, code: str = "", remote_message: str = "", status_code: int = 0):
        super().__init__(message)
        self.code = code
        self.remote_message = remote_message
        self.status_code = status_code


class UnparseableDocumentError(RemoteProtocolError):
    """Raised when a response matches no known document shape."""


class TransportFailureError(DataIntegrityError):
    """Raised when the retry budget runs out without a usable response."""

    def __init__(self, message: str, *, reason: str = ""):
        super().__init__(message)
        self.reason = reason
