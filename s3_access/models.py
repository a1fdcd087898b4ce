from __future__ import annotations
"""Data models shared by the S3 access layer."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional


class OutcomeStatus(Enum):
    SUCCESS = "success"
    REMOTE_ERROR = "remote_error"
    TRANSPORT_FAILURE = "transport_failure"


@dataclass(frozen=True)
class Credential:
    """Access material forwarded untouched to the transport."""

    access_key: str
    secret_key: str = field(repr=False)
    session_token: str = field(default="", repr=False)


@dataclass(frozen=True)
class RequestOutcome:
    """Result of a single transport call.

    Exactly one status is active. ``payload`` only carries data for
    :attr:`OutcomeStatus.SUCCESS` and :attr:`OutcomeStatus.REMOTE_ERROR`;
    ``reason`` only for :attr:`OutcomeStatus.TRANSPORT_FAILURE`.
    """

    status: OutcomeStatus
    status_code: int = 0
    payload: bytes = field(default=b"", repr=False)
    reason: str = ""

    @classmethod
    def success(cls, status_code: int, payload: bytes) -> RequestOutcome:
        return cls(OutcomeStatus.SUCCESS, status_code, bytes(payload))

    @classmethod
    def remote_error(cls, status_code: int, payload: bytes) -> RequestOutcome:
        return cls(OutcomeStatus.REMOTE_ERROR, status_code, bytes(payload))

    @classmethod
    def transport_failure(cls, reason: str = "transport failure") -> RequestOutcome:
        return cls(OutcomeStatus.TRANSPORT_FAILURE, reason=reason)

    @property
    def is_success(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS

    def describe(self) -> str:
        if self.status is OutcomeStatus.TRANSPORT_FAILURE:
            return f"transport failure ({self.reason})"
        return f"{self.status.value} (HTTP {self.status_code}, {len(self.payload)} bytes)"


@dataclass(frozen=True)
class ObjectEntry:
    """A single object reported by a bucket listing."""

    key: str
    size: int


@dataclass
class ListingResult:
    """Every non-empty object found under a prefix."""

    bucket: str
    prefix: str = ""
    contents: list[ObjectEntry] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.contents)

    def __iter__(self) -> Iterator[ObjectEntry]:
        return iter(self.contents)

    @property
    def keys(self) -> list[str]:
        return [entry.key for entry in self.contents]

    @property
    def total_size(self) -> int:
        return sum(entry.size for entry in self.contents)


@dataclass(frozen=True)
class ListingPage:
    """One decoded page of a bucket listing."""

    entries: tuple[ObjectEntry, ...] = ()
    is_truncated: bool = False
    next_marker: Optional[str] = None


@dataclass(frozen=True)
class ErrorDocument:
    """A response recognized as an S3 error."""

    code: str = ""
    message: str = ""
    status_code: int = 0


@dataclass(frozen=True)
class OpaqueData:
    payload: bytes = field(default=b"", repr=False)


@dataclass(frozen=True)
class Unparseable:
    reason: str = ""


@dataclass(frozen=True)
class RangeRequest:
    """A contiguous byte range ``[offset, offset + length)`` of an object."""

    url: str
    offset: int
    length: int

    @property
    def header_value(self) -> str:
        return f"bytes={self.offset}-{self.offset + self.length - 1}"


class CompressionType(Enum):
    PLAIN = "plain"
    GZIP = "gzip"
