from __future__ import annotations
"""Business logic for reading external table data from S3."""
from concurrent.futures import ThreadPoolExecutor
import logging
from typing import Optional

from .documents import classify
from .errors import DataIntegrityError, RemoteProtocolError, TransportFailureError, UsageError
from .models import (
    CompressionType,
    Credential,
    ErrorDocument,
    ListingPage,
    ListingResult,
    ObjectEntry,
    OpaqueData,
    RangeRequest,
    RequestOutcome,
)
from .retry import attempt_with_retries, build_wait_strategy
from .settings import ServiceSettings
from .transport import BotocoreTransport, Transport

LOGGER = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"
GLOBAL_ENDPOINT_REGIONS = frozenset({"", "us-east-1"})


def bucket_endpoint(schema: str, region: str, bucket: str, *, host: str = "") -> str:
    """Build the path-style URL of a bucket.

    ``host`` replaces the AWS endpoint for S3-compatible stores.
    """

    if not host:
        host = "s3.amazonaws.com" if region in GLOBAL_ENDPOINT_REGIONS else f"s3-{region}.amazonaws.com"
    return f"{schema or 'https'}://{host.rstrip('/')}/{bucket}"


def plan_ranges(url: str, size: int, chunk_size: int) -> list[RangeRequest]:
    """Split ``[0, size)`` into consecutive ranges of at most ``chunk_size`` bytes."""

    if chunk_size <= 0:
        raise UsageError("chunk_size must be greater than zero")
    if size < 0:
        raise UsageError("size must not be negative")
    return [
        RangeRequest(url=url, offset=offset, length=min(chunk_size, size - offset))
        for offset in range(0, size, chunk_size)
    ]


class S3AccessService:
    """Lists, reads and inspects objects through an injected transport.

    The service keeps no per-call state, so one instance can serve many
    threads reading disjoint ranges of the same object.
    """

    def __init__(
        self,
        transport: Transport | None = None,
        settings: ServiceSettings | None = None,
    ):
        self._settings = settings or ServiceSettings()
        self._owns_transport = transport is None
        self._transport = transport or BotocoreTransport(timeout=self._settings.request_timeout)
        self._wait = build_wait_strategy(self._settings.retry_backoff, self._settings.retry_backoff_max)

    @property
    def settings(self) -> ServiceSettings:
        return self._settings

    def close(self) -> None:
        """Close the transport if this service created it."""
        if self._owns_transport:
            self._transport.close()

    def list_objects(
        self,
        schema: str,
        region: str,
        bucket: str,
        prefix: str,
        credential: Optional[Credential],
    ) -> ListingResult | None:
        """Return every non-empty object under ``prefix``.

        Returns ``None`` when any page cannot be retrieved or decoded; pages
        collected before the failure are discarded.

        Raises:
            UsageError: when ``bucket`` is empty.
        """

        if not bucket:
            raise UsageError("bucket name must not be empty")

        url = bucket_endpoint(schema, region, bucket, host=self._settings.endpoint_host)
        contents: list[ObjectEntry] = []
        marker: str | None = None
        page_number = 1

        while True:
            params = {}
            if prefix:
                params["prefix"] = prefix
            if marker:
                params["marker"] = marker

            outcome = attempt_with_retries(
                self._transport,
                url,
                {},
                params,
                self._settings.list_max_attempts,
                region=region,
                credential=credential,
                wait=self._wait,
            )
            page = classify(outcome)
            if isinstance(page, ErrorDocument):
                LOGGER.error(
                    "Listing s3://%s/%s failed on page %s: %s %s",
                    bucket,
                    prefix,
                    page_number,
                    page.code or f"HTTP {page.status_code}",
                    page.message,
                )
                return None
            if not isinstance(page, ListingPage):
                LOGGER.error(
                    "Listing s3://%s/%s failed on page %s: %s",
                    bucket,
                    prefix,
                    page_number,
                    page.reason,
                )
                return None

            contents.extend(page.entries)
            LOGGER.debug(
                "Page %s of s3://%s/%s added %s objects",
                page_number,
                bucket,
                prefix,
                len(page.entries),
            )
            if not page.is_truncated:
                break
            if not page.next_marker:
                LOGGER.error(
                    "Listing s3://%s/%s is truncated on page %s without a continuation marker",
                    bucket,
                    prefix,
                    page_number,
                )
                return None
            marker = page.next_marker
            page_number += 1

        return ListingResult(bucket=bucket, prefix=prefix, contents=contents)

    def fetch_range(
        self,
        offset: int,
        length: int,
        url: str,
        region: str,
        credential: Optional[Credential],
    ) -> bytes:
        """Return exactly ``length`` bytes of the object starting at ``offset``.

        Raises:
            UsageError: for a negative offset or a non-positive length.
            DataIntegrityError: when the bytes cannot be read exactly; remote
                errors and exhausted retries raise its subclasses.
        """

        if offset < 0:
            raise UsageError("offset must not be negative")
        if length <= 0:
            raise UsageError("length must be greater than zero")

        request = RangeRequest(url=url, offset=offset, length=length)
        payload = self._read(request, region, credential)
        if len(payload) != length:
            raise DataIntegrityError(
                f"expected {length} bytes from {url} at offset {offset}, got {len(payload)}"
            )
        LOGGER.debug("Fetched %s bytes from %s at offset %s", length, url, offset)
        return payload

    def detect_compression(
        self,
        url: str,
        region: str,
        credential: Optional[Credential],
    ) -> CompressionType:
        """Inspect the leading bytes of an object for the gzip magic number."""

        request = RangeRequest(url=url, offset=0, length=self._settings.probe_window)
        header = self._read(request, region, credential)
        if len(header) < len(GZIP_MAGIC):
            return CompressionType.PLAIN
        if header[: len(GZIP_MAGIC)] == GZIP_MAGIC:
            return CompressionType.GZIP
        return CompressionType.PLAIN

    def fetch_object(
        self,
        url: str,
        region: str,
        credential: Optional[Credential],
        size: int,
        *,
        chunk_size: int | None = None,
        workers: int | None = None,
    ) -> bytes:
        """Read ``size`` bytes of an object as parallel ranged fetches."""

        if chunk_size is None:
            chunk_size = self._settings.chunk_size
        if workers is None:
            workers = self._settings.parallel_workers
        if workers <= 0:
            raise UsageError(f"workers must be positive, got {workers}")
        plan = plan_ranges(url, size, chunk_size)
        if not plan:
            return b""
        max_workers = min(workers, len(plan))
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            chunks = list(
                pool.map(
                    lambda item: self.fetch_range(item.offset, item.length, url, region, credential),
                    plan,
                )
            )
        return b"".join(chunks)

    def _read(self, request: RangeRequest, region: str, credential: Optional[Credential]) -> bytes:
        outcome = attempt_with_retries(
            self._transport,
            request.url,
            {"Range": request.header_value},
            {},
            self._settings.fetch_max_attempts,
            region=region,
            credential=credential,
            wait=self._wait,
        )
        return self._payload_or_raise(outcome, request)

    @staticmethod
    def _payload_or_raise(outcome: RequestOutcome, request: RangeRequest) -> bytes:
        result = classify(outcome, listing=False)
        if isinstance(result, OpaqueData):
            return result.payload
        if isinstance(result, ErrorDocument):
            raise RemoteProtocolError(
                f"{request.url} answered {result.code or 'an error'} (HTTP {result.status_code})",
                code=result.code,
                remote_message=result.message,
                status_code=result.status_code,
            )
        raise TransportFailureError(
            f"could not read {request.header_value} of {request.url}: {result.reason}",
            reason=result.reason,
        )
