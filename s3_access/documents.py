from __future__ import annotations
"""Classification and parsing of S3 response documents.

S3 answers listing requests with a ``ListBucketResult`` document and
failures with an ``Error`` document::

    <ListBucketResult xmlns="http://s3.amazonaws.com/doc/2006-03-01/">
        <Name>bucket</Name>
        <Prefix>data/</Prefix>
        <IsTruncated>true</IsTruncated>
        <Contents>
            <Key>data/part-0001</Key>
            <Size>434234</Size>
        </Contents>
    </ListBucketResult>

    <Error>
        <Code>NoSuchBucket</Code>
        <Message>The specified bucket does not exist</Message>
    </Error>

The root tag is inspected before any field is read, so callers always get one
of the variants returned by :func:`classify`.
"""
from typing import Optional, Union
from xml.etree.ElementTree import Element, ParseError, fromstring

from .errors import UnparseableDocumentError
from .models import (
    ErrorDocument,
    ListingPage,
    ObjectEntry,
    OpaqueData,
    OutcomeStatus,
    RequestOutcome,
    Unparseable,
)

LISTING_ROOT = "ListBucketResult"
ERROR_ROOT = "Error"

Classification = Union[ListingPage, ErrorDocument, OpaqueData, Unparseable]


def _local_name(tag: str) -> str:
    # Drop the "{namespace}" prefix ElementTree keeps on qualified tags.
    return tag.rsplit("}", 1)[-1]


def _child(element: Element, name: str) -> Optional[Element]:
    for child in element:
        if _local_name(child.tag) == name:
            return child
    return None


def _child_text(element: Element, name: str) -> str:
    child = _child(element, name)
    if child is None or child.text is None:
        return ""
    return child.text.strip()


def _parse_root(payload: bytes) -> Optional[Element]:
    if not payload or not payload.strip():
        return None
    try:
        return fromstring(payload)
    except ParseError:
        return None


def classify(outcome: RequestOutcome, *, listing: bool = True) -> Classification:
    """Turn a transport outcome into a document variant.

    With ``listing=False`` a successful payload is returned as
    :class:`OpaqueData` without being parsed.
    """

    if outcome.status is OutcomeStatus.TRANSPORT_FAILURE:
        return Unparseable(reason=outcome.reason or "transport failure")

    if outcome.status is OutcomeStatus.REMOTE_ERROR:
        return parse_error_document(outcome.payload, status_code=outcome.status_code)

    if not listing:
        return OpaqueData(payload=outcome.payload)

    root = _parse_root(outcome.payload)
    if root is None:
        return Unparseable(reason="payload is not an XML document")

    root_name = _local_name(root.tag)
    if root_name == ERROR_ROOT:
        return _error_from_root(root, outcome.status_code)
    if root_name != LISTING_ROOT:
        return Unparseable(reason=f"unexpected root element <{root_name}>")
    try:
        return _listing_from_root(root)
    except UnparseableDocumentError as exc:
        return Unparseable(reason=str(exc))


def parse_error_document(payload: bytes, *, status_code: int = 0) -> ErrorDocument:
    """Read ``Code`` and ``Message`` from an error payload when possible.

    The result is an :class:`ErrorDocument` even when the payload is not
    XML; only the details are lost.
    """

    root = _parse_root(payload)
    if root is None or _local_name(root.tag) != ERROR_ROOT:
        return ErrorDocument(status_code=status_code)
    return _error_from_root(root, status_code)


def parse_listing_document(payload: bytes) -> ListingPage:
    """Decode a ``ListBucketResult`` payload.

    Raises:
        UnparseableDocumentError: when the payload is not a listing document.
    """

    root = _parse_root(payload)
    if root is None:
        raise UnparseableDocumentError("payload is not an XML document")
    root_name = _local_name(root.tag)
    if root_name != LISTING_ROOT:
        raise UnparseableDocumentError(f"unexpected root element <{root_name}>")
    return _listing_from_root(root)


def _error_from_root(root: Element, status_code: int) -> ErrorDocument:
    return ErrorDocument(
        code=_child_text(root, "Code"),
        message=_child_text(root, "Message"),
        status_code=status_code,
    )


def _listing_from_root(root: Element) -> ListingPage:
    entries: list[ObjectEntry] = []
    last_key: Optional[str] = None
    for node in root:
        if _local_name(node.tag) != "Contents":
            continue
        key = _child_text(node, "Key")
        if not key:
            raise UnparseableDocumentError("listing entry without a key")
        raw_size = _child_text(node, "Size")
        try:
            size = int(raw_size)
        except ValueError:
            raise UnparseableDocumentError(f"invalid size {raw_size!r} for key {key!r}") from None
        if size < 0:
            raise UnparseableDocumentError(f"negative size {size} for key {key!r}")
        # The marker follows the server's last key, placeholders included.
        last_key = key
        if size == 0:
            continue
        entries.append(ObjectEntry(key=key, size=size))

    is_truncated = _child_text(root, "IsTruncated").lower() == "true"
    next_marker = None
    if is_truncated:
        next_marker = _child_text(root, "NextMarker") or last_key
    return ListingPage(entries=tuple(entries), is_truncated=is_truncated, next_marker=next_marker)
