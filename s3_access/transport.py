from __future__ import annotations
"""Transport capability used by the S3 access service."""
import logging
from typing import Mapping, Optional, Protocol

from botocore.auth import S3SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials
from botocore.exceptions import BotoCoreError
from botocore.httpsession import URLLib3Session

from .models import Credential, RequestOutcome

LOGGER = logging.getLogger(__name__)

DEFAULT_SIGNING_REGION = "us-east-1"
SUCCESS_CODES = frozenset({200, 206})


class Transport(Protocol):
    """Performs exactly one synchronous GET request.

    Implementations must be safe to call from several threads at once and
    report failures through the returned outcome instead of raising.
    """

    def issue_request(
        self,
        url: str,
        headers: Mapping[str, str],
        params: Mapping[str, str],
        *,
        region: str = "",
        credential: Optional[Credential] = None,
    ) -> RequestOutcome:
        ...


class BotocoreTransport:
    """Signs requests with SigV4 and sends them through botocore's HTTP session."""

    def __init__(
        self,
        *,
        timeout: int = 60,
        verify: bool = True,
        http_session: object | None = None,
    ):
        self._session = http_session or URLLib3Session(verify=verify, timeout=timeout)

    def close(self) -> None:
        """Release the pooled HTTP connections."""
        self._session.close()

    def issue_request(
        self,
        url: str,
        headers: Mapping[str, str],
        params: Mapping[str, str],
        *,
        region: str = "",
        credential: Optional[Credential] = None,
    ) -> RequestOutcome:
        request = AWSRequest(method="GET", url=url, headers=dict(headers), params=dict(params))
        if credential is not None:
            self._sign(request, region, credential)
        try:
            response = self._session.send(request.prepare())
        except BotoCoreError as exc:
            LOGGER.debug("GET %s failed: %s", url, exc)
            return RequestOutcome.transport_failure(str(exc))

        LOGGER.debug("GET %s returned HTTP %s", url, response.status_code)
        if response.status_code in SUCCESS_CODES:
            return RequestOutcome.success(response.status_code, response.content)
        return RequestOutcome.remote_error(response.status_code, response.content)

    def _sign(self, request: AWSRequest, region: str, credential: Credential) -> None:
        credentials = Credentials(
            credential.access_key,
            credential.secret_key,
            credential.session_token or None,
        )
        S3SigV4Auth(credentials, "s3", region or DEFAULT_SIGNING_REGION).add_auth(request)
