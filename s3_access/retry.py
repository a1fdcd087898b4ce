from __future__ import annotations
"""Bounded retries around a single transport request."""
import logging
from typing import Mapping, Optional

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
    wait_none,
)
from tenacity.wait import wait_base

from .models import Credential, RequestOutcome
from .transport import Transport

LOGGER = logging.getLogger(__name__)


def build_wait_strategy(backoff: float = 0.0, backoff_max: float = 2.0) -> wait_base:
    """Return the delay between attempts; no delay unless ``backoff`` is positive."""

    if backoff <= 0:
        return wait_none()
    return wait_exponential(multiplier=backoff, max=max(backoff_max, backoff))


def _is_failure(outcome: RequestOutcome) -> bool:
    return not outcome.is_success


def attempt_with_retries(
    transport: Transport,
    url: str,
    headers: Mapping[str, str],
    params: Mapping[str, str],
    max_attempts: int,
    *,
    region: str = "",
    credential: Optional[Credential] = None,
    wait: Optional[wait_base] = None,
) -> RequestOutcome:
    """Issue a request until it succeeds or ``max_attempts`` are used up.

    The first successful outcome is returned as soon as it is seen. When
    every attempt fails the last failed outcome is returned; with no
    attempts allowed the transport is never called and a transport failure
    is returned.
    """

    if max_attempts <= 0:
        LOGGER.warning("No attempts allowed for %s", url)
        return RequestOutcome.transport_failure("no attempts allowed")

    def _log_retry(retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome.result()
        LOGGER.warning(
            "Attempt %s/%s for %s failed with %s, retrying",
            retry_state.attempt_number,
            max_attempts,
            url,
            outcome.describe(),
        )

    def _give_up(retry_state: RetryCallState) -> RequestOutcome:
        outcome = retry_state.outcome.result()
        LOGGER.warning(
            "Retry budget exhausted for %s after %s attempts, last outcome %s",
            url,
            retry_state.attempt_number,
            outcome.describe(),
        )
        return outcome

    retrying = Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait or wait_none(),
        retry=retry_if_result(_is_failure),
        before_sleep=_log_retry,
        retry_error_callback=_give_up,
        reraise=True,
    )
    return retrying(
        transport.issue_request,
        url,
        dict(headers),
        dict(params),
        region=region,
        credential=credential,
    )
