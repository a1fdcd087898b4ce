import unittest

from tenacity import wait_exponential, wait_none

from s3_access.models import Credential, OutcomeStatus, RequestOutcome
from s3_access.retry import attempt_with_retries, build_wait_strategy

URL = "https://s3-us-west-2.amazonaws.com/s3test.pivotal.io/whatever"


class ScriptedTransport:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def issue_request(self, url, headers, params, *, region="", credential=None):
        self.calls.append(
            {
                "url": url,
                "headers": headers,
                "params": params,
                "region": region,
                "credential": credential,
            }
        )
        outcome = self.outcomes[len(self.calls) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class AttemptWithRetriesTests(unittest.TestCase):
    def test_zero_attempts_never_calls_transport(self):
        transport = ScriptedTransport([])

        outcome = attempt_with_retries(transport, URL, {}, {}, 0)

        self.assertEqual(OutcomeStatus.TRANSPORT_FAILURE, outcome.status)
        self.assertEqual([], transport.calls)

    def test_returns_last_failure_after_exhausting_attempts(self):
        transport = ScriptedTransport(
            [
                RequestOutcome.remote_error(500, b"first"),
                RequestOutcome.transport_failure("timed out"),
                RequestOutcome.remote_error(503, b"last"),
            ]
        )

        outcome = attempt_with_retries(transport, URL, {}, {}, 3)

        self.assertEqual(3, len(transport.calls))
        self.assertEqual(OutcomeStatus.REMOTE_ERROR, outcome.status)
        self.assertEqual(503, outcome.status_code)
        self.assertEqual(b"last", outcome.payload)

    def test_two_failed_attempts_call_transport_twice(self):
        transport = ScriptedTransport(
            [RequestOutcome.transport_failure(), RequestOutcome.transport_failure()]
        )

        outcome = attempt_with_retries(transport, URL, {}, {}, 2)

        self.assertFalse(outcome.is_success)
        self.assertEqual(2, len(transport.calls))

    def test_stops_at_first_success(self):
        transport = ScriptedTransport(
            [
                RequestOutcome.transport_failure("reset"),
                RequestOutcome.success(200, b"payload"),
                RequestOutcome.remote_error(500, b"never reached"),
            ]
        )

        outcome = attempt_with_retries(transport, URL, {}, {}, 5)

        self.assertTrue(outcome.is_success)
        self.assertEqual(b"payload", outcome.payload)
        self.assertEqual(2, len(transport.calls))

    def test_forwards_request_and_credential_unchanged(self):
        credential = Credential(access_key="AKID", secret_key="secret")
        transport = ScriptedTransport([RequestOutcome.success(206, b"ab")])

        attempt_with_retries(
            transport,
            URL,
            {"Range": "bytes=0-1"},
            {"prefix": "data/"},
            1,
            region="us-west-2",
            credential=credential,
        )

        call = transport.calls[0]
        self.assertEqual(URL, call["url"])
        self.assertEqual({"Range": "bytes=0-1"}, call["headers"])
        self.assertEqual({"prefix": "data/"}, call["params"])
        self.assertEqual("us-west-2", call["region"])
        self.assertIs(credential, call["credential"])

    def test_transport_exceptions_are_not_retried(self):
        transport = ScriptedTransport([RuntimeError("broken transport"), RequestOutcome.success(200, b"")])

        with self.assertRaises(RuntimeError):
            attempt_with_retries(transport, URL, {}, {}, 3)
        self.assertEqual(1, len(transport.calls))


class WaitStrategyTests(unittest.TestCase):
    def test_no_backoff_means_no_delay(self):
        self.assertIsInstance(build_wait_strategy(0.0), wait_none)

    def test_positive_backoff_is_exponential(self):
        self.assertIsInstance(build_wait_strategy(0.1, 1.0), wait_exponential)


if __name__ == "__main__":
    unittest.main()
