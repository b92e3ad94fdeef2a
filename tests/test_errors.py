import asyncio
import unittest

import aiohttp

from registration_dashboard.loader import (
    DeadlineExceeded,
    LoadCancelled,
    LoadErrorKind,
    OperationFailure,
    TransportFailure,
    classify_error,
)
from registration_dashboard.loader.errors import (
    DEADLINE_MESSAGE,
    DEFAULT_OPERATION_MESSAGE,
    TRANSPORT_MESSAGE,
    is_cancellation,
)


class ClassifyErrorTests(unittest.TestCase):
    def test_load_errors_are_returned_unchanged(self) -> None:
        error = DeadlineExceeded(15.0)
        self.assertIs(classify_error(error), error)
        self.assertEqual(error.user_message, DEADLINE_MESSAGE)
        self.assertEqual(error.kind, LoadErrorKind.DEADLINE_EXCEEDED)

    def test_connection_errors_are_transport_failures(self) -> None:
        for exc in (
            ConnectionRefusedError("refused"),
            aiohttp.ClientConnectionError("unreachable"),
            RuntimeError("TypeError: Failed to fetch"),
            RuntimeError("NetworkError when attempting to fetch resource."),
        ):
            classified = classify_error(exc)
            self.assertIsInstance(classified, TransportFailure, msg=repr(exc))
            self.assertEqual(classified.user_message, TRANSPORT_MESSAGE)
            self.assertIs(classified.__cause__, exc)

    def test_other_errors_pass_their_message_through(self) -> None:
        classified = classify_error(RuntimeError("permission denied for table paiements"))
        self.assertIsInstance(classified, OperationFailure)
        self.assertEqual(classified.user_message, "permission denied for table paiements")
        self.assertEqual(classified.kind, LoadErrorKind.OPERATION_FAILURE)

    def test_empty_message_falls_back_to_default(self) -> None:
        classified = classify_error(ValueError())
        self.assertEqual(classified.user_message, DEFAULT_OPERATION_MESSAGE)

    def test_cancellation_detection(self) -> None:
        self.assertTrue(is_cancellation(LoadCancelled()))
        self.assertTrue(is_cancellation(asyncio.CancelledError()))
        self.assertFalse(is_cancellation(OperationFailure("nope")))
        self.assertIsInstance(classify_error(asyncio.CancelledError()), LoadCancelled)


if __name__ == "__main__":
    unittest.main()
