import asyncio
import unittest
from unittest import mock

from registration_dashboard.loader import (
    CancellationToken,
    DeadlineExceeded,
    LoadCancelled,
    race_deadline,
)


class RaceDeadlineTests(unittest.IsolatedAsyncioTestCase):
    async def test_operation_settling_first_wins(self) -> None:
        async def operation() -> str:
            await asyncio.sleep(0)
            return "value"

        result = await race_deadline(operation(), timeout_seconds=1.0)
        self.assertEqual(result, "value")

    async def test_operation_error_propagates(self) -> None:
        async def operation() -> str:
            raise ValueError("rejected")

        with self.assertRaises(ValueError):
            await race_deadline(operation(), timeout_seconds=1.0)

    async def _race_capturing_timer(self, operation):
        loop = asyncio.get_running_loop()
        handles: list[asyncio.TimerHandle] = []
        original = loop.call_later

        def call_later(delay, callback, *args, **kwargs):
            handle = original(delay, callback, *args, **kwargs)
            handles.append(handle)
            return handle

        with mock.patch.object(loop, "call_later", side_effect=call_later):
            try:
                return await race_deadline(operation, timeout_seconds=5.0), handles
            except ValueError:
                return None, handles

    async def test_timer_is_cleared_when_operation_succeeds(self) -> None:
        async def operation() -> str:
            return "value"

        result, handles = await self._race_capturing_timer(operation())
        self.assertEqual(result, "value")
        self.assertEqual(len(handles), 1)
        self.assertTrue(handles[0].cancelled())

    async def test_timer_is_cleared_when_operation_fails(self) -> None:
        async def operation() -> str:
            raise ValueError("rejected")

        result, handles = await self._race_capturing_timer(operation())
        self.assertIsNone(result)
        self.assertEqual(len(handles), 1)
        self.assertTrue(handles[0].cancelled())

    async def test_deadline_leaves_operation_running(self) -> None:
        finished = asyncio.Event()

        async def operation() -> str:
            await asyncio.sleep(0.03)
            finished.set()
            return "late"

        task = asyncio.ensure_future(operation())
        with self.assertRaises(DeadlineExceeded) as ctx:
            await race_deadline(task, timeout_seconds=0.01)

        self.assertEqual(ctx.exception.timeout_seconds, 0.01)
        self.assertFalse(task.cancelled())
        await asyncio.wait_for(finished.wait(), timeout=1.0)
        self.assertEqual(task.result(), "late")

    async def test_cancelling_the_waiter_detaches_operation(self) -> None:
        release = asyncio.Event()

        async def operation() -> str:
            await release.wait()
            raise RuntimeError("failure nobody awaits")

        op_task = asyncio.ensure_future(operation())
        waiter = asyncio.ensure_future(race_deadline(op_task, timeout_seconds=5.0))
        await asyncio.sleep(0)
        waiter.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await waiter

        self.assertFalse(op_task.done())
        release.set()
        await asyncio.wait({op_task})
        self.assertIsInstance(op_task.exception(), RuntimeError)


class CancellationTokenTests(unittest.IsolatedAsyncioTestCase):
    async def test_cancel_is_write_once(self) -> None:
        token = CancellationToken(attempt=3)
        self.assertFalse(token.cancelled)

        self.assertTrue(token.cancel("superseded"))
        first_at = token.cancelled_at
        self.assertFalse(token.cancel("closed"))

        self.assertTrue(token.cancelled)
        self.assertEqual(token.reason, "superseded")
        self.assertEqual(token.cancelled_at, first_at)

    async def test_raise_if_cancelled(self) -> None:
        token = CancellationToken()
        token.raise_if_cancelled()
        token.cancel()
        with self.assertRaises(LoadCancelled):
            token.raise_if_cancelled()

    async def test_wait_returns_once_signalled(self) -> None:
        token = CancellationToken()
        waiter = asyncio.ensure_future(token.wait())
        await asyncio.sleep(0)
        self.assertFalse(waiter.done())

        token.cancel()
        await asyncio.wait_for(waiter, timeout=1.0)

    async def test_wait_after_cancel_returns_immediately(self) -> None:
        token = CancellationToken()
        token.cancel()
        await asyncio.wait_for(token.wait(), timeout=1.0)


if __name__ == "__main__":
    unittest.main()
