# Unit tests for the background runner
import asyncio
import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from backend.background import run_sync, submit


async def double(value):
    await asyncio.sleep(0)
    return value * 2


async def explode():
    raise RuntimeError("boom")


class TestBackground(unittest.TestCase):
    def test_run_sync(self):
        self.assertEqual(run_sync(double(21)), 42)

    def test_submit_returns_future(self):
        future = submit("double", lambda: double(4))
        self.assertEqual(future.result(timeout=5), 8)

    def test_submit_keeps_exception_on_future(self):
        future = submit("explode", explode)
        with self.assertRaises(RuntimeError):
            future.result(timeout=5)


if __name__ == "__main__":
    unittest.main()
