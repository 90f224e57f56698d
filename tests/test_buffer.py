"""
History Buffer Tests
====================

Drop-oldest behaviour and closing.
"""

import asyncio

import pytest

from topic_preview.stream.buffer import HistoryBuffer


class TestHistoryBuffer:

    def test_rejects_zero_size(self):
        with pytest.raises(ValueError):
            HistoryBuffer(maxsize=0)

    def test_keeps_two_newest(self):
        async def scenario():
            buffer = HistoryBuffer(maxsize=2)
            assert buffer.put("a") is True
            assert buffer.put("b") is True
            assert buffer.put("c") is False
            return [await buffer.get(), await buffer.get()], buffer.metrics()

        items, metrics = asyncio.run(scenario())
        assert items == ["b", "c"]
        assert metrics["dropped_count"] == 1
        assert metrics["total_put"] == 3
        assert metrics["size"] == 0

    def test_unbounded(self):
        async def scenario():
            buffer = HistoryBuffer(maxsize=None)
            for i in range(100):
                buffer.put(i)
            return buffer.size, buffer.dropped_count

        assert asyncio.run(scenario()) == (100, 0)

    def test_close_drains_then_ends(self):
        async def scenario():
            buffer = HistoryBuffer(maxsize=2)
            buffer.put("a")
            buffer.close()
            assert buffer.put("b") is False
            return [await buffer.get(), await buffer.get(), await buffer.get()]

        assert asyncio.run(scenario()) == ["a", None, None]

    def test_close_wakes_waiting_consumer(self):
        async def scenario():
            buffer = HistoryBuffer(maxsize=2)
            waiter = asyncio.create_task(buffer.get())
            await asyncio.sleep(0)
            buffer.close()
            return await asyncio.wait_for(waiter, timeout=1.0)

        assert asyncio.run(scenario()) is None

