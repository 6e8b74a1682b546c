"""Tests for the in-process event bus."""

from __future__ import annotations

import unittest

from firon_chat.events import NOTICE, Event, EventBus


class EventBusTests(unittest.IsolatedAsyncioTestCase):
    """Validate subscription and delivery semantics."""

    async def test_sync_and_async_handlers_receive_events(self) -> None:
        bus = EventBus()
        received: list[str] = []

        def sync_handler(event: Event) -> None:
            received.append(f"sync:{event.data['text']}")

        async def async_handler(event: Event) -> None:
            received.append(f"async:{event.data['text']}")

        bus.subscribe(NOTICE, sync_handler)
        bus.subscribe(NOTICE, async_handler)
        await bus.publish(NOTICE, {"text": "hi"}, source="test")

        self.assertEqual(received, ["sync:hi", "async:hi"])

    async def test_failing_handler_does_not_stop_delivery(self) -> None:
        bus = EventBus()
        received: list[Event] = []

        def broken(_event: Event) -> None:
            raise RuntimeError("boom")

        bus.subscribe(NOTICE, broken)
        bus.subscribe(NOTICE, received.append)
        with self.assertLogs("firon_chat.events.bus", level="ERROR"):
            await bus.publish(NOTICE, {"text": "x"})

        self.assertEqual(len(received), 1)
        self.assertEqual(received[0].name, NOTICE)

    async def test_unsubscribe_and_clear(self) -> None:
        bus = EventBus()
        received: list[Event] = []
        bus.subscribe(NOTICE, received.append)
        bus.unsubscribe(NOTICE, received.append)
        bus.unsubscribe("never.subscribed", received.append)
        await bus.publish(NOTICE, {})
        self.assertEqual(received, [])

        bus.subscribe(NOTICE, received.append)
        bus.clear()
        await bus.publish(NOTICE, {})
        self.assertEqual(received, [])


if __name__ == "__main__":
    unittest.main()
