"""
Tests for the click ingestor worker.
"""
import asyncio
from datetime import datetime, timedelta, timezone

import fakeredis
import pytest

from shortlink.click_processor.click_worker import ClickIngestor, FailurePolicy
from shortlink.queue.models import ClickEvent
from shortlink.queue.strategies import RedisStreamQueue
from shortlink.storage.strategies import ClickStorageStrategy


class FailingStorage(ClickStorageStrategy):
    async def store_click(self, event):
        raise RuntimeError("analytics database unavailable")

    async def get_total_clicks(self, url_id):
        return 0

    async def list_clicks(self, url_id=None):
        return []


def publish_events(queue, events):
    async def run():
        for event in events:
            await queue.publish("clicks", event.to_payload())
    asyncio.run(run())


def make_events(count, url_id=1):
    start = datetime(2026, 10, 17, 10, 0, tzinfo=timezone.utc)
    return [
        ClickEvent(
            url_id=url_id,
            ip_address=f"203.0.113.{i}",
            user_agent=f"agent-{i}",
            timestamp=start + timedelta(seconds=i)
        )
        for i in range(count)
    ]


class TestClickIngestor:

    def test_burst_is_stored_in_queue_order(self, queue, click_storage):
        events = make_events(5)
        publish_events(queue, events)
        worker = ClickIngestor(queue, click_storage, block_ms=None)

        handled = asyncio.run(worker.drain())

        clicks = asyncio.run(click_storage.list_clicks())
        assert handled == 5
        assert [c.user_agent for c in clicks] == [e.user_agent for e in events]
        assert asyncio.run(queue.get_queue_length("clicks")) == 0
        assert asyncio.run(queue.get_pending_count("clicks")) == 0
        assert worker.processed_count == 5

    def test_row_mirrors_event(self, queue, click_storage):
        event = make_events(1, url_id=42)[0]
        publish_events(queue, [event])

        asyncio.run(ClickIngestor(queue, click_storage, block_ms=None).drain())

        click = asyncio.run(click_storage.list_clicks(url_id=42))[0]
        assert click.url_id == 42
        assert click.ip_address == event.ip_address
        assert click.user_agent == event.user_agent
        # SQLite hands timestamps back naive
        assert click.created_at.replace(tzinfo=None) == event.timestamp.replace(tzinfo=None)

    def test_unknown_url_id_is_still_stored(self, queue, click_storage):
        publish_events(queue, [ClickEvent(url_id=99999)])

        asyncio.run(ClickIngestor(queue, click_storage, block_ms=None).drain())

        assert asyncio.run(click_storage.get_total_clicks(99999)) == 1

    def test_malformed_message_is_acked_and_skipped(self, queue, click_storage):
        asyncio.run(queue.publish("clicks", "not json"))
        publish_events(queue, make_events(1))
        worker = ClickIngestor(queue, click_storage, block_ms=None)

        asyncio.run(worker.drain())

        assert asyncio.run(click_storage.get_total_clicks(1)) == 1
        assert asyncio.run(queue.get_pending_count("clicks")) == 0
        assert worker.failed_count == 1
        assert worker.processed_count == 1

    def test_storage_failure_discards_message(self, queue):
        publish_events(queue, make_events(2))
        worker = ClickIngestor(queue, FailingStorage(), block_ms=None)

        asyncio.run(worker.drain())

        assert worker.failed_count == 2
        assert asyncio.run(queue.get_pending_count("clicks")) == 0
        assert asyncio.run(queue.get_queue_length("clicks")) == 0

    def test_dead_letter_policy_keeps_failed_payload(self, queue):
        event = make_events(1)[0]
        publish_events(queue, [event])
        worker = ClickIngestor(
            queue,
            FailingStorage(),
            failure_policy=FailurePolicy.DEAD_LETTER,
            dead_letter_queue_name="clicks.dead",
            block_ms=None
        )

        asyncio.run(worker.drain())

        dead = asyncio.run(queue.consume("clicks.dead", block_ms=None))
        assert [m.body for m in dead] == [event.to_payload()]
        assert asyncio.run(queue.get_pending_count("clicks")) == 0

    def test_dead_letter_policy_requires_queue_name(self, queue, click_storage):
        with pytest.raises(ValueError):
            ClickIngestor(queue, click_storage, failure_policy=FailurePolicy.DEAD_LETTER)

    def test_unacked_message_is_replayed_on_restart(self, queue, click_storage):
        """A worker that died before ack leaves the message pending"""
        publish_events(queue, make_events(2))
        asyncio.run(queue.consume("clicks", block_ms=None))

        handled = asyncio.run(ClickIngestor(queue, click_storage, block_ms=None).drain())

        clicks = asyncio.run(click_storage.list_clicks())
        assert handled == 2
        assert [c.user_agent for c in clicks] == ["agent-0", "agent-1"]
        assert asyncio.run(queue.get_pending_count("clicks")) == 0

    def test_stop_ends_loop(self, queue, click_storage):
        worker = ClickIngestor(queue, click_storage, block_ms=10)

        async def run():
            task = asyncio.create_task(worker.start())
            await asyncio.sleep(0.05)
            worker.stop()
            return await asyncio.wait_for(task, timeout=2)

        assert asyncio.run(run()) == 0
        assert worker.running is False

    def test_drain_empties_redis_stream(self, click_storage):
        events = make_events(3)

        async def run():
            client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
            queue = RedisStreamQueue(client, consumer_group="click_ingestors", consumer_name="worker-1")
            for event in events:
                await queue.publish("clicks", event.to_payload())

            handled = await ClickIngestor(queue, click_storage, block_ms=None).drain()
            return (handled,
                    await queue.get_pending_count("clicks"),
                    await queue.get_queue_length("clicks"))

        assert asyncio.run(run()) == (3, 0, 0)
        assert asyncio.run(click_storage.get_total_clicks(1)) == 3
