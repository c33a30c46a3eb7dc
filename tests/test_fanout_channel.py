import asyncio
import unittest

from gas_dashboard.fanout.channel import DROPPED_CLOSE_CODE, FanoutChannel
from gas_dashboard.fanout.events import EventBus, PriceEvent, SampleEvent
from gas_dashboard.fanout.messages import INITIAL_DATA, PRICE_UPDATE, SAMPLE_UPDATE, initial_data_message
from gas_dashboard.series.store import SeriesStore
from tests.factories import CHAINS, FakeConnection, gas, price, wait_until


class TestFanoutChannel(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.store = SeriesStore(chains=list(CHAINS))
        self.store.append("ethereum", gas("ethereum", 20.0, 2.0))
        self.channel = FanoutChannel(
            snapshot=lambda: initial_data_message(self.store.latest_all(), 3000.0),
            send_timeout=0.05,
            queue_size=10,
        )

    async def asyncTearDown(self):
        await self.channel.close()

    async def test_snapshot_is_sent_first_and_once(self):
        conn = FakeConnection()
        sub = self.channel.subscribe(conn)
        # events raised before the pump ever ran still queue behind the snapshot
        self.channel.on_event(SampleEvent(gas("polygon")))
        self.channel.on_event(PriceEvent(price(3050.0)))
        await self.channel.drain(sub)

        self.assertEqual(conn.types, [INITIAL_DATA, SAMPLE_UPDATE, PRICE_UPDATE])
        snapshot = conn.sent[0]["data"]
        self.assertEqual(snapshot["quotePrice"], 3000.0)
        self.assertEqual([s["chain"] for s in snapshot["samples"]], ["ethereum"])
        self.assertEqual(conn.sent[1]["data"]["seriesId"], "polygon")
        self.assertEqual(conn.sent[2]["data"], {"price": 3050.0})

    async def test_events_keep_producer_order(self):
        conn = FakeConnection()
        sub = self.channel.subscribe(conn)
        fees = [float(i) for i in range(8)]
        for fee in fees:
            self.channel.on_event(SampleEvent(gas("ethereum", base_fee=fee)))
        await self.channel.drain(sub)

        received = [m["data"]["sample"]["baseFee"] for m in conn.sent[1:]]
        self.assertEqual(received, fees)

    async def test_broken_subscriber_is_dropped_without_affecting_others(self):
        broken = FakeConnection(fail_after=1)
        healthy = FakeConnection()
        bad = self.channel.subscribe(broken)
        good = self.channel.subscribe(healthy)

        with self.assertLogs("fanout", level="WARNING"):
            for _ in range(3):
                self.channel.on_event(SampleEvent(gas("arbitrum")))
            await self.channel.drain(good)
            await asyncio.wait_for(bad.task, timeout=1.0)

        self.assertEqual(healthy.types, [INITIAL_DATA] + [SAMPLE_UPDATE] * 3)
        self.assertEqual(broken.types, [INITIAL_DATA])
        self.assertEqual(self.channel.subscriber_count, 1)
        await wait_until(lambda: broken.close_code is not None)
        self.assertEqual(broken.close_code, DROPPED_CLOSE_CODE)
        self.assertIsNone(healthy.close_code)

    async def test_unsubscribe_mid_broadcast(self):
        a = FakeConnection()
        b = FakeConnection()
        sub_a = self.channel.subscribe(a)
        sub_b = self.channel.subscribe(b)

        self.channel.on_event(SampleEvent(gas("ethereum")))
        self.channel.unsubscribe(sub_a)
        self.channel.on_event(SampleEvent(gas("polygon")))
        await self.channel.drain(sub_b)

        self.assertEqual(b.types, [INITIAL_DATA, SAMPLE_UPDATE, SAMPLE_UPDATE])
        self.assertNotIn(SAMPLE_UPDATE, a.types)
        # an explicit unsubscribe leaves closing the socket to its owner
        self.assertIsNone(a.close_code)

    async def test_stuck_subscriber_times_out(self):
        stuck = FakeConnection(block=True)
        healthy = FakeConnection()
        stuck_sub = self.channel.subscribe(stuck)
        good = self.channel.subscribe(healthy)

        with self.assertLogs("fanout", level="WARNING"):
            self.channel.on_event(PriceEvent(price()))
            await self.channel.drain(good)
            await asyncio.wait_for(stuck_sub.task, timeout=1.0)

        self.assertTrue(stuck_sub.closed)
        self.assertEqual(healthy.types, [INITIAL_DATA, PRICE_UPDATE])
        self.assertEqual(self.channel.subscriber_count, 1)
        await wait_until(lambda: stuck.close_code is not None)
        self.assertEqual(stuck.close_code, DROPPED_CLOSE_CODE)

    async def test_full_queue_drops_subscriber(self):
        stuck = FakeConnection(block=True)
        sub = self.channel.subscribe(stuck)
        self.channel.send_timeout = 10.0

        with self.assertLogs("fanout", level="WARNING"):
            for _ in range(20):
                self.channel.on_event(SampleEvent(gas("ethereum")))

        self.assertTrue(sub.closed)
        self.assertEqual(self.channel.subscriber_count, 0)
        await wait_until(lambda: stuck.close_code is not None)
        self.assertEqual(stuck.close_code, DROPPED_CLOSE_CODE)

    async def test_unsubscribe_is_idempotent(self):
        sub = self.channel.subscribe(FakeConnection())
        self.channel.unsubscribe(sub)
        self.channel.unsubscribe(sub)
        self.assertEqual(self.channel.subscriber_count, 0)

    async def test_on_event_with_no_subscribers(self):
        self.channel.on_event(SampleEvent(gas("ethereum")))
        self.assertEqual(self.channel.subscriber_count, 0)

    async def test_wired_through_event_bus(self):
        bus = EventBus()
        bus.listen(self.channel.on_event)
        conn = FakeConnection()
        sub = self.channel.subscribe(conn)

        bus.publish(PriceEvent(price(2999.0)))
        await self.channel.drain(sub)

        self.assertEqual(conn.sent[-1], {"type": PRICE_UPDATE, "data": {"price": 2999.0}})
