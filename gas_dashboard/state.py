from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from gas_dashboard.config import Settings
from gas_dashboard.fanout.channel import FanoutChannel
from gas_dashboard.fanout.events import EventBus
from gas_dashboard.fanout.messages import initial_data_message
from gas_dashboard.jobs.generators import GasPriceGenerator, PriceGenerator
from gas_dashboard.series.store import SeriesStore
from gas_dashboard.services.query import QueryService
from gas_dashboard.sources.base import SampleSource
from gas_dashboard.sources.loader import get_source


@dataclass
class DashboardState:
    """Everything the running API process shares, built once per app."""
    settings: Settings
    store: SeriesStore
    bus: EventBus
    source: SampleSource
    query: QueryService
    fanout: FanoutChannel
    gas_generator: GasPriceGenerator
    price_generator: PriceGenerator

    async def start(self) -> None:
        self.gas_generator.start()
        self.price_generator.start()

    async def stop(self) -> None:
        await self.gas_generator.stop()
        await self.price_generator.stop()
        await self.fanout.close()
        self.source.close()


def build_state(settings: Settings, source: Optional[SampleSource] = None) -> DashboardState:
    """Wire store -> generators -> bus -> fan-out, and the query service on the same store."""
    store = SeriesStore(chains=settings.chains, retention_cap=settings.retention_cap)
    bus = EventBus()
    source = source or get_source(settings)

    query = QueryService(
        store,
        default_history_hours=settings.default_history_hours,
        fallback_quote_price=settings.fallback_quote_price,
    )

    fanout = FanoutChannel(
        snapshot=lambda: initial_data_message(query.latest_samples(), query.latest_price()),
        send_timeout=settings.send_timeout_seconds,
        queue_size=settings.subscriber_queue_size,
    )
    bus.listen(fanout.on_event)

    return DashboardState(
        settings=settings,
        store=store,
        bus=bus,
        source=source,
        query=query,
        fanout=fanout,
        gas_generator=GasPriceGenerator(
            store, bus, source, interval=settings.gas_interval_seconds, chains=settings.chains
        ),
        price_generator=PriceGenerator(
            store, bus, source, interval=settings.price_interval_seconds
        ),
    )
