from __future__ import annotations

import asyncio
import logging
import traceback
from abc import ABC, abstractmethod
from typing import List, Optional

from gas_dashboard.fanout.events import EventBus, PriceEvent, SampleEvent
from gas_dashboard.series.store import SeriesStore
from gas_dashboard.sources.base import SampleSource


class PeriodicGenerator(ABC):
    """
    Cancellable periodic producer.

    start(): runs one tick right away, then one every `interval` seconds
    stop(): idempotent; lets an in-flight tick finish instead of cancelling it
    tick(): can be awaited directly (tests drive ticks without the timer)
    """

    name = "generator"

    def __init__(
        self,
        store: SeriesStore,
        bus: EventBus,
        source: SampleSource,
        interval: float,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.store = store
        self.bus = bus
        self.source = source
        self.interval = interval
        self.log = logging.getLogger(self.name)
        self._task: Optional[asyncio.Task] = None
        self._stopping: Optional[asyncio.Event] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @abstractmethod
    async def tick(self) -> int:
        """Produce one sample per owned series. Returns how many were stored."""
        raise NotImplementedError

    def start(self) -> None:
        if self.running:
            return
        self._stopping = asyncio.Event()
        self._task = asyncio.create_task(self._run(self._stopping))
        self.log.info("Started (interval=%.1fs)", self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        if self._stopping is not None:
            self._stopping.set()
        await task
        self.log.info("Stopped")

    async def _run(self, stopping: asyncio.Event) -> None:
        while not stopping.is_set():
            try:
                await self.tick()
            except Exception as e:
                # tick() already isolates per-series failures; this is the last guard for the schedule.
                self.log.error("Tick failed error=%s", repr(e))
                self.log.error(traceback.format_exc())

            try:
                await asyncio.wait_for(stopping.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass


class GasPriceGenerator(PeriodicGenerator):
    """One gas sample per chain per tick (reference cadence 15s)."""

    name = "gas_generator"

    def __init__(
        self,
        store: SeriesStore,
        bus: EventBus,
        source: SampleSource,
        interval: float = 15.0,
        chains: Optional[List[str]] = None,
    ) -> None:
        super().__init__(store, bus, source, interval)
        self.chains = list(chains) if chains is not None else list(store.chains)

    async def tick(self) -> int:
        stored = 0
        for chain in self.chains:
            try:
                sample = self.source.sample_gas(chain)
                self.store.append(chain, sample)
            except Exception as e:
                self.log.error("Gas sample failed chain=%s error=%s", chain, repr(e))
                self.log.error(traceback.format_exc())
                continue

            self.bus.publish(SampleEvent(sample))
            stored += 1
            self.log.info(
                "Gas prices updated chain=%s base=%.2f priority=%.2f gwei",
                chain,
                sample.base_fee,
                sample.priority_fee,
            )
        return stored


class PriceGenerator(PeriodicGenerator):
    """One ETH/USD sample per tick (reference cadence 30s)."""

    name = "price_generator"

    def __init__(
        self,
        store: SeriesStore,
        bus: EventBus,
        source: SampleSource,
        interval: float = 30.0,
    ) -> None:
        super().__init__(store, bus, source, interval)

    async def tick(self) -> int:
        try:
            sample = self.source.sample_price()
            self.store.append(sample.series_id, sample)
        except Exception as e:
            self.log.error("Price sample failed error=%s", repr(e))
            self.log.error(traceback.format_exc())
            return 0

        self.bus.publish(PriceEvent(sample))
        self.log.info("ETH/USD price updated price=%.2f", sample.price)
        return 1
