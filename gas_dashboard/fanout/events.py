from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Union

from gas_dashboard.models.samples import GasSample, PriceSample

log = logging.getLogger("event_bus")


@dataclass(frozen=True)
class SampleEvent:
    """A generator appended a new gas sample for one chain."""
    sample: GasSample


@dataclass(frozen=True)
class PriceEvent:
    """A generator appended a new quote price."""
    sample: PriceSample


Event = Union[SampleEvent, PriceEvent]
Listener = Callable[[Event], None]


class EventBus:
    """
    Explicit publish/subscribe object handed to generators and the fan-out.

    Listeners are plain callables run synchronously, in registration order.
    A failing listener is logged and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def listen(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def publish(self, event: Event) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                log.error("Listener %r failed for %s: %s", listener, type(event).__name__, repr(e))
