from __future__ import annotations

import json
from typing import List, Optional

from gas_dashboard.fanout.events import Event, PriceEvent, SampleEvent
from gas_dashboard.models.samples import GasSample

INITIAL_DATA = "initialData"
SAMPLE_UPDATE = "sampleUpdate"
PRICE_UPDATE = "priceUpdate"
PING = "ping"
PONG = "pong"


def initial_data_message(samples: List[GasSample], quote_price: Optional[float]) -> dict:
    return {
        "type": INITIAL_DATA,
        "data": {
            "samples": [s.to_dict() for s in samples],
            "quotePrice": quote_price,
        },
    }


def event_message(event: Event) -> dict:
    if isinstance(event, SampleEvent):
        return {
            "type": SAMPLE_UPDATE,
            "data": {"seriesId": event.sample.series_id, "sample": event.sample.to_dict()},
        }
    if isinstance(event, PriceEvent):
        return {"type": PRICE_UPDATE, "data": {"price": event.sample.price}}
    raise TypeError(f"Unsupported event type {type(event).__name__}")


def handle_client_message(raw: str, log) -> Optional[dict]:
    """
    Handle one inbound message from a viewer.

    Viewers only need to send pings; anything else is ignored with a warning.
    Returns the reply to queue, if any.
    """
    try:
        msg = json.loads(raw)
    except ValueError:
        log.warning("Ignoring malformed client message: %.200s", raw)
        return None

    kind = msg.get("type") if isinstance(msg, dict) else None
    if kind == PING:
        return {"type": PONG}

    log.warning("Ignoring unknown client message type: %r", kind)
    return None
