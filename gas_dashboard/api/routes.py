from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Query, Request, WebSocket, WebSocketDisconnect

from gas_dashboard.fanout.messages import handle_client_message
from gas_dashboard.models.api import SimulationRequest
from gas_dashboard.series.store import UnknownSeriesError
from gas_dashboard.state import DashboardState

router = APIRouter()

log = logging.getLogger("api")


def get_state(conn) -> DashboardState:
    return conn.app.state.dashboard


@router.get("/api/gas-prices")
def gas_prices(request: Request):
    """Latest gas sample for every chain (empty before the first tick)."""
    query = get_state(request).query
    return [s.to_dict() for s in query.latest_samples()]


@router.get("/api/eth-price")
def eth_price(request: Request):
    return {"price": get_state(request).query.latest_price()}


@router.get("/api/gas-history/{chain}")
def gas_history(
    request: Request,
    chain: str,
    hours: Optional[str] = Query(None, description="Lookback window in hours (default 24)"),
):
    state = get_state(request)
    chain = chain.lower()
    if chain not in state.store.chains:
        raise UnknownSeriesError(chain)
    return [s.to_dict() for s in state.query.history(chain, hours)]


@router.get("/api/eth-price-history")
def eth_price_history(
    request: Request,
    hours: Optional[str] = Query(None, description="Lookback window in hours (default 24)"),
):
    return [s.to_dict() for s in get_state(request).query.price_history(hours)]


@router.get("/api/gas-candles/{chain}")
def gas_candles(
    request: Request,
    chain: str,
    hours: Optional[str] = Query(None, description="Lookback window in hours (default 24)"),
    interval: str = Query("15m", description="Candle width: 15m, 1h, 4h or 1d"),
):
    """
    Candles of the total fee (base + priority) for one chain.
    Built from the raw samples on every call; nothing is cached.
    """
    candles = get_state(request).query.candles(chain.lower(), hours, interval)
    return [c.to_dict() for c in candles]


@router.post("/api/simulate-transaction")
def simulate_transaction(request: Request, body: SimulationRequest):
    result = get_state(request).query.simulate(body.value, body.gas_limit)
    return result.to_response()


@router.websocket("/ws")
async def ws_updates(websocket: WebSocket):
    """
    Push channel:
    - initialData once, right after connect
    - sampleUpdate / priceUpdate for every generator tick

    Reads race the subscriber's pump: if the fan-out drops this viewer
    (stuck or too slow) the handler stops instead of waiting on the client.
    """
    fanout = get_state(websocket).fanout

    await websocket.accept()
    sub = fanout.subscribe(websocket)
    try:
        while True:
            receiving = asyncio.ensure_future(websocket.receive_text())
            await asyncio.wait({receiving, sub.task}, return_when=asyncio.FIRST_COMPLETED)
            if not receiving.done():
                receiving.cancel()
                log.info("Subscriber %d dropped by fan-out, ending handler", sub.id)
                break

            raw = receiving.result()
            reply = handle_client_message(raw, log)
            if reply is not None:
                fanout.enqueue(sub, reply)
    except WebSocketDisconnect:
        log.info("WebSocket connection closed subscriber=%d", sub.id)
    except Exception as e:
        log.warning("WebSocket error subscriber=%d error=%s", sub.id, repr(e))
    finally:
        fanout.unsubscribe(sub)
