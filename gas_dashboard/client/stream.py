from __future__ import annotations

import asyncio
import inspect
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import websockets

from gas_dashboard.fanout.messages import INITIAL_DATA, PONG, PRICE_UPDATE, SAMPLE_UPDATE

log = logging.getLogger("stream_client")

Handler = Callable[[Dict[str, Any]], Union[None, Awaitable[None]]]

KNOWN_TYPES = {INITIAL_DATA, SAMPLE_UPDATE, PRICE_UPDATE, PONG}


def reconnect_delay(attempt: int, base: float = 1.0, cap: float = 30.0) -> float:
    """Exponential backoff: base * 2^attempt, capped."""
    return min(base * (2 ** attempt), cap)


class DashboardStreamClient:
    """
    Viewer side of the /ws push channel.

    - dispatches each message's `data` to handlers[type]
    - warns about unknown message types and malformed frames
    - reconnects with capped exponential backoff; gives up after
      `max_attempts` consecutive failed connections

    There is no replay: after a reconnect the server sends a fresh
    initialData snapshot, and anything missed in between has to be fetched
    from the HTTP history routes.
    """

    def __init__(
        self,
        url: str,
        handlers: Dict[str, Handler],
        max_attempts: int = 5,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        connect: Optional[Callable[..., Any]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.url = url
        self.handlers = dict(handlers)
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._connect = connect or websockets.connect
        self._sleep = sleep
        self._stopped = False
        self.connected = False
        self.attempts = 0

    def stop(self) -> None:
        self._stopped = True

    async def dispatch(self, raw: Union[str, bytes]) -> bool:
        """Route one frame to its handler. Returns True if a handler ran without raising."""
        try:
            msg = json.loads(raw)
        except ValueError:
            log.error("Error parsing WebSocket message: %.200s", raw)
            return False

        kind = msg.get("type") if isinstance(msg, dict) else None
        if kind not in KNOWN_TYPES:
            log.warning("Unknown message type: %r", kind)
            return False

        handler = self.handlers.get(kind)
        if handler is None:
            return False

        try:
            result = handler(msg.get("data") or {})
            if inspect.isawaitable(result):
                await result
        except Exception:
            log.exception("Handler for %s failed", kind)
            return False
        return True

    async def run(self) -> None:
        """Consume the stream until stop() is called or reconnect attempts run out."""
        while not self._stopped:
            try:
                async with self._connect(self.url, ping_interval=20, ping_timeout=20) as ws:
                    log.info("WebSocket connected url=%s", self.url)
                    self.connected = True
                    self.attempts = 0
                    async for raw in ws:
                        await self.dispatch(raw)
                        if self._stopped:
                            break
                log.info("WebSocket disconnected")
            except Exception as e:
                log.warning("WebSocket error: %s", e)
            finally:
                self.connected = False

            if self._stopped:
                return

            if self.attempts >= self.max_attempts:
                log.error("Giving up after %d reconnect attempts", self.attempts)
                return

            self.attempts += 1
            delay = reconnect_delay(self.attempts, self.base_delay, self.max_delay)
            log.info("Reconnecting in %.1fs (attempt %d)", delay, self.attempts)
            await self._sleep(delay)
