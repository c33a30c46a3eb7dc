from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Any, List, Optional

from gas_dashboard.models.api import ChainCost, SimulationResult
from gas_dashboard.models.samples import PRICE_SERIES, FeeCandle, GasSample, PriceSample, Sample
from gas_dashboard.series.candles import CANDLE_INTERVALS, aggregate_to_candles
from gas_dashboard.series.store import SeriesStore, UnknownSeriesError

GWEI_PER_NATIVE_UNIT = 1e9


class InvalidRequestError(ValueError):
    """Bad or missing caller input (maps to HTTP 400)."""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


class QueryService:
    """
    Read-only view over the store for the HTTP routes and the WebSocket snapshot.

    Nothing here mutates the store.
    """

    def __init__(
        self,
        store: SeriesStore,
        default_history_hours: float = 24.0,
        fallback_quote_price: float = 2500.0,
    ) -> None:
        self.store = store
        self.default_history_hours = default_history_hours
        self.fallback_quote_price = fallback_quote_price

    # -------------------------
    # Latest
    # -------------------------
    def latest_samples(self) -> List[GasSample]:
        return self.store.latest_all()

    def latest_price_sample(self) -> Optional[PriceSample]:
        return self.store.latest(PRICE_SERIES)

    def latest_price(self) -> float:
        """Latest quote price, or the fallback before the first price tick."""
        sample = self.latest_price_sample()
        return sample.price if sample is not None else self.fallback_quote_price

    # -------------------------
    # History
    # -------------------------
    def parse_hours(self, raw: Any) -> float:
        """Positive number of hours; anything absent or invalid falls back to the default."""
        if raw is None:
            return self.default_history_hours
        try:
            hours = float(raw)
        except (TypeError, ValueError):
            return self.default_history_hours
        if not math.isfinite(hours) or hours <= 0:
            return self.default_history_hours
        return hours

    def history(
        self,
        series_id: str,
        hours: Any = None,
        now: Optional[datetime] = None,
    ) -> List[Sample]:
        if not self.store.has_series(series_id):
            raise UnknownSeriesError(series_id)
        window = timedelta(hours=self.parse_hours(hours))
        return self.store.range(series_id, window, now=now)

    def price_history(self, hours: Any = None, now: Optional[datetime] = None) -> List[Sample]:
        return self.history(PRICE_SERIES, hours, now=now)

    def candles(
        self,
        chain: str,
        hours: Any = None,
        interval: str = "15m",
        now: Optional[datetime] = None,
    ) -> List[FeeCandle]:
        if chain not in self.store.chains:
            raise UnknownSeriesError(chain)
        if interval not in CANDLE_INTERVALS:
            raise InvalidRequestError(
                f"interval must be one of {', '.join(CANDLE_INTERVALS)}"
            )
        return aggregate_to_candles(self.history(chain, hours, now=now), interval)

    # -------------------------
    # Simulation
    # -------------------------
    def simulate(self, value: Any, gas_limit: Any) -> SimulationResult:
        """
        Cost of one transaction on every chain with data, priced at the latest quote.

        fee_cost = (base_fee + priority_fee) * gas_limit       (gwei)
        cost_in_native_unit = fee_cost / 1e9                    (ETH)
        cost_in_quote_currency = cost_in_native_unit * price    (USD)
        """
        if value is None or gas_limit is None:
            raise InvalidRequestError("Value and gasLimit are required")
        if not _is_number(value) or value <= 0:
            raise InvalidRequestError("value must be a positive number")
        if not _is_number(gas_limit) or gas_limit <= 0 or int(gas_limit) != gas_limit:
            raise InvalidRequestError("gasLimit must be a positive integer")

        gas_limit = int(gas_limit)
        quote_price = self.latest_price()

        result = SimulationResult(quote_price=quote_price)
        for sample in self.latest_samples():
            fee_cost = sample.total_fee * gas_limit
            cost_in_native = fee_cost / GWEI_PER_NATIVE_UNIT
            result.chains[sample.series_id] = ChainCost(
                fee_cost=fee_cost,
                cost_in_native_unit=cost_in_native,
                cost_in_quote_currency=cost_in_native * quote_price,
            )
        return result
