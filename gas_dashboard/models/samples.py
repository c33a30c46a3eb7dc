from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Union

PRICE_SERIES = "eth-usd"


@dataclass(frozen=True)
class GasSample:
    """
    GasSample = one fee reading for a chain.

    series_id: which chain (e.g., ethereum)
    base_fee: protocol base fee in gwei
    priority_fee: tip on top of the base fee in gwei
    gas_limit: reference gas limit the reading was quoted for (simple transfer)
    timestamp: when the sample was produced (UTC)
    """
    series_id: str
    base_fee: float
    priority_fee: float
    timestamp: datetime
    gas_limit: int = 21000

    @property
    def total_fee(self) -> float:
        return self.base_fee + self.priority_fee

    def to_dict(self) -> dict:
        return {
            "chain": self.series_id,
            "baseFee": self.base_fee,
            "priorityFee": self.priority_fee,
            "gasLimit": self.gas_limit,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class PriceSample:
    """ETH/USD quote price at a point in time."""
    price: float
    timestamp: datetime
    series_id: str = PRICE_SERIES

    def to_dict(self) -> dict:
        return {"price": self.price, "timestamp": self.timestamp.isoformat()}


Sample = Union[GasSample, PriceSample]


@dataclass
class FeeCandle:
    """
    Candle over the summed fee (base + priority) for a fixed bucket.

    start_ts: bucket start (inclusive)
    end_ts: bucket end (exclusive)
    o/h/l/c: open/high/low/close of the total fee in gwei
    count: number of raw samples folded into the bucket
    """
    series_id: str
    timeframe: str
    start_ts: datetime
    end_ts: datetime
    o: float
    h: float
    l: float
    c: float
    count: int = 1

    def update(self, value: float) -> None:
        """Fold one more sample into this candle."""
        self.h = max(self.h, value)
        self.l = min(self.l, value)
        self.c = value
        self.count += 1

    def to_dict(self) -> dict:
        return {
            "time": int(self.start_ts.timestamp()),
            "open": self.o,
            "high": self.h,
            "low": self.l,
            "close": self.c,
            "count": self.count,
        }
