from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable, List

from gas_dashboard.models.samples import FeeCandle, GasSample

# Chart intervals offered by the dashboard (label -> minutes).
CANDLE_INTERVALS = {
    "15m": 15,
    "1h": 60,
    "4h": 240,
    "1d": 1440,
}


def floor_to_bucket(ts: datetime, minutes: int) -> datetime:
    """Round timestamp down to the start of its `minutes`-wide bucket (UTC, epoch aligned)."""
    ts = ts.astimezone(timezone.utc)
    width = minutes * 60
    epoch = int(ts.timestamp())
    return datetime.fromtimestamp(epoch - epoch % width, tz=timezone.utc)


def aggregate_to_candles(samples: Iterable[GasSample], interval: str) -> List[FeeCandle]:
    """
    Fold raw gas samples into fixed-width candles of the total fee.

    Samples are expected oldest first (as returned by SeriesStore.range);
    out-of-order samples older than the current bucket are dropped.
    """
    if interval not in CANDLE_INTERVALS:
        raise ValueError(f"Unknown interval '{interval}'. Expected one of {list(CANDLE_INTERVALS)}")

    minutes = CANDLE_INTERVALS[interval]
    duration = timedelta(minutes=minutes)

    candles: List[FeeCandle] = []
    current: FeeCandle | None = None

    for s in samples:
        value = s.total_fee
        start_ts = floor_to_bucket(s.timestamp, minutes)

        if current is not None and start_ts < current.start_ts:
            continue

        if current is None or start_ts >= current.end_ts:
            current = FeeCandle(
                series_id=s.series_id,
                timeframe=interval,
                start_ts=start_ts,
                end_ts=start_ts + duration,
                o=value,
                h=value,
                l=value,
                c=value,
            )
            candles.append(current)
            continue

        current.update(value)

    return candles
