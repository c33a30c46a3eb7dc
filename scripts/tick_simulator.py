from __future__ import annotations

import dataclasses
from datetime import datetime, timedelta, timezone

from gas_dashboard.series.candles import aggregate_to_candles
from gas_dashboard.series.store import SeriesStore
from gas_dashboard.sources.synthetic import CHAIN_FEE_BANDS, SyntheticSource


def run(ticks: int = 240, interval_seconds: int = 15, candle_interval: str = "15m") -> None:
    """
    Generates fake gas ticks offline and prints the resulting candles.

    - One sample per chain per tick, spaced `interval_seconds` apart
      (the live generator uses wall-clock time; here we backdate instead).
    - The store keeps the latest 1000 per chain, same as the API process.
    """
    chains = list(CHAIN_FEE_BANDS)
    store = SeriesStore(chains=chains, retention_cap=1000)
    source = SyntheticSource()

    now = datetime.now(timezone.utc)
    ts = now - timedelta(seconds=ticks * interval_seconds)

    print(f"Simulating {ticks} ticks for {', '.join(chains)}...\n")

    for _ in range(ticks):
        for chain in chains:
            sample = dataclasses.replace(source.sample_gas(chain), timestamp=ts)
            store.append(chain, sample)
        ts += timedelta(seconds=interval_seconds)

    for chain in chains:
        window = store.range(chain, timedelta(hours=24), now=now)
        for c in aggregate_to_candles(window, candle_interval):
            print(
                f"[{c.timeframe}] {chain} {c.start_ts.isoformat()} "
                f"O={c.o:.3f} H={c.h:.3f} L={c.l:.3f} C={c.c:.3f} N={c.count}"
            )
        print()

    print("Done.")
    for chain in chains:
        print(f"Samples stored for {chain}: {store.count(chain)}")


if __name__ == "__main__":
    run()
