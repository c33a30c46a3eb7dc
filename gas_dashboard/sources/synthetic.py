from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from gas_dashboard.models.samples import GasSample, PriceSample
from gas_dashboard.sources.base import SampleSource

STANDARD_TRANSFER_GAS = 21000


@dataclass(frozen=True)
class FeeBand:
    """Uniform ranges (gwei) a chain's fees are drawn from."""
    base_fee: Tuple[float, float]
    priority_fee: Tuple[float, float]


# Distinct magnitude bands per chain, roughly matching real fee levels.
CHAIN_FEE_BANDS: Dict[str, FeeBand] = {
    "ethereum": FeeBand(base_fee=(15.0, 65.0), priority_fee=(1.0, 6.0)),
    "polygon": FeeBand(base_fee=(20.0, 120.0), priority_fee=(30.0, 50.0)),
    "arbitrum": FeeBand(base_fee=(0.1, 0.6), priority_fee=(0.01, 0.11)),
}

# Chains without a configured band get a flat reading.
DEFAULT_FEE_BAND = FeeBand(base_fee=(10.0, 10.0), priority_fee=(2.0, 2.0))

PRICE_CENTER = 3000.0
PRICE_MAX_STEP = 50.0
PRICE_REVERSION = 0.05
PRICE_FLOOR = 1000.0
PRICE_CEILING = 6000.0


class SyntheticSource(SampleSource):
    """
    Synthetic feed.

    Gas: independent uniform draws inside each chain's FeeBand.
    Price: bounded random walk around PRICE_CENTER. Each step moves at most
    PRICE_MAX_STEP, is pulled a little back toward the center, and is clamped
    to [PRICE_FLOOR, PRICE_CEILING].
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        bands: Optional[Dict[str, FeeBand]] = None,
        start_price: float = PRICE_CENTER,
    ) -> None:
        self.rng = rng or random.Random()
        self.bands = bands if bands is not None else CHAIN_FEE_BANDS
        self._price = clamp_price(start_price)

    def band_for(self, chain: str) -> FeeBand:
        return self.bands.get(chain, DEFAULT_FEE_BAND)

    def sample_gas(self, chain: str) -> GasSample:
        band = self.band_for(chain)
        return GasSample(
            series_id=chain,
            base_fee=self.rng.uniform(*band.base_fee),
            priority_fee=self.rng.uniform(*band.priority_fee),
            gas_limit=STANDARD_TRANSFER_GAS,
            timestamp=datetime.now(timezone.utc),
        )

    def sample_price(self) -> PriceSample:
        step = self.rng.uniform(-PRICE_MAX_STEP, PRICE_MAX_STEP)
        pull = (PRICE_CENTER - self._price) * PRICE_REVERSION
        self._price = clamp_price(self._price + step + pull)
        return PriceSample(price=self._price, timestamp=datetime.now(timezone.utc))


def clamp_price(price: float) -> float:
    return max(PRICE_FLOOR, min(PRICE_CEILING, price))
