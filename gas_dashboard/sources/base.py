from __future__ import annotations

from abc import ABC, abstractmethod

from gas_dashboard.models.samples import GasSample, PriceSample


class SourceDisabledError(RuntimeError):
    """Raised by a sample source that is configured but not allowed to run."""


class SampleSource(ABC):
    """
    Sample source contract (interface).

    Any source must implement:
    - sample_gas(): one fee reading for a chain
    - sample_price(): one ETH/USD quote

    Generators, the store and the fan-out never know which source they are
    talking to.
    """

    @abstractmethod
    def sample_gas(self, chain: str) -> GasSample:
        raise NotImplementedError

    @abstractmethod
    def sample_price(self) -> PriceSample:
        raise NotImplementedError

    def close(self) -> None:
        return None
