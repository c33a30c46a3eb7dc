from __future__ import annotations

import logging
from typing import Dict

from gas_dashboard.models.samples import GasSample, PriceSample
from gas_dashboard.sources.base import SampleSource, SourceDisabledError

log = logging.getLogger("rpc_source")


class RpcSource(SampleSource):
    """
    Live RPC source (disabled).

    Keeps the per-chain endpoints so a collector can be dropped in later,
    but every sampling call raises SourceDisabledError. The generators log
    the error and skip the tick, so selecting this source leaves the store
    empty rather than crashing the app.
    """

    def __init__(self, rpc_urls: Dict[str, str]) -> None:
        self.rpc_urls = dict(rpc_urls)
        missing = [chain for chain, url in self.rpc_urls.items() if not url]
        if missing:
            log.warning("RPC source: no endpoint configured for %s", ", ".join(missing))

    def sample_gas(self, chain: str) -> GasSample:
        raise SourceDisabledError(f"Live RPC sampling is disabled (chain={chain})")

    def sample_price(self) -> PriceSample:
        raise SourceDisabledError("Live RPC price sampling is disabled")
