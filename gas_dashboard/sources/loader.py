from gas_dashboard.config import Settings
from gas_dashboard.sources.base import SampleSource
from gas_dashboard.sources.rpc import RpcSource
from gas_dashboard.sources.synthetic import SyntheticSource


def get_source(settings: Settings) -> SampleSource:
    """
    Source loader / factory.

    Reads SAMPLE_SOURCE from config and returns an instance of the selected source.
    This is the single place that knows about concrete sources.
    """
    source_name = settings.sample_source.strip().upper()

    if source_name == "SYNTHETIC":
        return SyntheticSource()

    if source_name == "RPC":
        return RpcSource(settings.rpc_urls)

    raise ValueError(f"Unknown SAMPLE_SOURCE='{settings.sample_source}'. Expected: SYNTHETIC or RPC")
