# gas_dashboard/config.py
import os
from dataclasses import dataclass
from dotenv import load_dotenv

# Loads variables from a local .env file into environment variables (dev only).
load_dotenv()

DEFAULT_CHAINS = "ethereum,polygon,arbitrum"


@dataclass(frozen=True)
class Settings:
    # App config
    app_env: str
    log_level: str
    sample_source: str
    chains: list[str]

    # Generator cadence (seconds)
    gas_interval_seconds: float
    price_interval_seconds: float

    # Store / query
    retention_cap: int
    default_history_hours: float
    fallback_quote_price: float

    # Fan-out
    send_timeout_seconds: float
    subscriber_queue_size: int

    # Live RPC endpoints (only used by the RPC source)
    rpc_urls: dict[str, str]


def _number(name: str, default: str, cast=float):
    raw = os.getenv(name, default).strip()
    try:
        value = cast(raw)
    except ValueError:
        raise RuntimeError(f"{name}={raw!r} is not a valid number")
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {raw!r}")
    return value


def get_settings() -> Settings:
    """
    Reads env vars and returns a Settings object.
    """
    chains = [c.strip().lower() for c in os.getenv("CHAINS", DEFAULT_CHAINS).split(",") if c.strip()]
    if not chains:
        raise RuntimeError("CHAINS is empty. Set at least one chain")

    rpc_urls = {
        chain: os.getenv(f"{chain.upper()}_RPC_URL", "")
        for chain in chains
    }

    return Settings(
        app_env=os.getenv("APP_ENV", "local"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        sample_source=os.getenv("SAMPLE_SOURCE", "SYNTHETIC"),
        chains=chains,
        gas_interval_seconds=_number("GAS_INTERVAL_SECONDS", "15"),
        price_interval_seconds=_number("PRICE_INTERVAL_SECONDS", "30"),
        retention_cap=_number("RETENTION_CAP", "1000", int),
        default_history_hours=_number("DEFAULT_HISTORY_HOURS", "24"),
        fallback_quote_price=_number("FALLBACK_QUOTE_PRICE", "2500"),
        send_timeout_seconds=_number("SEND_TIMEOUT_SECONDS", "5"),
        subscriber_queue_size=_number("SUBSCRIBER_QUEUE_SIZE", "100", int),
        rpc_urls=rpc_urls,
    )
