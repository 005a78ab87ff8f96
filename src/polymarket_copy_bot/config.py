from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

USDC_E_POLYGON = "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174"


@dataclass(frozen=True)
class Settings:
    target_address: str
    follower_address: str
    private_key: str
    poll_interval_seconds: float
    max_age_hours: float
    retry_limit: int
    data_api_base: str
    clob_host: str
    polygon_rpc_url: str
    usdc_contract: str
    chain_id: int
    signature_type: int | None
    activity_limit: int
    batch_window_seconds: float
    batch_poll_seconds: float
    ratio_amplification: float
    slippage_tolerance: float
    min_order_notional: float
    health_log_interval_seconds: int
    log_level: str


def _required(name: str) -> str:
    value = os.getenv(name, "").strip()
    if not value:
        raise ValueError(f"Missing required environment variable: {name}")
    return value


def _required_int(name: str) -> int:
    raw = _required(name)
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _required_float(name: str) -> float:
    raw = _required(name)
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _optional_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _optional_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


def load_settings() -> Settings:
    load_dotenv()
    target_address = _required("USER_ADDRESS")
    follower_address = _required("PROXY_WALLET")
    retry_limit = _required_int("RETRY_LIMIT")
    if retry_limit < 1:
        raise ValueError("RETRY_LIMIT must be at least 1")
    poll_interval = _required_float("FETCH_INTERVAL")
    if poll_interval <= 0:
        raise ValueError("FETCH_INTERVAL must be positive")

    return Settings(
        target_address=target_address,
        follower_address=follower_address,
        private_key=_required("PRIVATE_KEY"),
        poll_interval_seconds=poll_interval,
        max_age_hours=_required_float("TOO_OLD_TIMESTAMP"),
        retry_limit=retry_limit,
        data_api_base=os.getenv("DATA_API_BASE", "https://data-api.polymarket.com").strip(),
        clob_host=os.getenv("CLOB_HOST", "https://clob.polymarket.com").strip(),
        polygon_rpc_url=os.getenv("POLYGON_RPC_URL", "https://polygon-rpc.com").strip(),
        usdc_contract=os.getenv("USDC_CONTRACT", USDC_E_POLYGON).strip(),
        chain_id=_optional_int("CHAIN_ID", 137),
        signature_type=_optional_int("SIGNATURE_TYPE", 2),
        activity_limit=_optional_int("ACTIVITY_LIMIT", 100),
        batch_window_seconds=_optional_float("BATCH_WINDOW_SECONDS", 0.9),
        batch_poll_seconds=_optional_float("BATCH_POLL_SECONDS", 0.15),
        ratio_amplification=_optional_float("RATIO_AMPLIFICATION", 30.0),
        slippage_tolerance=_optional_float("SLIPPAGE_TOLERANCE", 0.03),
        min_order_notional=_optional_float("MIN_ORDER_NOTIONAL", 1.0),
        health_log_interval_seconds=_optional_int("HEALTH_LOG_INTERVAL_SECONDS", 60),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
    )
