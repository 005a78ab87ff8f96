from __future__ import annotations

from datetime import datetime, timezone

from .types import BUY, SELL, AggregatedTrade, OrderRequest


def side_to_text(side: str) -> str:
    s = (side or "").upper()
    if s == BUY:
        return "Bought"
    if s == SELL:
        return "Sold"
    return "Traded"


def short_address(address: str | None) -> str:
    if not address:
        return "Unknown"
    addr = address.strip()
    if len(addr) <= 12:
        return addr
    return f"{addr[:6]}...{addr[-4:]}"


def trade_time_iso(ts: int) -> str:
    dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    return dt.isoformat().replace("+00:00", "Z")


def short_asset(asset: str) -> str:
    if len(asset) <= 16:
        return asset
    return f"{asset[:8]}...{asset[-6:]}"


def describe_trade(trade: AggregatedTrade) -> str:
    market = trade.title or trade.condition_id
    outcome = trade.outcome or "N/A"
    return (
        f"{side_to_text(trade.side)} {outcome} x{trade.batch_count} "
        f"size={trade.size:.4f} usdc={trade.usdc_size:.2f} avg_price={trade.price:.4f} "
        f"asset={short_asset(trade.asset)} "
        f"window={trade_time_iso(trade.first_timestamp)}..{trade_time_iso(trade.last_timestamp)} "
        f"market={market!r}"
    )


def describe_order(order: OrderRequest) -> str:
    unit = "usdc" if order.side == BUY else "shares"
    return (
        f"{order.side} {order.amount:g} {unit} @ {order.price:g} "
        f"asset={short_asset(order.asset)} fee_bps={order.fee_rate_bps} "
        f"type={order.fill_type.value}"
    )
