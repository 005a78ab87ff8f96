from __future__ import annotations

from dataclasses import asdict, replace

from .types import BUY, AggregatedTrade, TradeEvent


def _batch_key(event: TradeEvent) -> str:
    return f"{event.asset}|{event.side}"


def _weight(event: TradeEvent) -> float:
    # BUY notional is quoted in USDC, SELL in shares.
    return event.usdc_size if event.side == BUY else event.size


def aggregate_key(trade: AggregatedTrade) -> str:
    if trade.transaction_hash:
        return trade.transaction_hash
    return f"{trade.first_timestamp}|{trade.last_timestamp}|{trade.side}|{trade.asset}"


class TradeAggregator:
    """Coalesces partial-fill events into one synthetic trade per asset and side.

    The activity feed often reports a single fill as several events a few
    hundred milliseconds apart. Events added between two flushes that share
    ``asset`` and ``side`` are merged: sizes add up and the price becomes the
    weighted average of the parts.
    """

    def __init__(self) -> None:
        self._buffer: dict[str, AggregatedTrade] = {}

    def __len__(self) -> int:
        return len(self._buffer)

    def add(self, event: TradeEvent) -> None:
        if event.type != "TRADE":
            return

        key = _batch_key(event)
        existing = self._buffer.get(key)
        if existing is None:
            self._buffer[key] = AggregatedTrade(
                **asdict(event),
                batch_count=1,
                first_timestamp=event.timestamp,
                last_timestamp=event.timestamp,
            )
            return

        self._buffer[key] = self._merge(existing, event)

    @staticmethod
    def _merge(existing: AggregatedTrade, event: TradeEvent) -> AggregatedTrade:
        w_old = _weight(existing)
        w_new = _weight(event)
        total = w_old + w_new
        price = existing.price
        if total > 0:
            price = (existing.price * w_old + event.price * w_new) / total

        return replace(
            existing,
            price=price,
            size=existing.size + event.size,
            usdc_size=existing.usdc_size + event.usdc_size,
            transaction_hash=existing.transaction_hash or event.transaction_hash,
            batch_count=existing.batch_count + 1,
            last_timestamp=max(existing.last_timestamp, event.timestamp),
        )

    def flush(self) -> list[AggregatedTrade]:
        out = list(self._buffer.values())
        self._buffer.clear()
        return out
