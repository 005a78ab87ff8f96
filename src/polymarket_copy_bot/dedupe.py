from __future__ import annotations

from collections.abc import Iterable

from .types import TradeEvent

SECONDS_PER_HOUR = 3600


def trade_key(event: TradeEvent) -> str:
    if event.transaction_hash:
        return event.transaction_hash
    return (
        f"{event.timestamp}|{event.condition_id}|{event.side}|"
        f"{event.size}|{event.price}|{event.asset}"
    )


def filter_eligible(
    events: Iterable[TradeEvent], now: float, max_age_hours: float
) -> list[TradeEvent]:
    """Keep trades younger than the age horizon, oldest first."""
    horizon = max_age_hours * SECONDS_PER_HOUR
    eligible = [
        e for e in events if e.type == "TRADE" and e.timestamp + horizon > now
    ]
    eligible.sort(key=lambda e: e.timestamp)
    return eligible


class SeenTradeTracker:
    def __init__(self) -> None:
        self._seen: set[str] = set()

    def __len__(self) -> int:
        return len(self._seen)

    def __contains__(self, key: object) -> bool:
        return key in self._seen

    def is_new(self, key: str) -> bool:
        if key in self._seen:
            return False
        self._seen.add(key)
        return True

    def prime(self, events: Iterable[TradeEvent]) -> int:
        count = 0
        for event in events:
            self._seen.add(trade_key(event))
            count += 1
        return count

    def filter_new(self, events: Iterable[TradeEvent]) -> list[TradeEvent]:
        return [e for e in events if self.is_new(trade_key(e))]
