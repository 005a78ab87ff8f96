from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

BUY = "BUY"
SELL = "SELL"


class FillType(str, Enum):
    FOK = "FOK"
    FAK = "FAK"
    GTC = "GTC"


class RunState(str, Enum):
    PRIMING = "priming"
    STEADY = "steady"


@dataclass(frozen=True)
class TradeEvent:
    transaction_hash: str | None
    timestamp: int
    condition_id: str
    asset: str
    side: str
    size: float
    price: float
    usdc_size: float
    title: str | None
    outcome: str | None
    type: str


@dataclass(frozen=True)
class AggregatedTrade(TradeEvent):
    batch_count: int
    first_timestamp: int
    last_timestamp: int


@dataclass(frozen=True)
class Position:
    condition_id: str
    asset: str
    size: float
    outcome: str | None = None
    title: str | None = None


@dataclass(frozen=True)
class OrderBookLevel:
    price: float
    size: float


@dataclass(frozen=True)
class OrderBook:
    asset: str
    bids: list[OrderBookLevel]
    asks: list[OrderBookLevel]

    def best_bid(self) -> OrderBookLevel | None:
        if not self.bids:
            return None
        return max(self.bids, key=lambda level: level.price)

    def best_ask(self) -> OrderBookLevel | None:
        if not self.asks:
            return None
        return min(self.asks, key=lambda level: level.price)


@dataclass(frozen=True)
class OrderRequest:
    side: str
    asset: str
    amount: float
    price: float
    fee_rate_bps: int
    fill_type: FillType


@dataclass(frozen=True)
class OrderResult:
    success: bool
    filled: float | None = None
    order_id: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class AccountSnapshot:
    follower_balance: float
    target_balance: float
    follower_positions: list[Position]
    target_positions: list[Position]
