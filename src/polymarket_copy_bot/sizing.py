from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal
from typing import Protocol

from .types import Position, TradeEvent

USDC_DECIMALS = 2
SHARE_DECIMALS = 4
PRICE_DECIMALS = 4


def floor_to(value: float, places: int) -> float:
    """Round toward zero at ``places`` decimals without float drift (0.29 stays 0.29)."""
    if not math.isfinite(value):
        raise ValueError(f"cannot floor non-finite value {value!r}")
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_DOWN))


class RatioPolicy(Protocol):
    name: str

    def ratio(self, follower_balance: float, target_balance: float, trade_notional: float) -> float:
        ...


@dataclass(frozen=True)
class StartingBalanceRatio:
    follower_start: float
    target_start: float
    name: str = "starting-balance"

    def ratio(self, follower_balance: float, target_balance: float, trade_notional: float) -> float:
        return self.follower_start / self.target_start


@dataclass(frozen=True)
class CurrentBalanceRatio:
    name: str = "current-balance"

    def ratio(self, follower_balance: float, target_balance: float, trade_notional: float) -> float:
        # The target's balance already reflects this buy, so add it back.
        denominator = target_balance + trade_notional
        if denominator <= 0:
            return 0.0
        return follower_balance / denominator


def _usable(value: float) -> bool:
    return math.isfinite(value) and value > 0


def select_ratio_policy(
    follower_start: float | None, target_start: float | None
) -> RatioPolicy:
    if follower_start is None or target_start is None:
        return CurrentBalanceRatio()
    if _usable(follower_start) and _usable(target_start):
        return StartingBalanceRatio(follower_start, target_start)
    return CurrentBalanceRatio()


def buy_notional(
    trade: TradeEvent,
    policy: RatioPolicy,
    follower_balance: float,
    target_balance: float,
    amplification: float,
) -> float:
    ratio = policy.ratio(follower_balance, target_balance, trade.usdc_size) * amplification
    return max(0.0, min(trade.usdc_size * ratio, follower_balance))


def sell_shares(
    trade: TradeEvent,
    follower_position: Position | None,
    target_position: Position | None,
) -> float:
    """Shares to sell so the follower drops the same fraction the target did.

    ``target_position`` is read after the target's sale, so the fraction sold
    is ``trade.size / (remaining + trade.size)``.
    """
    if follower_position is None:
        return 0.0
    if target_position is None:
        return follower_position.size
    denominator = target_position.size + trade.size
    if denominator <= 0:
        return follower_position.size
    return follower_position.size * (trade.size / denominator)
