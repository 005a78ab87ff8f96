from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from .aggregator import aggregate_key
from .fees import fee_rate_bps_for_title
from .formatting import describe_order, short_asset
from .retries import RetryTracker
from .sizing import (
    PRICE_DECIMALS,
    SHARE_DECIMALS,
    USDC_DECIMALS,
    RatioPolicy,
    buy_notional,
    floor_to,
    sell_shares,
)
from .types import (
    BUY,
    SELL,
    AccountSnapshot,
    AggregatedTrade,
    FillType,
    OrderBook,
    OrderRequest,
    OrderResult,
    Position,
)

logger = logging.getLogger(__name__)


class ExchangeClient(Protocol):
    async def get_order_book(self, asset: str) -> OrderBook:
        ...

    async def submit_order(self, order: OrderRequest) -> OrderResult:
        ...


class Strategy(str, Enum):
    BUY = "buy"
    SELL = "sell"
    MERGE = "merge"
    UNSUPPORTED = "unsupported"


class Outcome(str, Enum):
    COMPLETED = "completed"
    ABORTED = "aborted"
    EXHAUSTED = "exhausted"
    SKIPPED = "skipped"
    UNSUPPORTED = "unsupported"


@dataclass
class ExecutionReport:
    strategy: Strategy
    outcome: Outcome
    requested: float = 0.0
    filled: float = 0.0
    orders_submitted: int = 0
    orders_failed: int = 0
    reason: str | None = None


@dataclass(frozen=True)
class _Leg:
    """What an execution loop trades and with which fill type."""

    side: str
    asset: str
    fill_type: FillType


def find_position(
    positions: list[Position], condition_id: str, asset: str | None = None
) -> Position | None:
    for position in positions:
        if position.condition_id != condition_id:
            continue
        if asset is not None and position.asset != asset:
            continue
        return position
    return None


def find_opposing_position(positions: list[Position], trade: AggregatedTrade) -> Position | None:
    for position in positions:
        if (
            position.condition_id == trade.condition_id
            and position.asset != trade.asset
            and position.size > 0
        ):
            return position
    return None


def select_strategy(trade: AggregatedTrade, follower_positions: list[Position]) -> Strategy:
    if trade.side == BUY:
        if find_opposing_position(follower_positions, trade) is not None:
            return Strategy.MERGE
        return Strategy.BUY
    if trade.side == SELL:
        return Strategy.SELL
    return Strategy.UNSUPPORTED


class CopyExecutor:
    def __init__(
        self,
        exchange: ExchangeClient,
        retries: RetryTracker,
        ratio_policy: RatioPolicy,
        *,
        ratio_amplification: float = 30.0,
        slippage_tolerance: float = 0.03,
        min_order_notional: float = 1.0,
        fee_policy: Callable[[str | None], int] = fee_rate_bps_for_title,
    ) -> None:
        self.exchange = exchange
        self.retries = retries
        self.ratio_policy = ratio_policy
        self.ratio_amplification = ratio_amplification
        self.slippage_tolerance = slippage_tolerance
        self.min_order_notional = min_order_notional
        self.fee_policy = fee_policy

    async def execute(self, trade: AggregatedTrade, snapshot: AccountSnapshot) -> ExecutionReport:
        key = aggregate_key(trade)
        strategy = select_strategy(trade, snapshot.follower_positions)

        if self.retries.is_exhausted(key):
            logger.info("Skipping trade %s: retry limit reached", key)
            return ExecutionReport(strategy=strategy, outcome=Outcome.SKIPPED, reason="retry limit reached")

        if strategy is Strategy.BUY:
            report = await self._buy(trade, key, snapshot)
        elif strategy is Strategy.SELL:
            report = await self._sell(trade, key, snapshot)
        elif strategy is Strategy.MERGE:
            report = await self._merge(trade, key, snapshot)
        else:
            logger.warning("Unsupported trade side %r for %s; not copying", trade.side, key)
            report = ExecutionReport(strategy=strategy, outcome=Outcome.UNSUPPORTED, reason=f"side {trade.side!r}")

        self.retries.mark_done(key)
        return report

    async def _buy(self, trade: AggregatedTrade, key: str, snapshot: AccountSnapshot) -> ExecutionReport:
        remaining = buy_notional(
            trade,
            self.ratio_policy,
            snapshot.follower_balance,
            snapshot.target_balance,
            self.ratio_amplification,
        )
        logger.info(
            "Buy strategy (%s ratio): target notional %.2f USDC of %.2f",
            self.ratio_policy.name,
            remaining,
            trade.usdc_size,
        )
        leg = _Leg(side=BUY, asset=trade.asset, fill_type=FillType.FAK)
        return await self._fill(trade, key, Strategy.BUY, leg, remaining)

    async def _sell(self, trade: AggregatedTrade, key: str, snapshot: AccountSnapshot) -> ExecutionReport:
        follower_position = find_position(snapshot.follower_positions, trade.condition_id, trade.asset)
        if follower_position is None or follower_position.size <= 0:
            logger.info("No position to sell for %s", short_asset(trade.asset))
            self.retries.mark_done(key)
            return ExecutionReport(strategy=Strategy.SELL, outcome=Outcome.ABORTED, reason="no position to sell")

        target_position = find_position(snapshot.target_positions, trade.condition_id, trade.asset)
        remaining = sell_shares(trade, follower_position, target_position)
        logger.info(
            "Sell strategy: %.4f of %.4f shares (target remaining=%s)",
            remaining,
            follower_position.size,
            "none" if target_position is None else f"{target_position.size:.4f}",
        )
        leg = _Leg(side=SELL, asset=trade.asset, fill_type=FillType.FOK)
        return await self._fill(trade, key, Strategy.SELL, leg, remaining)

    async def _merge(self, trade: AggregatedTrade, key: str, snapshot: AccountSnapshot) -> ExecutionReport:
        opposing = find_opposing_position(snapshot.follower_positions, trade)
        if opposing is None:
            self.retries.mark_done(key)
            return ExecutionReport(strategy=Strategy.MERGE, outcome=Outcome.ABORTED, reason="no opposing position")

        logger.info(
            "Merge strategy: target rotated into %s, selling %.4f shares of %s",
            short_asset(trade.asset),
            opposing.size,
            short_asset(opposing.asset),
        )
        leg = _Leg(side=SELL, asset=opposing.asset, fill_type=FillType.GTC)
        return await self._fill(trade, key, Strategy.MERGE, leg, opposing.size)

    async def _fill(
        self,
        trade: AggregatedTrade,
        key: str,
        strategy: Strategy,
        leg: _Leg,
        remaining: float,
    ) -> ExecutionReport:
        remaining = floor_to(remaining, USDC_DECIMALS if leg.side == BUY else SHARE_DECIMALS)
        report = ExecutionReport(strategy=strategy, outcome=Outcome.COMPLETED, requested=remaining)
        if remaining <= 0:
            self.retries.mark_done(key)
            report.outcome = Outcome.ABORTED
            report.reason = "nothing to copy"
            return report

        fee_rate_bps = self.fee_policy(trade.title)
        failures = 0

        while remaining > 0 and failures < self.retries.limit and not self.retries.is_exhausted(key):
            try:
                book = await self.exchange.get_order_book(leg.asset)
                order, abort_reason = self._price_order(trade, leg, book, remaining, fee_rate_bps)
                if order is None:
                    logger.info("Stopping %s: %s", key, abort_reason)
                    self.retries.mark_done(key)
                    # A structural stop after partial fills still leaves a copied trade.
                    report.outcome = Outcome.COMPLETED if report.filled > 0 else Outcome.ABORTED
                    report.reason = abort_reason
                    return report

                logger.info("Submitting %s", describe_order(order))
                report.orders_submitted += 1
                result = await self.exchange.submit_order(order)
            except Exception as exc:
                failures += 1
                report.orders_failed += 1
                attempts = self.retries.record_attempt(key)
                logger.warning(
                    "Order attempt failed for %s (%d/%d): %s", key, attempts, self.retries.limit, exc
                )
                continue

            filled = result.filled if result.filled is not None else order.amount
            if result.success and filled > 0:
                failures = 0
                remaining -= filled
                report.filled += filled
                logger.info("Filled %g (order_id=%s), remaining %.4f", filled, result.order_id, max(remaining, 0.0))
            else:
                failures += 1
                report.orders_failed += 1
                attempts = self.retries.record_attempt(key)
                logger.warning(
                    "Order rejected for %s (%d/%d): %s",
                    key,
                    attempts,
                    self.retries.limit,
                    result.error or "no fill",
                )

        if remaining > 0:
            self.retries.mark_done(key)
            report.outcome = Outcome.EXHAUSTED
            report.reason = "retry limit reached"
            logger.warning("Giving up on %s with %.4f unfilled", key, remaining)
        return report

    def _price_order(
        self,
        trade: AggregatedTrade,
        leg: _Leg,
        book: OrderBook,
        remaining: float,
        fee_rate_bps: int,
    ) -> tuple[OrderRequest | None, str | None]:
        if leg.side == BUY:
            level = book.best_ask()
            if level is None:
                return None, "no asks"
            if level.price - self.slippage_tolerance > trade.price:
                return None, f"best ask {level.price:g} too far above trade price {trade.price:.4f}"
            amount = floor_to(min(remaining, level.size * level.price), USDC_DECIMALS)
            if amount < self.min_order_notional:
                return None, f"${amount:.2f} below ${self.min_order_notional:.2f} minimum"
        else:
            level = book.best_bid()
            if level is None:
                return None, "no bids"
            amount = floor_to(min(remaining, level.size), SHARE_DECIMALS)
            if amount <= 0:
                return None, "sell size rounds to zero"

        order = OrderRequest(
            side=leg.side,
            asset=leg.asset,
            amount=amount,
            price=floor_to(level.price, PRICE_DECIMALS),
            fee_rate_bps=fee_rate_bps,
            fill_type=leg.fill_type,
        )
        return order, None
