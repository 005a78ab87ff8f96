from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Protocol

from .aggregator import TradeAggregator, aggregate_key
from .config import Settings
from .dedupe import SeenTradeTracker, filter_eligible
from .executor import CopyExecutor, ExchangeClient, Outcome
from .formatting import describe_trade, short_address
from .polymarket_data import PolymarketDataClient
from .retries import RetryTracker
from .sizing import select_ratio_policy
from .types import AccountSnapshot, AggregatedTrade, Position, RunState, TradeEvent

logger = logging.getLogger(__name__)


class ActivitySource(Protocol):
    async def fetch_activity(self, user: str, limit: int = 100) -> list[TradeEvent]:
        ...

    async def fetch_positions(self, user: str) -> list[Position]:
        ...

    async def fetch_balance(self, user: str) -> float:
        ...

    async def close(self) -> None:
        ...


@dataclass
class Metrics:
    polls: int = 0
    polls_failed: int = 0
    events_seen: int = 0
    new_events: int = 0
    aggregates: int = 0
    orders_submitted: int = 0
    orders_failed: int = 0
    trades_completed: int = 0
    trades_aborted: int = 0
    trades_exhausted: int = 0


class CopyTradeService:
    def __init__(
        self,
        settings: Settings,
        exchange: ExchangeClient,
        data: ActivitySource | None = None,
    ) -> None:
        self.settings = settings
        self.metrics = Metrics()
        self.state = RunState.PRIMING
        self.tracker = SeenTradeTracker()
        self.retries = RetryTracker(settings.retry_limit)
        self.exchange = exchange
        self.data: ActivitySource = data or PolymarketDataClient(
            api_base=settings.data_api_base,
            rpc_url=settings.polygon_rpc_url,
            usdc_contract=settings.usdc_contract,
        )
        self.executor = self._build_executor(None, None)

    def _build_executor(self, follower_start: float | None, target_start: float | None) -> CopyExecutor:
        return CopyExecutor(
            self.exchange,
            self.retries,
            select_ratio_policy(follower_start, target_start),
            ratio_amplification=self.settings.ratio_amplification,
            slippage_tolerance=self.settings.slippage_tolerance,
            min_order_notional=self.settings.min_order_notional,
        )

    async def run(self) -> None:
        await self.capture_starting_balances()
        logger.info("Copy bot running. Poll interval: %.1fs", self.settings.poll_interval_seconds)
        health_task = asyncio.create_task(self._health_loop())
        try:
            while True:
                await self.run_cycle()
                await asyncio.sleep(self.settings.poll_interval_seconds)
        finally:
            health_task.cancel()
            await asyncio.gather(health_task, return_exceptions=True)
            await self.data.close()

    async def capture_starting_balances(self) -> None:
        target = self.settings.target_address
        follower = self.settings.follower_address
        try:
            target_start = await self.data.fetch_balance(target)
            follower_start = await self.data.fetch_balance(follower)
        except Exception as exc:
            logger.warning("Could not read starting balances (%s); sizing from current balances", exc)
            target_start = follower_start = None
        else:
            logger.info("Target wallet %s balance: %.2f USDC", short_address(target), target_start)
            logger.info("Follower wallet %s balance: %.2f USDC", short_address(follower), follower_start)

        self.executor = self._build_executor(follower_start, target_start)
        logger.info("Copy ratio policy: %s", self.executor.ratio_policy.name)

    async def run_cycle(self) -> None:
        self.metrics.polls += 1
        try:
            await self._poll_once()
        except Exception:
            self.metrics.polls_failed += 1
            logger.exception("Poll cycle failed")

    async def _poll_once(self) -> None:
        events = await self._fetch_eligible()

        if self.state is RunState.PRIMING:
            primed = self.tracker.prime(events)
            self.state = RunState.STEADY
            logger.info("Primed with %d recent trades. Only new trades will be copied.", primed)
            return

        new_events = self.tracker.filter_new(events)
        if not new_events:
            return

        logger.info("%d new trade event(s) detected. Aggregating...", len(new_events))
        trades = await self._collect_batch(new_events)
        logger.info("Aggregated into %d trade(s). Executing...", len(trades))
        for trade in trades:
            await self._copy_trade(trade)

    async def _fetch_eligible(self) -> list[TradeEvent]:
        events = await self.data.fetch_activity(self.settings.target_address, limit=self.settings.activity_limit)
        eligible = filter_eligible(events, now=time.time(), max_age_hours=self.settings.max_age_hours)
        self.metrics.events_seen += len(eligible)
        return eligible

    async def _collect_batch(self, first_events: list[TradeEvent]) -> list[AggregatedTrade]:
        aggregator = TradeAggregator()
        for event in first_events:
            aggregator.add(event)
        self.metrics.new_events += len(first_events)

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.settings.batch_window_seconds
        while loop.time() < deadline:
            await asyncio.sleep(self.settings.batch_poll_seconds)
            try:
                more = self.tracker.filter_new(await self._fetch_eligible())
            except Exception as exc:
                # Events already taken stay in the aggregator; keep the window open.
                logger.warning("Feed poll inside batch window failed: %s", exc)
                continue
            for event in more:
                aggregator.add(event)
            self.metrics.new_events += len(more)

        trades = aggregator.flush()
        trades.sort(key=lambda t: t.first_timestamp)
        self.metrics.aggregates += len(trades)
        return trades

    async def _copy_trade(self, trade: AggregatedTrade) -> None:
        key = aggregate_key(trade)
        if self.retries.is_exhausted(key):
            logger.info("Skipping trade %s: retry limit reached", key)
            return

        logger.info("Aggregated trade: %s", describe_trade(trade))
        try:
            snapshot = await self._account_snapshot()
            report = await self.executor.execute(trade, snapshot)
        except Exception as exc:
            attempts = self.retries.record_attempt(key)
            logger.exception(
                "Failed copying trade %s (attempt %d/%d): %s", key, attempts, self.retries.limit, exc
            )
            return

        self.metrics.orders_submitted += report.orders_submitted
        self.metrics.orders_failed += report.orders_failed
        if report.outcome is Outcome.COMPLETED:
            self.metrics.trades_completed += 1
        elif report.outcome is Outcome.EXHAUSTED:
            self.metrics.trades_exhausted += 1
        elif report.outcome in (Outcome.ABORTED, Outcome.UNSUPPORTED):
            self.metrics.trades_aborted += 1
        logger.info(
            "Trade %s %s via %s: filled %.4f of %.4f (%s)",
            key,
            report.outcome.value,
            report.strategy.value,
            report.filled,
            report.requested,
            report.reason or "ok",
        )

    async def _account_snapshot(self) -> AccountSnapshot:
        follower = self.settings.follower_address
        target = self.settings.target_address
        follower_positions = await self.data.fetch_positions(follower)
        target_positions = await self.data.fetch_positions(target)
        follower_balance = await self.data.fetch_balance(follower)
        target_balance = await self.data.fetch_balance(target)
        logger.info("Balances: follower=%.2f target=%.2f", follower_balance, target_balance)
        return AccountSnapshot(
            follower_balance=follower_balance,
            target_balance=target_balance,
            follower_positions=follower_positions,
            target_positions=target_positions,
        )

    async def _health_loop(self) -> None:
        while True:
            await asyncio.sleep(self.settings.health_log_interval_seconds)
            logger.info(
                (
                    "health state=%s polls=%d polls_failed=%d events_seen=%d new_events=%d "
                    "aggregates=%d orders_submitted=%d orders_failed=%d "
                    "completed=%d aborted=%d exhausted=%d"
                ),
                self.state.value,
                self.metrics.polls,
                self.metrics.polls_failed,
                self.metrics.events_seen,
                self.metrics.new_events,
                self.metrics.aggregates,
                self.metrics.orders_submitted,
                self.metrics.orders_failed,
                self.metrics.trades_completed,
                self.metrics.trades_aborted,
                self.metrics.trades_exhausted,
            )
