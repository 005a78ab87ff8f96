import pytest

from polymarket_copy_bot.fees import fee_rate_bps_for_title
from polymarket_copy_bot.sizing import (
    CurrentBalanceRatio,
    StartingBalanceRatio,
    buy_notional,
    floor_to,
    select_ratio_policy,
    sell_shares,
)
from polymarket_copy_bot.types import Position, TradeEvent


def _trade(side: str = "BUY", size: float = 50.0, usdc_size: float = 100.0) -> TradeEvent:
    return TradeEvent(
        transaction_hash="0x1",
        timestamp=1730000000,
        condition_id="0xcond",
        asset="111",
        side=side,
        size=size,
        price=0.4,
        usdc_size=usdc_size,
        title=None,
        outcome=None,
        type="TRADE",
    )


def test_floor_to_never_rounds_up() -> None:
    assert floor_to(12.3456, 2) == 12.34
    assert floor_to(12.3456, 4) == 12.3456
    assert floor_to(0.6789, 4) == 0.6789
    assert floor_to(0.29, 2) == 0.29
    assert floor_to(1.99999, 2) == 1.99


def test_select_ratio_policy_prefers_starting_balances() -> None:
    assert select_ratio_policy(500.0, 5000.0) == StartingBalanceRatio(500.0, 5000.0)
    assert isinstance(select_ratio_policy(None, 5000.0), CurrentBalanceRatio)
    assert isinstance(select_ratio_policy(500.0, 0.0), CurrentBalanceRatio)


def test_current_balance_ratio_adds_trade_back() -> None:
    policy = CurrentBalanceRatio()
    assert policy.ratio(100.0, 900.0, 100.0) == pytest.approx(0.1)
    assert policy.ratio(100.0, 0.0, 0.0) == 0.0


def test_buy_notional_amplifies_and_caps_at_balance() -> None:
    policy = StartingBalanceRatio(500.0, 5000.0)
    assert buy_notional(_trade(), policy, 1000.0, 5000.0, 30.0) == pytest.approx(300.0)
    assert buy_notional(_trade(), policy, 120.0, 5000.0, 30.0) == pytest.approx(120.0)


def test_sell_shares_proportional_to_target_reduction() -> None:
    follower = Position(condition_id="0xcond", asset="111", size=100.0)
    target = Position(condition_id="0xcond", asset="111", size=150.0)

    assert sell_shares(_trade(side="SELL"), follower, target) == pytest.approx(25.0)
    assert sell_shares(_trade(side="SELL"), follower, None) == 100.0
    assert sell_shares(_trade(side="SELL"), None, target) == 0.0


def test_fee_rate_for_fifteen_minute_windows() -> None:
    assert fee_rate_bps_for_title("Bitcoin Up or Down - October 19, 10:00PM-10:15PM ET") == 1000
    assert fee_rate_bps_for_title("Ethereum Up or Down - 11:45 pm - 12:00 am ET") == 1000
    assert fee_rate_bps_for_title("Bitcoin Up or Down - 10:00AM-11:00AM ET") == 0
    assert fee_rate_bps_for_title("Will X happen?") == 0
    assert fee_rate_bps_for_title(None) == 0
