from polymarket_copy_bot.formatting import (
    describe_order,
    describe_trade,
    short_address,
    short_asset,
    side_to_text,
    trade_time_iso,
)
from polymarket_copy_bot.types import AggregatedTrade, FillType, OrderRequest


def test_side_to_text() -> None:
    assert side_to_text("BUY") == "Bought"
    assert side_to_text("SELL") == "Sold"
    assert side_to_text("OTHER") == "Traded"


def test_short_address() -> None:
    assert short_address("0x1234567890abcdef") == "0x1234...cdef"
    assert short_address(None) == "Unknown"


def test_trade_time_iso() -> None:
    assert trade_time_iso(1730000000) == "2024-10-27T03:33:20Z"


def test_short_asset() -> None:
    assert short_asset("123") == "123"
    assert short_asset("71321045679252212594626385532706912750332728571942532289631379312455583992563") == (
        "71321045...992563"
    )


def test_describe_trade_contains_aggregate_details() -> None:
    trade = AggregatedTrade(
        transaction_hash="0xabc",
        timestamp=1730000000,
        condition_id="0xcond",
        asset="111",
        side="BUY",
        size=40.0,
        price=0.525,
        usdc_size=21.0,
        title="Will X happen?",
        outcome="Yes",
        type="TRADE",
        batch_count=3,
        first_timestamp=1730000000,
        last_timestamp=1730000002,
    )

    text = describe_trade(trade)

    assert text.startswith("Bought Yes x3")
    assert "usdc=21.00" in text
    assert "avg_price=0.5250" in text
    assert "'Will X happen?'" in text


def test_describe_order() -> None:
    order = OrderRequest(
        side="SELL",
        asset="111",
        amount=12.5,
        price=0.44,
        fee_rate_bps=1000,
        fill_type=FillType.FOK,
    )

    assert describe_order(order) == "SELL 12.5 shares @ 0.44 asset=111 fee_bps=1000 type=FOK"
