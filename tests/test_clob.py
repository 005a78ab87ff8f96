from types import SimpleNamespace

from polymarket_copy_bot.clob import parse_levels, parse_order_response


def test_parse_levels_accepts_sdk_objects_and_dicts() -> None:
    raw = [
        SimpleNamespace(price="0.52", size="100"),
        {"price": "0.51", "size": "40"},
        {"price": "0", "size": "10"},
        {"price": "bad", "size": "10"},
    ]

    levels = parse_levels(raw)

    assert [(lv.price, lv.size) for lv in levels] == [(0.52, 100.0), (0.51, 40.0)]
    assert parse_levels(None) == []


def test_parse_order_response_reads_making_amount() -> None:
    result = parse_order_response(
        {
            "success": True,
            "errorMsg": "",
            "orderID": "0xorder",
            "status": "matched",
            "makingAmount": "24.99",
            "takingAmount": "49.98",
        }
    )

    assert result.success is True
    assert result.filled == 24.99
    assert result.order_id == "0xorder"
    assert result.error is None


def test_parse_order_response_resting_order_has_no_fill_amount() -> None:
    result = parse_order_response({"success": True, "status": "live", "makingAmount": "0", "orderID": "1"})

    assert result.success is True
    assert result.filled is None


def test_parse_order_response_failure() -> None:
    result = parse_order_response({"success": False, "errorMsg": "not enough balance"})
    assert result.success is False
    assert result.error == "not enough balance"

    assert parse_order_response(None).success is False
