from __future__ import annotations

import asyncio
import logging
from typing import Any

from py_clob_client.client import ClobClient
from py_clob_client.clob_types import MarketOrderArgs, OrderArgs, OrderType

from .formatting import short_address
from .types import FillType, OrderBook, OrderBookLevel, OrderRequest, OrderResult

logger = logging.getLogger(__name__)

_ORDER_TYPES = {
    FillType.FOK: OrderType.FOK,
    FillType.FAK: OrderType.FAK,
    FillType.GTC: OrderType.GTC,
}


class ClobExchange:
    """Order-book reads and order submission through py-clob-client.

    The SDK is synchronous, so every call runs in a worker thread to keep the
    poll loop responsive.
    """

    def __init__(self, client: ClobClient) -> None:
        self._client = client

    @classmethod
    async def connect(
        cls,
        host: str,
        private_key: str,
        chain_id: int,
        funder: str,
        signature_type: int | None = None,
    ) -> ClobExchange:
        client = ClobClient(
            host,
            key=private_key,
            chain_id=chain_id,
            signature_type=signature_type,
            funder=funder,
        )
        creds = await asyncio.to_thread(client.create_or_derive_api_creds)
        client.set_api_creds(creds)
        logger.info("CLOB client ready host=%s funder=%s", host, short_address(funder))
        return cls(client)

    async def get_order_book(self, asset: str) -> OrderBook:
        summary = await asyncio.to_thread(self._client.get_order_book, asset)
        return OrderBook(
            asset=asset,
            bids=parse_levels(getattr(summary, "bids", None)),
            asks=parse_levels(getattr(summary, "asks", None)),
        )

    async def submit_order(self, order: OrderRequest) -> OrderResult:
        signed = await asyncio.to_thread(self._sign, order)
        response = await asyncio.to_thread(self._client.post_order, signed, _ORDER_TYPES[order.fill_type])
        return parse_order_response(response)

    def _sign(self, order: OrderRequest) -> Any:
        if order.fill_type is FillType.GTC:
            # Resting limit order: size is in shares for either side.
            args = OrderArgs(
                token_id=order.asset,
                price=order.price,
                size=order.amount,
                side=order.side,
                fee_rate_bps=order.fee_rate_bps,
            )
            return self._client.create_order(args)

        args = MarketOrderArgs(
            token_id=order.asset,
            amount=order.amount,
            side=order.side,
            price=order.price,
            fee_rate_bps=order.fee_rate_bps,
            order_type=_ORDER_TYPES[order.fill_type],
        )
        return self._client.create_market_order(args)


def parse_levels(raw_levels: Any) -> list[OrderBookLevel]:
    levels: list[OrderBookLevel] = []
    if not raw_levels:
        return levels
    for level in raw_levels:
        if isinstance(level, dict):
            raw_price, raw_size = level.get("price"), level.get("size")
        else:
            raw_price, raw_size = getattr(level, "price", None), getattr(level, "size", None)
        try:
            price = float(raw_price)
            size = float(raw_size)
        except (TypeError, ValueError):
            continue
        if price <= 0 or size <= 0:
            continue
        levels.append(OrderBookLevel(price=price, size=size))
    return levels


def parse_order_response(response: Any) -> OrderResult:
    if not isinstance(response, dict):
        return OrderResult(success=False, error=f"Unexpected order response: {response!r}")

    success = response.get("success") is True
    error = str(response.get("errorMsg") or "").strip() or None
    order_id = str(response.get("orderID") or "").strip() or None

    # makingAmount is what we gave up: USDC on a buy, shares on a sell.
    # A resting order has not filled yet but owns the whole amount.
    filled: float | None = None
    raw_making = response.get("makingAmount")
    status = str(response.get("status") or "").lower()
    if status != "live" and raw_making not in (None, ""):
        try:
            filled = float(raw_making)
        except (TypeError, ValueError):
            filled = None

    return OrderResult(success=success, filled=filled, order_id=order_id, error=error)
