from __future__ import annotations

import math
from typing import Any

import httpx

from .types import Position, TradeEvent

USDC_DECIMALS = 6
BALANCE_OF_SELECTOR = "0x70a08231"


class PolymarketDataClient:
    """Read-only account data: activity and positions from the Data API, USDC from Polygon."""

    def __init__(
        self,
        api_base: str,
        rpc_url: str,
        usdc_contract: str,
        timeout: float = 15.0,
    ) -> None:
        self.api_base = api_base.rstrip("/")
        self.rpc_url = rpc_url
        self.usdc_contract = usdc_contract
        self._client = httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch_activity(self, user: str, limit: int = 100) -> list[TradeEvent]:
        data = await self._get("/activity", params={"user": user, "limit": limit, "offset": 0})
        return parse_activity(data)

    async def fetch_positions(self, user: str) -> list[Position]:
        data = await self._get("/positions", params={"user": user})
        return parse_positions(data)

    async def fetch_balance(self, user: str) -> float:
        payload = {
            "jsonrpc": "2.0",
            "method": "eth_call",
            "params": [
                {"to": self.usdc_contract, "data": balance_of_calldata(user)},
                "latest",
            ],
            "id": 1,
        }
        resp = await self._client.post(self.rpc_url, json=payload)
        resp.raise_for_status()
        return parse_balance_result(resp.json())

    async def _get(self, path: str, params: dict[str, Any]) -> Any:
        resp = await self._client.get(f"{self.api_base}{path}", params=params)
        resp.raise_for_status()
        return resp.json()


def balance_of_calldata(address: str) -> str:
    account = address.strip().lower().removeprefix("0x")
    return f"{BALANCE_OF_SELECTOR}{account.zfill(64)}"


def parse_balance_result(body: Any) -> float:
    if not isinstance(body, dict):
        raise RuntimeError(f"Unexpected RPC response: {body!r}")
    if body.get("error"):
        raise RuntimeError(f"RPC error: {body['error']}")
    raw = body.get("result")
    if not isinstance(raw, str) or not raw.startswith("0x"):
        raise RuntimeError(f"Unexpected balanceOf result: {raw!r}")
    if raw == "0x":
        return 0.0
    return int(raw, 16) / 10**USDC_DECIMALS


def parse_activity(data: Any) -> list[TradeEvent]:
    records = _records(data)
    events: list[TradeEvent] = []
    for record in records:
        event = _normalize_activity(record)
        if event is not None:
            events.append(event)
    return events


def parse_positions(data: Any) -> list[Position]:
    positions: list[Position] = []
    for record in _records(data):
        position = _normalize_position(record)
        if position is not None:
            positions.append(position)
    return positions


def _records(data: Any) -> list[dict[str, Any]]:
    if isinstance(data, dict) and isinstance(data.get("data"), list):
        data = data["data"]
    if not isinstance(data, list):
        return []
    return [r for r in data if isinstance(r, dict)]


def _normalize_activity(record: dict[str, Any]) -> TradeEvent | None:
    asset = _string_or_none(record.get("asset"))
    if asset is None:
        return None

    raw_ts = record.get("timestamp", 0)
    try:
        timestamp = int(float(raw_ts or 0))
    except (TypeError, ValueError):
        return None

    if timestamp > 10**12:
        timestamp //= 1000

    return TradeEvent(
        transaction_hash=_string_or_none(record.get("transactionHash")),
        timestamp=timestamp,
        condition_id=str(record.get("conditionId") or "").strip(),
        asset=asset,
        side=str(record.get("side") or "").strip().upper(),
        size=_float_or_zero(record.get("size")),
        price=_float_or_zero(record.get("price")),
        usdc_size=_float_or_zero(record.get("usdcSize")),
        title=_string_or_none(record.get("title")),
        outcome=_string_or_none(record.get("outcome")),
        type=str(record.get("type") or "").strip().upper(),
    )


def _normalize_position(record: dict[str, Any]) -> Position | None:
    asset = _string_or_none(record.get("asset"))
    condition_id = _string_or_none(record.get("conditionId"))
    if asset is None or condition_id is None:
        return None
    return Position(
        condition_id=condition_id,
        asset=asset,
        size=_float_or_zero(record.get("size")),
        outcome=_string_or_none(record.get("outcome")),
        title=_string_or_none(record.get("title")),
    )


def _float_or_zero(value: Any) -> float:
    try:
        number = float(value or 0)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _string_or_none(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
