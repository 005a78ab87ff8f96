from __future__ import annotations

import asyncio
import logging

from .clob import ClobExchange
from .config import load_settings
from .service import CopyTradeService


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def _main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)
    exchange = await ClobExchange.connect(
        host=settings.clob_host,
        private_key=settings.private_key,
        chain_id=settings.chain_id,
        funder=settings.follower_address,
        signature_type=settings.signature_type,
    )
    service = CopyTradeService(settings, exchange=exchange)
    await service.run()


def main() -> None:
    try:
        asyncio.run(_main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
