"""Pyth Network price oracle (Hermes HTTP API)."""
from __future__ import annotations

import asyncio
import logging
import ssl
import time
from collections.abc import Callable
from typing import Any

import aiohttp
import certifi

from ..config import PythConfig
from ..errors import OracleError
from ..models import PriceQuote

logger = logging.getLogger(__name__)


def _normalize_feed_id(feed_id: str) -> str:
    feed_id = feed_id.strip().lower()
    return feed_id[2:] if feed_id.startswith("0x") else feed_id


class PythOracle:
    """Fetch fresh prices from Pyth Network, rejecting stale quotes."""

    def __init__(
        self, config: PythConfig, clock: Callable[[], float] = time.time
    ) -> None:
        self.hermes_url = config.hermes_url
        self.timeout = config.timeout
        self.price_feeds = {
            asset: _normalize_feed_id(feed_id) for asset, feed_id in config.feeds.items()
        }
        self._clock = clock

    async def get_price(self, asset: str, max_age: int) -> PriceQuote:
        quotes = await self.get_prices([asset], max_age)
        return quotes[asset]

    async def get_prices(
        self, assets: list[str], max_age: int
    ) -> dict[str, PriceQuote]:
        """Fetch one quote per asset in a single Hermes request.

        Raises:
            OracleError: unknown feed, failed request, malformed or stale quote.
        """
        unknown = [asset for asset in assets if asset not in self.price_feeds]
        if unknown:
            raise OracleError(
                f"no price feed configured for {', '.join(unknown)}",
                cause=OracleError.UNKNOWN_FEED,
            )
        if not assets:
            return {}

        feed_ids = sorted({self.price_feeds[asset] for asset in assets})
        parsed = await self._fetch_parsed(feed_ids)
        by_id = {_normalize_feed_id(str(item.get("id", ""))): item for item in parsed}

        now = int(self._clock())
        quotes: dict[str, PriceQuote] = {}
        for asset in assets:
            feed_id = self.price_feeds[asset]
            item = by_id.get(feed_id)
            if item is None:
                raise OracleError(
                    f"Hermes returned no update for {asset} ({feed_id})",
                    cause=OracleError.UNKNOWN_FEED,
                )
            quote = self._parse_quote(asset, feed_id, item)
            age = now - quote.publish_time
            if age > max_age:
                raise OracleError(
                    f"{asset} price is {age}s old (max {max_age}s)",
                    cause=OracleError.STALE,
                )
            quotes[asset] = quote

        for asset, quote in sorted(quotes.items()):
            logger.debug(
                "  %s: %d (expo %d, published %d)",
                asset,
                quote.price,
                quote.expo,
                quote.publish_time,
            )
        return quotes

    async def _fetch_parsed(self, feed_ids: list[str]) -> list[dict[str, Any]]:
        query_params = "&".join([f"ids[]={fid}" for fid in feed_ids])
        url = f"{self.hermes_url}?{query_params}"

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(
                    url, timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as response:
                    if response.status != 200:
                        logger.error(
                            "Error fetching prices from Pyth: HTTP %s", response.status
                        )
                        raise OracleError(
                            f"Hermes responded with HTTP {response.status}",
                            cause=OracleError.LOOKUP_FAILED,
                        )
                    data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            logger.error("Error fetching prices from Pyth: %s", e)
            raise OracleError(str(e), cause=OracleError.LOOKUP_FAILED) from e

        parsed = data.get("parsed") if isinstance(data, dict) else None
        if not isinstance(parsed, list):
            raise OracleError(
                "Hermes response has no parsed updates", cause=OracleError.MALFORMED
            )
        return parsed

    @staticmethod
    def _parse_quote(asset: str, feed_id: str, item: dict[str, Any]) -> PriceQuote:
        price_data = item.get("price") or {}
        try:
            price = int(price_data["price"])
            expo = int(price_data.get("expo", 0))
            publish_time = int(price_data["publish_time"])
        except (KeyError, TypeError, ValueError) as e:
            raise OracleError(
                f"malformed quote for {asset}: {e}", cause=OracleError.MALFORMED
            ) from e

        if price <= 0:
            raise OracleError(
                f"non-positive price {price} for {asset}", cause=OracleError.MALFORMED
            )

        return PriceQuote(
            asset=asset,
            price=price,
            expo=expo,
            publish_time=publish_time,
            feed_id=feed_id,
        )
