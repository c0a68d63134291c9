"""Price oracle protocol — price feed abstraction."""
from typing import Protocol

from ..models import PriceQuote


class PriceOracle(Protocol):
    """Abstract interface for fetching fresh asset prices.

    Implementations raise ``OracleError`` for an unknown feed, a quote older
    than ``max_age`` seconds, a malformed quote or a failed lookup. They never
    fall back to a cached or default price.
    """

    async def get_price(self, asset: str, max_age: int) -> PriceQuote: ...

    async def get_prices(
        self, assets: list[str], max_age: int
    ) -> dict[str, PriceQuote]: ...
