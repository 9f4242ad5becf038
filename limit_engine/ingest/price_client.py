"""Price API client: token prices quoted in the base unit (SOL)."""

import logging
import math

import httpx

from limit_engine.config.schema import NATIVE_SOL_MINT
from limit_engine.models.errors import PriceUnavailableError

logger = logging.getLogger(__name__)

PRICE_BASE_URL = "https://api.jup.ag/price/v2"


class PriceClient:
    def __init__(
        self,
        base_url: str = PRICE_BASE_URL,
        vs_token: str = NATIVE_SOL_MINT,
        timeout: float = 10.0,
    ):
        self.base_url = base_url
        self.vs_token = vs_token
        self.timeout = timeout

    def get_price(self, token_address: str) -> float:
        """Price of one token unit in vs_token units.

        Raises PriceUnavailableError on transport errors, non-2xx responses,
        a body that is not the expected JSON shape, or a non-positive price.
        """
        if token_address == self.vs_token:
            return 1.0

        params = {"ids": token_address, "vsToken": self.vs_token}
        try:
            resp = httpx.get(self.base_url, params=params, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error("Price API error for %s: %s", token_address, e)
            raise PriceUnavailableError(
                token_address, f"HTTP {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            logger.error("Price API request failed for %s: %s", token_address, e)
            raise PriceUnavailableError(token_address, f"request failed: {e}") from e
        except ValueError as e:
            logger.error("Price API returned non-JSON body for %s", token_address)
            raise PriceUnavailableError(token_address, "response is not JSON") from e

        entry = data.get("data") if isinstance(data, dict) else None
        entry = entry.get(token_address) if isinstance(entry, dict) else None
        if not isinstance(entry, dict) or entry.get("price") is None:
            raise PriceUnavailableError(token_address, "no price in response")

        try:
            price = float(entry["price"])
        except (TypeError, ValueError) as e:
            raise PriceUnavailableError(
                token_address, f"malformed price {entry['price']!r}"
            ) from e

        if not math.isfinite(price) or price <= 0:
            raise PriceUnavailableError(token_address, f"invalid price {price}")
        return price
