"""Swap service API client for live order execution."""

import logging
import os

import httpx

logger = logging.getLogger(__name__)

SWAP_API_BASE = "http://localhost:8080"


class SwapClientError(Exception):
    """Raised when the swap service returns an error."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class SwapClient:
    """Thin wrapper around the swap service REST API.

    The service owns routing and quoting; we only submit a side, token,
    amount and the reference price the order is valued at.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = SWAP_API_BASE,
        timeout: float = 30.0,
    ):
        self.api_key = api_key or os.environ.get("SWAP_API_KEY", "")
        if not self.api_key:
            raise SwapClientError("SWAP_API_KEY not set")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, endpoint: str, data: dict | None = None) -> dict:
        url = f"{self.base_url}{endpoint}"
        try:
            resp = httpx.request(
                method, url, headers=self._headers(), json=data, timeout=self.timeout,
            )
            if resp.status_code >= 400:
                body = resp.text
                logger.error("Swap API %d: %s %s -> %s", resp.status_code, method, endpoint, body)
                raise SwapClientError(f"HTTP {resp.status_code}: {body}", resp.status_code)
            return resp.json()
        except httpx.RequestError as e:
            logger.error("Swap API request failed: %s %s -> %s", method, endpoint, e)
            raise SwapClientError(f"Request failed: {e}") from e

    def swap(
        self,
        user_id: int,
        side: str,
        token_address: str,
        amount: float,
        reference_price: float,
        idempotency_key: str | None = None,
    ) -> dict:
        """Submit a buy or sell.

        Returns the service response: success, signature, error.
        """
        payload = {
            "user_id": user_id,
            "side": side,
            "token_address": token_address,
            "amount": amount,
            "reference_price": reference_price,
        }
        if idempotency_key is not None:
            payload["idempotency_key"] = idempotency_key
        return self._request("POST", "/api/swap", payload)
