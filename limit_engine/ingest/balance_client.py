"""Solana JSON-RPC client for wallet balances, and the per-user balance provider."""

import logging
from pathlib import Path

import httpx

from limit_engine.config.schema import NATIVE_SOL_MINT
from limit_engine.models.errors import BalanceUnavailableError
from limit_engine.storage import user_repo
from limit_engine.storage.database import connect, run_migrations

logger = logging.getLogger(__name__)

SOLANA_RPC_URL = "https://api.mainnet-beta.solana.com"
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
LAMPORTS_PER_SOL = 1_000_000_000


class SolanaRpcError(Exception):
    """Raised when the RPC node returns an error or is unreachable."""


class SolanaRpcClient:
    def __init__(self, rpc_url: str = SOLANA_RPC_URL, timeout: float = 10.0):
        self.rpc_url = rpc_url
        self.timeout = timeout

    def _call(self, method: str, params: list):
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        try:
            resp = httpx.post(self.rpc_url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as e:
            raise SolanaRpcError(f"{method}: HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise SolanaRpcError(f"{method}: request failed: {e}") from e
        except ValueError as e:
            raise SolanaRpcError(f"{method}: response is not JSON") from e

        if not isinstance(body, dict):
            raise SolanaRpcError(f"{method}: unexpected response {body!r}")
        if "error" in body:
            error = body["error"]
            if isinstance(error, dict):
                error = error.get("message", error)
            raise SolanaRpcError(f"{method}: {error}")
        if "result" not in body:
            raise SolanaRpcError(f"{method}: response has no result")
        return body["result"]

    def get_sol_balance(self, owner: str) -> float:
        result = self._call("getBalance", [owner])
        try:
            return int(result["value"]) / LAMPORTS_PER_SOL
        except (KeyError, TypeError, ValueError) as e:
            raise SolanaRpcError(f"getBalance: malformed result {result!r}") from e

    def get_token_balance(self, owner: str, mint: str) -> float:
        """Balance of `mint` held by `owner`, summed over its token accounts.

        Uses the raw integer amount and decimals so large balances keep
        their precision.
        """
        if mint == NATIVE_SOL_MINT:
            return self.get_sol_balance(owner)

        result = self._call(
            "getTokenAccountsByOwner",
            [owner, {"mint": mint}, {"encoding": "jsonParsed"}],
        )
        total = 0.0
        try:
            for account in result.get("value", []):
                token_amount = account["account"]["data"]["parsed"]["info"]["tokenAmount"]
                total += int(token_amount["amount"]) / 10 ** int(token_amount["decimals"])
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise SolanaRpcError(
                f"getTokenAccountsByOwner: malformed account data: {e!r}"
            ) from e
        return total


class WalletBalanceProvider:
    """Reads a user's balance from the wallet address linked to them."""

    def __init__(self, rpc_client: SolanaRpcClient, db_path: str | Path):
        self.rpc = rpc_client
        self.db_path = db_path

    def get_balance(self, user_id: int, token_address: str) -> float:
        conn = connect(self.db_path)
        try:
            run_migrations(conn)
            wallet = user_repo.get_wallet_address(conn, user_id)
        finally:
            conn.close()

        if wallet is None:
            raise BalanceUnavailableError(
                "Wallet not found. Please link a wallet first."
            )
        try:
            return self.rpc.get_token_balance(wallet, token_address)
        except SolanaRpcError as e:
            logger.error("Balance lookup failed for user %d: %s", user_id, e)
            raise BalanceUnavailableError(f"Could not read wallet balance: {e}") from e
