"""
HTTP client for the EcoToken ledger service.

The ledger wraps the token contract and the wallet registry; all it needs
from us is JSON over HTTP. Calls are made once, never retried: a failed
burn must surface to the caller immediately.
"""

import time
from typing import Any, Dict, Optional

import httpx

from greenlake.core.config import get_settings
from greenlake.core.exceptions import LedgerError
from greenlake.core.logging import get_logger
from greenlake.core.metrics import record_ledger_call
from greenlake.services.interfaces.signer import WalletSigner

logger = get_logger(__name__)
settings = get_settings()


class LedgerClient:
    """Async client for /tokens/* and /users/* on the ledger API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.LEDGER_BASE_URL).rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or settings.LEDGER_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        start = time.perf_counter()
        try:
            response = await self._client.request(method, path, json=payload)
        except httpx.HTTPError as e:
            record_ledger_call(operation, False, time.perf_counter() - start)
            logger.error("ledger_unreachable", operation=operation, error=str(e))
            raise LedgerError(f"Ledger unreachable: {e}") from e

        elapsed = time.perf_counter() - start
        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_error:
            record_ledger_call(operation, False, elapsed)
            message = body.get("error") if isinstance(body, dict) else None
            logger.warning(
                "ledger_request_failed",
                operation=operation,
                status_code=response.status_code,
                error=message,
            )
            raise LedgerError(
                message or f"Ledger returned HTTP {response.status_code}",
                status_code=response.status_code,
                code=body.get("code") if isinstance(body, dict) else None,
                details=body.get("details") if isinstance(body, dict) else None,
            )

        record_ledger_call(operation, True, elapsed)
        return body

    async def get_balance(self, address: str) -> int:
        body = await self._request("balance", "GET", f"/tokens/balance/{address}")
        try:
            return int(body["balance"])
        except (KeyError, TypeError, ValueError) as e:
            raise LedgerError("Malformed balance response") from e

    async def burn(self, address: str, amount: int, signer: WalletSigner) -> Dict[str, Any]:
        """Burn tokens from a wallet. Returns the ledger receipt once confirmed."""
        payload = {"address": address, "amount": amount, **signer.authorize(address)}
        body = await self._request("burn", "POST", "/tokens/burn", payload)
        if not body.get("success"):
            raise LedgerError("Burn was not confirmed by the ledger")

        logger.info(
            "tokens_burned",
            address=address,
            amount=amount,
            transaction_hash=body.get("transactionHash"),
        )
        return body

    async def mint(self, address: str, amount: int) -> Dict[str, Any]:
        body = await self._request("mint", "POST", "/tokens/mint", {"address": address, "amount": amount})
        logger.info(
            "tokens_minted",
            address=address,
            amount=amount,
            transaction_hash=body.get("transactionHash"),
        )
        return body

    async def transfer(self, from_address: str, to_address: str, amount: int,
                       signer: WalletSigner) -> Dict[str, Any]:
        payload = {
            "from": from_address,
            "to": to_address,
            "amount": amount,
            **signer.authorize(from_address),
        }
        return await self._request("transfer", "POST", "/tokens/transfer", payload)

    async def create_wallet(self, username: str) -> Dict[str, Any]:
        body = await self._request("create_wallet", "POST", "/users/create-wallet", {"username": username})
        if not body.get("address"):
            raise LedgerError("Ledger did not return a wallet address")
        return body


_ledger_client: Optional[LedgerClient] = None


def get_ledger() -> LedgerClient:
    """FastAPI dependency: process-wide ledger client."""
    global _ledger_client
    if _ledger_client is None:
        _ledger_client = LedgerClient()
    return _ledger_client


async def close_ledger() -> None:
    global _ledger_client
    if _ledger_client is not None:
        await _ledger_client.close()
        _ledger_client = None
