"""
Ledger mint service client.

The ledger accepts a mint instruction (amount, recipient) and answers with
the new token mint address and the transaction signature. A successful
answer is final: nothing in this service can undo it.
"""

import logging
from typing import Any, Dict, Optional, Protocol

import httpx
from pydantic import BaseModel

from bluecarbon.core.config import Settings
from bluecarbon.core.errors import LedgerFailure, LedgerTimeout
from bluecarbon.handlers.validation import format_wallet_address

logger = logging.getLogger(__name__)

# Errors raised before the request left this process; the mint was never submitted
_NOT_SUBMITTED = (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout)


class LedgerReceipt(BaseModel):
    mint_id: str
    transaction_id: str


class LedgerClient(Protocol):
    """Anything that can mint tokens on the ledger."""

    async def mint(self, amount: int, recipient: str, decimals: int = 0) -> LedgerReceipt:
        """
        Mint ``amount`` tokens to ``recipient``.

        Raises:
            LedgerFailure: the ledger rejected the mint; nothing was issued
            LedgerTimeout: the outcome is unknown
        """
        ...


def explorer_url(transaction_id: str, cluster: str) -> str:
    return f"https://explorer.solana.com/tx/{transaction_id}?cluster={cluster}"


def _error_message(response: httpx.Response) -> str:
    """Extract the ledger's own error message, verbatim."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            if body.get(key):
                return str(body[key])
    return response.text or f"HTTP {response.status_code}"


class HttpLedgerClient:
    """LedgerClient talking to the mint service over HTTP."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 60.0,
        token_symbol: str = "CCR",
        token_name: str = "Carbon Credit Token",
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.token_symbol = token_symbol
        self.token_name = token_name
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "HttpLedgerClient":
        return cls(
            base_url=settings.ledger_base_url,
            api_key=settings.ledger_api_key,
            timeout=settings.ledger_timeout_seconds,
            token_symbol=settings.token_symbol,
            token_name=settings.token_name,
        )

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def mint(self, amount: int, recipient: str, decimals: int = 0) -> LedgerReceipt:
        payload = {
            "amount": str(amount),
            "decimals": decimals,
            "recipient": recipient,
            "token_symbol": self.token_symbol,
            "token_name": self.token_name,
        }
        logger.info(
            "Submitting mint of %s tokens to %s", amount, format_wallet_address(recipient)
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.base_url}/mint", json=payload, headers=self._headers()
                )
        except _NOT_SUBMITTED as e:
            raise LedgerFailure(f"Ledger unreachable: {e}") from e
        except httpx.TransportError as e:
            # Request may have reached the ledger
            raise LedgerTimeout(f"Ledger outcome unknown: {e.__class__.__name__}: {e}") from e

        if response.status_code == httpx.codes.GATEWAY_TIMEOUT:
            raise LedgerTimeout(f"Ledger outcome unknown: {_error_message(response)}")
        if response.is_error:
            raise LedgerFailure(_error_message(response), status=response.status_code)

        return self._parse_receipt(response)

    @staticmethod
    def _parse_receipt(response: httpx.Response) -> LedgerReceipt:
        try:
            body: Dict[str, Any] = response.json()
            return LedgerReceipt(
                mint_id=str(body["mint"]),
                transaction_id=str(body["transaction"]),
            )
        except (ValueError, KeyError, TypeError) as e:
            # The ledger accepted the request; tokens may exist
            raise LedgerTimeout(f"Ledger returned an unreadable success response: {e}") from e
