"""
Mock Services for Testing

In-process stand-ins for the ledger mint service and the identity provider.
"""

import asyncio
from typing import Dict, List, Optional

from bluecarbon.core.errors import NotAuthenticated
from bluecarbon.handlers.identity import IdentityUser
from bluecarbon.handlers.ledger import LedgerReceipt


class FakeLedger:
    """Ledger client that records every call"""

    def __init__(self, error: Optional[Exception] = None, gate: Optional[asyncio.Event] = None):
        self.calls: List[Dict] = []
        self.error = error
        self.gate = gate

    async def mint(self, amount: int, recipient: str, decimals: int = 0) -> LedgerReceipt:
        self.calls.append({"amount": amount, "recipient": recipient, "decimals": decimals})
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error

        n = len(self.calls)
        return LedgerReceipt(mint_id=f"CCRMint{n:037d}", transaction_id=f"5tx{n:085d}")


class FakeIdentity:
    """Identity provider keyed by bearer token"""

    def __init__(self, users: Optional[Dict[str, IdentityUser]] = None):
        self._users = dict(users or {})

    def add_user(self, token: str, user_id: str, email: Optional[str] = None):
        self._users[token] = IdentityUser(user_id=user_id, email=email)

    async def get_user(self, token: str) -> IdentityUser:
        if token not in self._users:
            raise NotAuthenticated("Invalid or expired token")
        return self._users[token]
