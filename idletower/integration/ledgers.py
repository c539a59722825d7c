"""
In-memory payment rail and token ledger.

Balances live in `BalanceTable`-style dicts keyed by account. The payment rail
supports a per-recipient hook, called from inside `pay()` after the transfer is
recorded, to model recipients that run code when they are paid.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .collaborators import PaymentRail, TokenLedger


logger = logging.getLogger(__name__)


PaymentHook = Callable[[str, int], None]


def _require_amount(amount: int) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise TypeError("amount must be an int")
    if amount <= 0:
        raise ValueError(f"amount must be positive: {amount}")


@dataclass(frozen=True)
class Payment:
    recipient: str
    amount: int


class InMemoryPaymentRail(PaymentRail):
    def __init__(self) -> None:
        self.payments: List[Payment] = []
        self._received: Dict[str, int] = {}
        self._hooks: Dict[str, PaymentHook] = {}

    def set_hook(self, recipient: str, hook: Optional[PaymentHook]) -> None:
        if hook is None:
            self._hooks.pop(recipient, None)
        else:
            self._hooks[recipient] = hook

    def pay(self, recipient: str, amount: int) -> None:
        _require_amount(amount)
        self.payments.append(Payment(recipient=recipient, amount=amount))
        self._received[recipient] = self._received.get(recipient, 0) + amount
        logger.debug("paid %d to %s", amount, recipient)
        hook = self._hooks.get(recipient)
        if hook is not None:
            hook(recipient, amount)

    def received(self, recipient: str) -> int:
        return self._received.get(recipient, 0)

    @property
    def total_paid(self) -> int:
        return sum(self._received.values())


class InMemoryTokenLedger(TokenLedger):
    def __init__(self, symbol: str = "TOWER") -> None:
        self.symbol = symbol
        self.total_supply = 0
        self._balances: Dict[str, int] = {}

    def mint(self, account: str, amount: int) -> None:
        _require_amount(amount)
        self._balances[account] = self._balances.get(account, 0) + amount
        self.total_supply += amount
        logger.debug("minted %d %s to %s", amount, self.symbol, account)

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        _require_amount(amount)
        current = self._balances.get(sender, 0)
        if current < amount:
            raise ValueError(f"Insufficient balance: {sender} holds {current} {self.symbol}, needs {amount}")
        self._balances[sender] = current - amount
        self._balances[recipient] = self._balances.get(recipient, 0) + amount

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)
