"""
Interfaces of the external collaborators the game talks to.

The controller only depends on these base classes; `ledgers.py` and
`venues.py` hold the in-memory implementations used by tests and the
simulation tool.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple


class TokenLedger:
    """Ledger of the game token."""

    def mint(self, account: str, amount: int) -> None:
        raise NotImplementedError

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        raise NotImplementedError

    def balance_of(self, account: str) -> int:
        raise NotImplementedError


class PaymentRail:
    """Outgoing transfers of the payment asset held by the game."""

    def pay(self, recipient: str, amount: int) -> None:
        raise NotImplementedError


class RouterVenue:
    """Router-style constant-product venue (pair pools keyed by a handle)."""

    # Identity that receives the assets deposited into the venue's pools.
    account: str = "router"

    def get_pool(self, token_a: str, token_b: str) -> Optional[str]:
        """Handle of the pair pool for the two tokens, or None if it does not exist yet."""
        raise NotImplementedError

    def create_pool(self, token_a: str, token_b: str) -> str:
        raise NotImplementedError

    def get_reserves(self, handle: str, token_a: str, token_b: str) -> Tuple[int, int]:
        raise NotImplementedError

    def add_liquidity(
        self,
        provider: str,
        token_a: str,
        token_b: str,
        amount_a_desired: int,
        amount_b_desired: int,
        amount_a_min: int,
        amount_b_min: int,
    ) -> Tuple[int, int, int]:
        """Returns (used_a, used_b, shares)."""
        raise NotImplementedError


class VaultVenue:
    """Vault-style venue holding weighted pools."""

    account: str = "vault"

    def register_weighted_pool(self, tokens: Sequence[str], weights: Sequence[int]) -> str:
        raise NotImplementedError

    def get_pool_tokens(self, pool_id: str) -> Tuple[Tuple[str, ...], Tuple[int, ...], int]:
        """Returns (tokens, balances, total_shares)."""
        raise NotImplementedError

    def join(
        self,
        pool_id: str,
        provider: str,
        max_amounts_in: Sequence[int],
        min_share_out: int,
    ) -> Tuple[Tuple[int, ...], int]:
        """Returns (amounts_in, shares)."""
        raise NotImplementedError
