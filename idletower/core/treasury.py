"""
Treasury kernels (deterministic, integer-only).

Covers the payment-asset side of the game:
- splitting a deposit into the manager fee and the reserve share,
- converting between payment base units and credits,
- the withdrawal payout policy against a possibly insufficient reserve,
- the reinvest conversion.

Rounding always favours the reserve: payment -> credits floors, and when a
payout is cut short the earnings debited are rounded up.
"""

from __future__ import annotations

from dataclasses import dataclass

from .config import BPS_DENOM


def _require_amount(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative: {value}")


@dataclass(frozen=True)
class DepositSplit:
    manager_fee: int
    to_reserve: int

    def __post_init__(self) -> None:
        _require_amount("manager_fee", self.manager_fee)
        _require_amount("to_reserve", self.to_reserve)


def split_deposit(amount: int, fee_bps: int) -> DepositSplit:
    """Split a deposit into (manager fee, reserve share) with floor rounding on the fee."""
    _require_amount("amount", amount)
    if not (0 <= fee_bps <= BPS_DENOM):
        raise ValueError(f"fee_bps must be in [0, {BPS_DENOM}]: {fee_bps}")
    fee = (amount * fee_bps) // BPS_DENOM
    return DepositSplit(manager_fee=fee, to_reserve=amount - fee)


def credits_for_payment(amount: int, credit_price: int) -> int:
    """Credits bought by `amount` payment base units (floor)."""
    _require_amount("amount", amount)
    if credit_price <= 0:
        raise ValueError(f"credit_price must be positive: {credit_price}")
    return amount // credit_price


def payment_for_credits(credits: int, credit_price: int) -> int:
    """Payment base units equivalent to `credits`."""
    _require_amount("credits", credits)
    if credit_price <= 0:
        raise ValueError(f"credit_price must be positive: {credit_price}")
    return credits * credit_price


@dataclass(frozen=True)
class WithdrawalPlan:
    owed: int
    paid: int
    earnings_debited: int
    reserve_after: int

    @property
    def partial(self) -> bool:
        return self.paid < self.owed


def plan_withdrawal(earnings: int, reserve: int, credit_price: int) -> WithdrawalPlan:
    """
    Pay out `earnings` against `reserve`.

    Pays `min(owed, reserve)`. On a short payout only the earnings actually
    covered are debited (rounded up, so the account is never paid for earnings
    it keeps); the rest stays withdrawable for a later call.
    """
    _require_amount("earnings", earnings)
    _require_amount("reserve", reserve)
    owed = payment_for_credits(earnings, credit_price)
    paid = min(owed, reserve)
    if paid == owed:
        debited = earnings
    else:
        debited = -(-paid // credit_price)
    if debited > earnings:
        raise AssertionError("withdrawal over-debited earnings")
    return WithdrawalPlan(owed=owed, paid=paid, earnings_debited=debited, reserve_after=reserve - paid)


def reinvest_credits(earnings: int, credit_price: int) -> int:
    """Credits minted by reinvesting `earnings` (via their payment equivalent)."""
    return credits_for_payment(payment_for_credits(earnings, credit_price), credit_price)
