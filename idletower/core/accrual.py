"""
Yield accrual kernel (integer-only).

Whole elapsed hours since `last_accrual` are priced at the account's current
`yield_rate`, up to `max_hours`. Hours beyond the cap are forfeited, but the
clock still advances past them; the sub-hour remainder is always kept so that
frequent polling never loses time.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from .config import SECONDS_PER_HOUR
from .types import TowerAccount


@dataclass(frozen=True)
class AccrualResult:
    account: TowerAccount
    elapsed_hours: int
    credited_hours: int
    accrued: int


def accrue(account: TowerAccount, now: int, max_hours: int) -> AccrualResult:
    """Move yield earned since `last_accrual` into `pending_earnings`."""
    if not isinstance(now, int) or isinstance(now, bool):
        raise TypeError("now must be an int")
    if max_hours <= 0:
        raise ValueError(f"max_hours must be positive: {max_hours}")

    # A clock in the past (now < last_accrual) accrues nothing.
    elapsed_hours = max(0, (now - account.last_accrual) // SECONDS_PER_HOUR)
    credited_hours = min(elapsed_hours, max_hours)
    accrued = account.yield_rate * credited_hours

    if elapsed_hours == 0:
        return AccrualResult(account=account, elapsed_hours=0, credited_hours=0, accrued=0)

    next_account = replace(
        account,
        pending_earnings=account.pending_earnings + accrued,
        last_accrual=account.last_accrual + elapsed_hours * SECONDS_PER_HOUR,
    )
    return AccrualResult(
        account=next_account,
        elapsed_hours=elapsed_hours,
        credited_hours=credited_hours,
        accrued=accrued,
    )


def collect(account: TowerAccount, now: int, max_hours: int) -> AccrualResult:
    """Accrue, then move all pending earnings into the withdrawable balance."""
    res = accrue(account, now, max_hours)
    acc = res.account
    next_account = replace(
        acc,
        withdrawable_earnings=acc.withdrawable_earnings + acc.pending_earnings,
        pending_earnings=0,
    )
    return replace(res, account=next_account)
