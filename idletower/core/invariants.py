"""Invariant checkers for the tower game.

Account invariants take `(catalog, account)`, global ones take the state.
Each returns True when the invariant holds; `check_all()` returns the list of
violated invariant IDs (empty = all pass).
"""

from __future__ import annotations

from typing import Callable, Mapping, Optional

from .catalog import MAX_SUB_LEVEL, NUM_TIERS, UpgradeCatalog
from .types import AccountId, GlobalState, ProvisionStatus, TowerAccount


# ---------------------------------------------------------------------------
# Per-account
# ---------------------------------------------------------------------------


def inv_builders_shape(catalog: UpgradeCatalog, a: TowerAccount) -> bool:
    return len(a.builders) == NUM_TIERS and all(0 <= b <= MAX_SUB_LEVEL for b in a.builders)


def inv_builders_prefix(catalog: UpgradeCatalog, a: TowerAccount) -> bool:
    for tier in range(1, len(a.builders)):
        if a.builders[tier] > 0 and a.builders[tier - 1] != MAX_SUB_LEVEL:
            return False
    return True


def inv_yield_matches_builders(catalog: UpgradeCatalog, a: TowerAccount) -> bool:
    if not inv_builders_shape(catalog, a):
        return False
    return a.yield_rate == catalog.yield_for(a.builders)


def inv_balances_nonneg(catalog: UpgradeCatalog, a: TowerAccount) -> bool:
    return (
        a.credits >= 0
        and a.pending_earnings >= 0
        and a.withdrawable_earnings >= 0
        and a.unclaimed_referral >= 0
        and a.total_withdrawn >= 0
        and all(e >= 0 for e in a.referral_earnings)
    )


def inv_claim_requires_full_build(catalog: UpgradeCatalog, a: TowerAccount) -> bool:
    return not a.has_claimed or a.is_fully_built


def inv_no_self_referral(catalog: UpgradeCatalog, a: TowerAccount) -> bool:
    return a.referrer != a.owner


def inv_unregistered_is_empty(catalog: UpgradeCatalog, a: TowerAccount) -> bool:
    if a.is_registered:
        return True
    return a.credits == 0 and a.yield_rate == 0 and not any(a.builders)


ACCOUNT_INVARIANTS: dict[str, Callable[[UpgradeCatalog, TowerAccount], bool]] = {
    "inv_builders_shape": inv_builders_shape,
    "inv_builders_prefix": inv_builders_prefix,
    "inv_yield_matches_builders": inv_yield_matches_builders,
    "inv_balances_nonneg": inv_balances_nonneg,
    "inv_claim_requires_full_build": inv_claim_requires_full_build,
    "inv_no_self_referral": inv_no_self_referral,
    "inv_unregistered_is_empty": inv_unregistered_is_empty,
}


# ---------------------------------------------------------------------------
# Global
# ---------------------------------------------------------------------------


def inv_counters_nonneg(s: GlobalState) -> bool:
    return (
        s.total_towers >= 0
        and s.total_invested >= 0
        and s.reserve_balance >= 0
        and s.manager_fees_paid >= 0
        and s.total_claims >= 0
    )


def inv_reserve_bounded_by_inflow(s: GlobalState) -> bool:
    return s.reserve_balance + s.manager_fees_paid <= s.total_invested


def inv_pool_iff_provisioned(s: GlobalState) -> bool:
    if s.liquidity_status is ProvisionStatus.PROVISIONED:
        return s.liquidity_pool is not None
    if s.liquidity_status is ProvisionStatus.NOT_PROVISIONED:
        return s.liquidity_pool is None
    return True


def inv_claims_bounded_by_towers(s: GlobalState) -> bool:
    return s.total_claims <= s.total_towers


GLOBAL_INVARIANTS: dict[str, Callable[[GlobalState], bool]] = {
    "inv_counters_nonneg": inv_counters_nonneg,
    "inv_reserve_bounded_by_inflow": inv_reserve_bounded_by_inflow,
    "inv_pool_iff_provisioned": inv_pool_iff_provisioned,
    "inv_claims_bounded_by_towers": inv_claims_bounded_by_towers,
}


# ---------------------------------------------------------------------------
# Cross-step
# ---------------------------------------------------------------------------


def inv_builders_monotone(before: Optional[TowerAccount], after: TowerAccount) -> bool:
    if before is None:
        return True
    return all(a >= b for a, b in zip(after.builders, before.builders))


def inv_claim_sticky(before: Optional[TowerAccount], after: TowerAccount) -> bool:
    return before is None or not before.has_claimed or after.has_claimed


def inv_referrer_immutable(before: Optional[TowerAccount], after: TowerAccount) -> bool:
    if before is None or not before.is_registered:
        return True
    return after.referrer == before.referrer


STEP_INVARIANTS: dict[str, Callable[[Optional[TowerAccount], TowerAccount], bool]] = {
    "inv_builders_monotone": inv_builders_monotone,
    "inv_claim_sticky": inv_claim_sticky,
    "inv_referrer_immutable": inv_referrer_immutable,
}


def check_account(catalog: UpgradeCatalog, account: TowerAccount) -> list[str]:
    return [inv_id for inv_id, fn in ACCOUNT_INVARIANTS.items() if not fn(catalog, account)]


def check_state(state: GlobalState) -> list[str]:
    return [inv_id for inv_id, fn in GLOBAL_INVARIANTS.items() if not fn(state)]


def check_all(
    catalog: UpgradeCatalog,
    state: GlobalState,
    accounts: Mapping[AccountId, TowerAccount],
    before: Optional[Mapping[AccountId, Optional[TowerAccount]]] = None,
) -> list[str]:
    """Return violated invariant IDs (prefixed with the account for per-account ones)."""
    violations = check_state(state)
    before = before or {}
    for owner, acc in accounts.items():
        if acc.owner != owner:
            violations.append(f"{owner}:inv_owner_key")
        violations.extend(f"{owner}:{inv_id}" for inv_id in check_account(catalog, acc))
        prev = before.get(owner)
        violations.extend(
            f"{owner}:{inv_id}" for inv_id, fn in STEP_INVARIANTS.items() if not fn(prev, acc)
        )
    return violations
