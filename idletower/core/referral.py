"""
Referral engine.

A referrer is bound once, on an account's first deposit. Every deposit then
pays each ancestor in the referrer chain a share of the *minted credits*
(`referral_bps[level]`), up to `len(referral_bps)` levels.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Mapping, Optional, Tuple

from .config import BPS_DENOM, REFERRAL_PAYOUT_AUTO, GameConfig
from .types import AccountId, ReferralCredit, TowerAccount, TowerReader


def bind_referrer(payer: AccountId, requested: Optional[AccountId], manager: AccountId) -> Optional[AccountId]:
    """Referrer to record on first deposit: the requested one, else the manager."""
    if requested is None or not requested.strip() or requested == payer:
        requested = manager
    if requested == payer:
        # Only the manager can land here; it has no upline.
        return None
    return requested


def _lookup(
    owner: AccountId,
    towers: TowerReader,
    overrides: Mapping[AccountId, TowerAccount],
) -> Optional[TowerAccount]:
    if owner in overrides:
        return overrides[owner]
    return towers.get(owner)


def referral_chain(
    payer: AccountId,
    first: Optional[AccountId],
    towers: TowerReader,
    depth: int,
    overrides: Optional[Mapping[AccountId, TowerAccount]] = None,
) -> List[AccountId]:
    """Ancestors of `payer`, nearest first, stopping at a gap or a cycle."""
    overrides = overrides or {}
    chain: List[AccountId] = []
    seen = {payer}
    current = first
    while current is not None and len(chain) < depth and current not in seen:
        chain.append(current)
        seen.add(current)
        acc = _lookup(current, towers, overrides)
        current = acc.referrer if acc is not None else None
    return chain


def _with_level_credit(account: TowerAccount, level: int, amount: int, levels: int) -> TowerAccount:
    earnings = list(account.referral_earnings) + [0] * max(0, levels - len(account.referral_earnings))
    earnings[level] += amount
    return replace(account, referral_earnings=tuple(earnings))


def distribute(
    config: GameConfig,
    payer: AccountId,
    credits: int,
    towers: TowerReader,
    overrides: Mapping[AccountId, TowerAccount],
) -> Tuple[Dict[AccountId, TowerAccount], Tuple[ReferralCredit, ...]]:
    """
    Credit every ancestor of `payer` for a deposit that minted `credits`.

    `overrides` holds accounts already updated by the same step (at least the
    payer, whose referrer may have just been bound). Returns the updated
    ancestor accounts and the credits paid per level.
    """
    levels = len(config.referral_bps)
    payer_acc = overrides.get(payer) or towers.get(payer)
    first = payer_acc.referrer if payer_acc is not None else None
    chain = referral_chain(payer, first, towers, levels, overrides)

    updated: Dict[AccountId, TowerAccount] = {}
    paid: List[ReferralCredit] = []
    for level, ancestor in enumerate(chain):
        bonus = (credits * config.referral_bps[level]) // BPS_DENOM
        if bonus == 0:
            continue
        acc = updated.get(ancestor) or _lookup(ancestor, towers, overrides) or TowerAccount(owner=ancestor)
        acc = _with_level_credit(acc, level, bonus, levels)
        if config.referral_payout == REFERRAL_PAYOUT_AUTO:
            acc = replace(acc, withdrawable_earnings=acc.withdrawable_earnings + bonus)
        else:
            acc = replace(acc, unclaimed_referral=acc.unclaimed_referral + bonus)
        updated[ancestor] = acc
        paid.append(ReferralCredit(account=ancestor, level=level, credits=bonus))
    return updated, tuple(paid)


def claim(account: TowerAccount) -> TowerAccount:
    """Release ledger-mode referral earnings into the withdrawable balance."""
    return replace(
        account,
        withdrawable_earnings=account.withdrawable_earnings + account.unclaimed_referral,
        unclaimed_referral=0,
    )
