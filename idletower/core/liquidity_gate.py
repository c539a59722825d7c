"""
Liquidity provisioning gate (pure state machine).

    NOT_PROVISIONED --begin--> PROVISIONING --finalize--> PROVISIONED
                                                   PROVISIONED --begin/finalize (top-up)--> PROVISIONED

`begin_provision` earmarks reserve for the venue and flips the status before
the shell makes any external call; `finalize_provision` books the venue
receipt (returning unused reserve) once the call succeeded. The shell restores
the pre-state if the venue call fails, so PROVISIONING is never observed after
an operation completes.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Tuple

from .config import BPS_DENOM, GameConfig
from .types import GlobalState, ProvisionKind, ProvisionRequest, ProvisionStatus


@dataclass(frozen=True)
class ProvisionReceipt:
    """What the venue actually took."""

    pool: str
    reserve_used: int
    token_used: int
    shares: int


def provision_amount(config: GameConfig, reserve: int) -> int:
    """Reserve earmarked for one provisioning."""
    return (reserve * config.liquidity_reserve_bps) // BPS_DENOM


def seed_token_amount(config: GameConfig, reserve_amount: int) -> int:
    """Game tokens paired with `reserve_amount` when the pool is first seeded."""
    return (reserve_amount * config.seed_tokens_per_payment_unit) // config.payment_unit


def begin_provision(config: GameConfig, state: GlobalState) -> Tuple[GlobalState, Optional[ProvisionRequest]]:
    """
    Earmark reserve for the gate. Seeds an unprovisioned pool, tops up otherwise.

    Returns the state unchanged and no request when nothing would be provisioned.
    """
    if state.liquidity_status is ProvisionStatus.PROVISIONING:
        raise AssertionError("provisioning already in progress")

    reserve_amount = provision_amount(config, state.reserve_balance)
    if reserve_amount == 0:
        return state, None

    if state.liquidity_status is ProvisionStatus.NOT_PROVISIONED:
        kind = ProvisionKind.SEED
        next_status = ProvisionStatus.PROVISIONING
    else:
        kind = ProvisionKind.TOP_UP
        next_status = ProvisionStatus.PROVISIONED

    next_state = replace(
        state,
        reserve_balance=state.reserve_balance - reserve_amount,
        liquidity_status=next_status,
    )
    return next_state, ProvisionRequest(kind=kind, reserve_amount=reserve_amount, pool=state.liquidity_pool)


def finalize_provision(state: GlobalState, request: ProvisionRequest, receipt: ProvisionReceipt) -> GlobalState:
    """Book a successful venue call: refund unused reserve, store the pool handle."""
    if receipt.reserve_used < 0 or receipt.reserve_used > request.reserve_amount:
        raise ValueError(
            f"venue used {receipt.reserve_used} reserve, earmarked {request.reserve_amount}"
        )
    if request.pool is not None and receipt.pool != request.pool:
        raise ValueError(f"venue returned pool {receipt.pool!r}, expected {request.pool!r}")
    return replace(
        state,
        reserve_balance=state.reserve_balance + (request.reserve_amount - receipt.reserve_used),
        liquidity_status=ProvisionStatus.PROVISIONED,
        liquidity_pool=receipt.pool,
    )
