"""Guard functions for the tower game engine.

One function per action. Each raises the matching `GameError` subclass when
the action is not allowed in the PRE-state, and returns None otherwise. Guards
never modify state.
"""

from __future__ import annotations

from dataclasses import dataclass

from .catalog import MAX_SUB_LEVEL, NUM_TIERS, UpgradeCatalog
from .config import GameConfig
from .errors import (
    AlreadyClaimedError,
    AlreadyProvisionedError,
    ClaimForbiddenError,
    CreditCapExceededError,
    GameNotStartedError,
    InsufficientCreditsError,
    InvalidTierError,
    MaxCreditsExceededError,
    MaxSubLevelError,
    NotRegisteredError,
    PrerequisiteNotMetError,
    ProvisionWindowNotReachedError,
    ZeroAmountError,
)
from .liquidity_gate import provision_amount
from .treasury import credits_for_payment, reinvest_credits
from .types import ActionParams, GlobalState, TowerAccount, TowerReader


@dataclass(frozen=True)
class EngineContext:
    """Immutable inputs shared by every guard/update: config, catalog, tower table view."""

    config: GameConfig
    catalog: UpgradeCatalog
    towers: TowerReader


def _require_started(state: GlobalState, params: ActionParams) -> None:
    if params.now < state.start_time:
        raise GameNotStartedError(f"game starts at {state.start_time}, now is {params.now}")


def _registered(ctx: EngineContext, caller: str) -> TowerAccount:
    acc = ctx.towers.get(caller)
    if acc is None or not acc.is_registered:
        raise NotRegisteredError(f"{caller} is not registered")
    return acc


def guard_deposit(ctx: EngineContext, state: GlobalState, params: ActionParams) -> None:
    _require_started(state, params)
    if not isinstance(params.amount, int) or isinstance(params.amount, bool) or params.amount <= 0:
        raise ZeroAmountError("deposit amount must be positive")
    credits = credits_for_payment(params.amount, ctx.config.credit_price)
    if credits == 0:
        raise ZeroAmountError(f"deposit of {params.amount} buys zero credits")
    acc = ctx.towers.get(params.caller)
    held = acc.credits if acc is not None else 0
    if held + credits > ctx.config.max_credits_per_tower:
        raise MaxCreditsExceededError(
            f"{held} + {credits} credits exceeds cap {ctx.config.max_credits_per_tower}"
        )


def guard_upgrade_tower(ctx: EngineContext, state: GlobalState, params: ActionParams) -> None:
    _require_started(state, params)
    tier = params.tier
    if not isinstance(tier, int) or isinstance(tier, bool) or not (0 <= tier < NUM_TIERS):
        raise InvalidTierError(f"tier must be in [0, {NUM_TIERS - 1}]: {tier!r}")
    acc = _registered(ctx, params.caller)
    level = acc.builders[tier]
    if level >= MAX_SUB_LEVEL:
        raise MaxSubLevelError(f"tier {tier} is already at sub-level {MAX_SUB_LEVEL}")
    if tier > 0 and acc.builders[tier - 1] < MAX_SUB_LEVEL:
        raise PrerequisiteNotMetError(f"tier {tier - 1} must be fully built before tier {tier}")
    cost = ctx.catalog.entry(tier, level + 1).credit_cost
    if acc.credits < cost:
        raise InsufficientCreditsError(f"upgrade costs {cost} credits, tower holds {acc.credits}")


def guard_collect(ctx: EngineContext, state: GlobalState, params: ActionParams) -> None:
    _require_started(state, params)
    _registered(ctx, params.caller)


def _withdrawable(ctx: EngineContext, caller: str) -> TowerAccount:
    acc = ctx.towers.get(caller)
    if acc is None or acc.withdrawable_earnings <= 0:
        raise ZeroAmountError(f"{caller} has no withdrawable earnings")
    return acc


def guard_withdraw(ctx: EngineContext, state: GlobalState, params: ActionParams) -> None:
    _require_started(state, params)
    _withdrawable(ctx, params.caller)


def guard_reinvest(ctx: EngineContext, state: GlobalState, params: ActionParams) -> None:
    _require_started(state, params)
    acc = _withdrawable(ctx, params.caller)
    credits = reinvest_credits(acc.withdrawable_earnings, ctx.config.credit_price)
    if acc.credits + credits > ctx.config.max_credits_per_tower:
        raise CreditCapExceededError(
            f"{acc.credits} + {credits} credits exceeds cap {ctx.config.max_credits_per_tower}"
        )


def guard_claim_token(ctx: EngineContext, state: GlobalState, params: ActionParams) -> None:
    _require_started(state, params)
    acc = ctx.towers.get(params.caller)
    if acc is None or not acc.is_fully_built:
        raise ClaimForbiddenError(f"{params.caller} has not built every tier")
    if acc.has_claimed:
        raise AlreadyClaimedError(f"{params.caller} already claimed")


def guard_force_add_liquidity(ctx: EngineContext, state: GlobalState, params: ActionParams) -> None:
    _require_started(state, params)
    if state.liquidity_provisioned:
        raise AlreadyProvisionedError("liquidity pool already provisioned")
    if params.now < state.liquidity_unlock_time:
        raise ProvisionWindowNotReachedError(
            f"forced provisioning opens at {state.liquidity_unlock_time}, now is {params.now}"
        )
    if provision_amount(ctx.config, state.reserve_balance) == 0:
        raise ZeroAmountError("reserve is empty")


def guard_claim_referral_earnings(ctx: EngineContext, state: GlobalState, params: ActionParams) -> None:
    _require_started(state, params)
    acc = ctx.towers.get(params.caller)
    if acc is None or acc.unclaimed_referral <= 0:
        raise ZeroAmountError(f"{params.caller} has no unclaimed referral earnings")
