"""Dispatch-table engine for the tower game.

``step(config, catalog, state, towers, params)`` is the single entry point. It:

1. Dispatches to the action's guard, which raises a ``GameError`` on rejection.
2. Builds the ``Transition`` with the action's update function.
3. Checks all invariants on the touched accounts and the next global state.

The engine never mutates its inputs; the caller commits the transition.
``try_step`` wraps ``step`` for callers that prefer a result over exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from .catalog import UpgradeCatalog
from .config import GameConfig
from .errors import GameError, GameInvariantError
from .guards import (
    EngineContext,
    guard_claim_referral_earnings,
    guard_claim_token,
    guard_collect,
    guard_deposit,
    guard_force_add_liquidity,
    guard_reinvest,
    guard_upgrade_tower,
    guard_withdraw,
)
from .invariants import check_all
from .types import Action, ActionParams, GlobalState, TowerReader, Transition
from .updates import (
    apply_claim_referral_earnings,
    apply_claim_token,
    apply_collect,
    apply_deposit,
    apply_force_add_liquidity,
    apply_reinvest,
    apply_upgrade_tower,
    apply_withdraw,
)

GuardFn = Callable[[EngineContext, GlobalState, ActionParams], None]
UpdateFn = Callable[[EngineContext, GlobalState, ActionParams], Transition]

_DISPATCH: dict[Action, tuple[GuardFn, UpdateFn]] = {
    Action.DEPOSIT: (guard_deposit, apply_deposit),
    Action.UPGRADE_TOWER: (guard_upgrade_tower, apply_upgrade_tower),
    Action.COLLECT: (guard_collect, apply_collect),
    Action.WITHDRAW: (guard_withdraw, apply_withdraw),
    Action.REINVEST: (guard_reinvest, apply_reinvest),
    Action.CLAIM_TOKEN: (guard_claim_token, apply_claim_token),
    Action.FORCE_ADD_LIQUIDITY: (guard_force_add_liquidity, apply_force_add_liquidity),
    Action.CLAIM_REFERRAL_EARNINGS: (guard_claim_referral_earnings, apply_claim_referral_earnings),
}


@dataclass(frozen=True)
class StepResult:
    accepted: bool
    transition: Optional[Transition] = None
    rejection: Optional[str] = None
    error: Optional[GameError] = None


def step(
    config: GameConfig,
    catalog: UpgradeCatalog,
    state: GlobalState,
    towers: TowerReader,
    params: ActionParams,
) -> Transition:
    """Execute one action against the given state.

    Raises:
        GameError subclass: guard condition not satisfied.
        GameInvariantError: the transition violates one or more invariants.
    """
    entry = _DISPATCH.get(params.action)
    if entry is None:
        raise ValueError(f"unknown action: {params.action!r}")
    guard_fn, update_fn = entry

    ctx = EngineContext(config=config, catalog=catalog, towers=towers)
    guard_fn(ctx, state, params)
    transition = update_fn(ctx, state, params)

    before = {owner: towers.get(owner) for owner in transition.accounts}
    violations = check_all(catalog, transition.state, transition.accounts, before)
    if violations:
        raise GameInvariantError(violations)
    return transition


def try_step(
    config: GameConfig,
    catalog: UpgradeCatalog,
    state: GlobalState,
    towers: TowerReader,
    params: ActionParams,
) -> StepResult:
    """Like ``step()`` but returns a rejected ``StepResult`` instead of raising."""
    try:
        transition = step(config, catalog, state, towers, params)
    except GameError as exc:
        return StepResult(accepted=False, rejection=type(exc).__name__, error=exc)
    return StepResult(accepted=True, transition=transition)
