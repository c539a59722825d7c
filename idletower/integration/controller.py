"""
Game controller (imperative shell around the functional core).

Every mutating operation runs the same pipeline:

1. enter the in-flight guard (a nested call raises `ReentrancyError`);
2. compute the `Transition` with `core.engine.step` (guards + invariants);
3. commit it to the tower table and global state, journalling old values;
4. perform the external calls the `Effect` asks for (payments, token mints,
   liquidity provisioning);
5. on any failure in (4), restore the journal and re-raise. Errors that are
   not `GameError`s are wrapped in `ExternalVenueError`.

Local state is committed before any external call, so a collaborator that
calls back into the game observes post-operation state (and is refused by the
guard).
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Tuple

from ..core.catalog import DEFAULT_CATALOG, UpgradeCatalog
from ..core.config import GameConfig
from ..core.engine import step
from ..core.errors import ExternalVenueError, GameError, GameInvariantError, ReentrancyError
from ..core.invariants import check_state
from ..core.liquidity_gate import finalize_provision
from ..core.types import (
    AccountId,
    Action,
    ActionParams,
    Effect,
    Event,
    GlobalState,
    ProvisionRequest,
    TowerAccount,
    Transition,
)
from ..state.snapshot import GameSnapshot, snapshot_from_state, state_from_snapshot
from ..state.towers import TowerTable
from .collaborators import PaymentRail, TokenLedger
from .provisioners import LiquidityProvisioner


logger = logging.getLogger(__name__)


Clock = Callable[[], int]


def _wall_clock() -> int:
    return int(time.time())


@dataclass(frozen=True)
class _Journal:
    state: GlobalState
    accounts: Dict[AccountId, Optional[TowerAccount]]


class GameController:
    def __init__(
        self,
        config: GameConfig,
        *,
        payment_rail: PaymentRail,
        token_ledger: TokenLedger,
        provisioner: LiquidityProvisioner,
        catalog: UpgradeCatalog = DEFAULT_CATALOG,
        clock: Optional[Clock] = None,
        state: Optional[GlobalState] = None,
        towers: Optional[TowerTable] = None,
    ) -> None:
        self.config = config
        self.catalog = catalog
        self.payment_rail = payment_rail
        self.token_ledger = token_ledger
        self.provisioner = provisioner
        self._clock = clock or _wall_clock
        self._state = state or GlobalState(
            start_time=config.start_time,
            liquidity_unlock_time=config.liquidity_unlock_time,
        )
        self._towers = towers if towers is not None else TowerTable()
        self._in_flight: Optional[Action] = None

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    @contextmanager
    def _guard(self, action: Action) -> Iterator[None]:
        if self._in_flight is not None:
            raise ReentrancyError(f"{action.value} entered while {self._in_flight.value} is in flight")
        self._in_flight = action
        try:
            yield
        finally:
            self._in_flight = None

    def _commit(self, transition: Transition) -> _Journal:
        journal = _Journal(
            state=self._state,
            accounts={owner: self._towers.get(owner) for owner in transition.accounts},
        )
        self._state = transition.state
        for acc in transition.accounts.values():
            self._towers.set(acc)
        return journal

    def _rollback(self, journal: _Journal) -> None:
        self._state = journal.state
        for owner, acc in journal.accounts.items():
            self._towers.restore(owner, acc)

    def _execute(self, params: ActionParams) -> Effect:
        with self._guard(params.action):
            transition = step(self.config, self.catalog, self._state, self._towers, params)
            journal = self._commit(transition)
            try:
                self._interact(transition.effect)
            except GameError:
                self._rollback(journal)
                logger.warning("%s by %s rolled back", params.action.value, params.caller)
                raise
            except Exception as exc:
                self._rollback(journal)
                logger.warning(
                    "%s by %s rolled back after collaborator failure: %s: %s",
                    params.action.value, params.caller, type(exc).__name__, exc,
                )
                raise ExternalVenueError(f"{params.action.value} failed in a collaborator call: {exc}") from exc
            return transition.effect

    def _interact(self, effect: Effect) -> None:
        if effect.event is Event.DEPOSITED:
            if effect.manager_fee > 0:
                self.payment_rail.pay(self.config.manager, effect.manager_fee)
        elif effect.event is Event.WITHDRAWN:
            if effect.payout > 0:
                self.payment_rail.pay(effect.account, effect.payout)
        elif effect.event is Event.TOKEN_CLAIMED:
            # Reward last, once the venue has accepted the liquidity.
            if effect.provision is not None:
                self._provision(effect.provision)
            if effect.token_reward > 0:
                self.token_ledger.mint(effect.account, effect.token_reward)
        elif effect.event is Event.LIQUIDITY_FORCED:
            if effect.provision is not None:
                self._provision(effect.provision)

    def _provision(self, request: ProvisionRequest) -> None:
        token_amount = self.provisioner.quote(request.reserve_amount, request.pool)
        receipt = self.provisioner.provision(request.reserve_amount, token_amount, request.pool)
        next_state = finalize_provision(self._state, request, receipt)
        violations = check_state(next_state)
        if violations:
            raise GameInvariantError(violations)
        self._state = next_state
        logger.info(
            "liquidity %s into %s: %d reserve used, %d refunded",
            request.kind.value, receipt.pool, receipt.reserve_used, request.reserve_amount - receipt.reserve_used,
        )

    def _now(self, now: Optional[int]) -> int:
        return self._clock() if now is None else now

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def deposit(
        self,
        payer: AccountId,
        amount: int,
        referrer: Optional[AccountId] = None,
        *,
        now: Optional[int] = None,
    ) -> Effect:
        """Buy credits with `amount` payment base units; the first deposit registers the tower."""
        effect = self._execute(
            ActionParams(Action.DEPOSIT, payer, self._now(now), amount=amount, referrer=referrer)
        )
        logger.info(
            "deposit: %s paid %d for %d credits (fee %d, %d referral credits)",
            payer, amount, effect.credits, effect.manager_fee, sum(r.credits for r in effect.referral_credits),
        )
        return effect

    def upgrade_tower(self, caller: AccountId, tier: int, *, now: Optional[int] = None) -> Effect:
        effect = self._execute(ActionParams(Action.UPGRADE_TOWER, caller, self._now(now), tier=tier))
        logger.info(
            "upgrade: %s tier %d -> level %d for %d credits",
            caller, tier, self._towers.get(caller).builders[tier], effect.credits,
        )
        return effect

    def collect(self, caller: AccountId, *, now: Optional[int] = None) -> Effect:
        effect = self._execute(ActionParams(Action.COLLECT, caller, self._now(now)))
        logger.debug("collect: %s moved %d earnings to withdrawable", caller, effect.credits)
        return effect

    def withdraw(self, caller: AccountId, *, now: Optional[int] = None) -> Effect:
        """Pay out withdrawable earnings against the reserve; a short reserve pays what it can."""
        effect = self._execute(ActionParams(Action.WITHDRAW, caller, self._now(now)))
        remaining = self._towers.get(caller).withdrawable_earnings
        if remaining > 0:
            logger.warning(
                "withdraw: %s paid %d, reserve exhausted with %d earnings still owed",
                caller, effect.payout, remaining,
            )
        else:
            logger.info("withdraw: %s paid %d", caller, effect.payout)
        return effect

    def reinvest(self, caller: AccountId, *, now: Optional[int] = None) -> Effect:
        effect = self._execute(ActionParams(Action.REINVEST, caller, self._now(now)))
        logger.info("reinvest: %s turned %d earnings into %d credits", caller, effect.earnings_debited, effect.credits)
        return effect

    def claim_token(self, caller: AccountId, *, now: Optional[int] = None) -> Effect:
        """One-time reward for a fully built tower; seeds or tops up the liquidity pool."""
        effect = self._execute(ActionParams(Action.CLAIM_TOKEN, caller, self._now(now)))
        logger.info("claim: %s received %d tokens", caller, effect.token_reward)
        return effect

    def force_add_liquidity(self, caller: AccountId, *, now: Optional[int] = None) -> Effect:
        """Provision the pool from the reserve once the unlock time has passed; anyone may call."""
        effect = self._execute(ActionParams(Action.FORCE_ADD_LIQUIDITY, caller, self._now(now)))
        logger.info("force_add_liquidity by %s", caller)
        return effect

    def claim_referral_earnings(self, caller: AccountId, *, now: Optional[int] = None) -> Effect:
        effect = self._execute(ActionParams(Action.CLAIM_REFERRAL_EARNINGS, caller, self._now(now)))
        logger.info("referral claim: %s released %d earnings", caller, effect.credits)
        return effect

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def global_state(self) -> GlobalState:
        return self._state

    def tower(self, owner: AccountId) -> Optional[TowerAccount]:
        return self._towers.get(owner)

    def builders(self, owner: AccountId) -> Tuple[int, ...]:
        acc = self._towers.get(owner)
        return acc.builders if acc is not None else TowerAccount(owner=owner).builders

    def referral_earnings(self, owner: AccountId) -> Tuple[int, ...]:
        """Referral credits earned per level (level 0 = direct referrals)."""
        levels = len(self.config.referral_bps)
        acc = self._towers.get(owner)
        earned = acc.referral_earnings if acc is not None else ()
        return tuple(earned) + (0,) * max(0, levels - len(earned))

    def is_fully_built(self, owner: AccountId) -> bool:
        acc = self._towers.get(owner)
        return acc is not None and acc.is_fully_built

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def snapshot(self) -> GameSnapshot:
        return snapshot_from_state(self.config, self.catalog, self._state, self._towers)

    @classmethod
    def from_snapshot(
        cls,
        snapshot: Mapping[str, Any],
        *,
        payment_rail: PaymentRail,
        token_ledger: TokenLedger,
        provisioner: LiquidityProvisioner,
        clock: Optional[Clock] = None,
    ) -> "GameController":
        restored = state_from_snapshot(snapshot)
        return cls(
            restored.config,
            payment_rail=payment_rail,
            token_ledger=token_ledger,
            provisioner=provisioner,
            catalog=restored.catalog,
            clock=clock,
            state=restored.state,
            towers=restored.towers,
        )
