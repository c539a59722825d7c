"""Tests for idletower/core/engine.py: dispatch table + step function.

Each action is driven through `step()` against a `TowerTable`, committing the
returned transition the way the controller does.
"""

from dataclasses import replace

import pytest

from idletower.core.catalog import DEFAULT_CATALOG, MAX_SUB_LEVEL, NUM_TIERS
from idletower.core.config import SECONDS_PER_HOUR, GameConfig
from idletower.core.engine import step, try_step
from idletower.core.errors import (
    AlreadyClaimedError,
    AlreadyProvisionedError,
    ClaimForbiddenError,
    CreditCapExceededError,
    GameInvariantError,
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
from idletower.core.types import (
    Action,
    ActionParams,
    Event,
    GlobalState,
    ProvisionKind,
    ProvisionStatus,
    TowerAccount,
)
from idletower.state.towers import TowerTable

T0 = 1_700_000_000
UNIT = 10**18
PRICE = 10**12


class Game:
    """Tiny harness: pure step + commit."""

    def __init__(self, **overrides):
        base = dict(start_time=T0, payment_to_credit_rate=1_000_000, manager="manager")
        base.update(overrides)
        self.config = GameConfig(**base)
        self.state = GlobalState(start_time=T0, liquidity_unlock_time=self.config.liquidity_unlock_time)
        self.towers = TowerTable()

    def run(self, action, caller, now=T0, **kwargs):
        t = step(self.config, DEFAULT_CATALOG, self.state, self.towers, ActionParams(action, caller, now, **kwargs))
        self.state = t.state
        for acc in t.accounts.values():
            self.towers.set(acc)
        return t

    def put(self, acc: TowerAccount) -> None:
        self.towers.set(acc)


def _fully_built(owner: str) -> TowerAccount:
    builders = (MAX_SUB_LEVEL,) * NUM_TIERS
    return TowerAccount(
        owner=owner,
        builders=builders,
        yield_rate=DEFAULT_CATALOG.yield_for(builders),
        last_accrual=T0,
        registered_at=T0,
        referrer="manager",
    )


# ---------------------------------------------------------------------------
# deposit
# ---------------------------------------------------------------------------


class TestDeposit:
    def test_one_unit_buys_a_million_credits(self):
        g = Game()
        t = g.run(Action.DEPOSIT, "alice", amount=UNIT)
        acc = g.towers.get("alice")
        assert acc.credits == 1_000_000
        assert acc.is_registered
        assert acc.referrer == "manager"
        assert acc.last_accrual == T0
        assert t.effect.event is Event.DEPOSITED
        assert t.effect.manager_fee == UNIT // 10
        assert g.state.total_towers == 1
        assert g.state.total_invested == UNIT
        assert g.state.reserve_balance == UNIT - UNIT // 10
        assert g.state.manager_fees_paid == UNIT // 10

    def test_referrer_is_bound_once(self):
        g = Game()
        g.run(Action.DEPOSIT, "bob", amount=UNIT)
        g.run(Action.DEPOSIT, "alice", amount=UNIT, referrer="bob")
        g.run(Action.DEPOSIT, "alice", amount=UNIT, referrer="carol", now=T0 + 10)
        acc = g.towers.get("alice")
        assert acc.referrer == "bob"
        assert acc.registered_at == T0
        assert g.state.total_towers == 2

    def test_referral_credits_reach_the_referrer(self):
        g = Game()
        g.run(Action.DEPOSIT, "bob", amount=UNIT)
        t = g.run(Action.DEPOSIT, "alice", amount=UNIT, referrer="bob")
        assert g.towers.get("bob").unclaimed_referral == 50_000
        # bob's own referrer (the manager) is level 1 for alice's deposit.
        assert g.towers.get("manager").referral_earnings == (50_000, 30_000, 0)
        assert [r.account for r in t.effect.referral_credits] == ["bob", "manager"]

    def test_before_start_is_rejected(self):
        with pytest.raises(GameNotStartedError):
            Game().run(Action.DEPOSIT, "alice", now=T0 - 1, amount=UNIT)

    @pytest.mark.parametrize("amount", [0, -5, PRICE - 1])
    def test_zero_credit_deposit_is_rejected(self, amount):
        with pytest.raises(ZeroAmountError):
            Game().run(Action.DEPOSIT, "alice", amount=amount)

    def test_credit_cap(self):
        g = Game()
        g.run(Action.DEPOSIT, "alice", amount=150 * UNIT)
        with pytest.raises(MaxCreditsExceededError):
            g.run(Action.DEPOSIT, "alice", amount=PRICE)

    def test_step_does_not_mutate_inputs(self):
        g = Game()
        pre_state = g.state
        step(g.config, DEFAULT_CATALOG, g.state, g.towers, ActionParams(Action.DEPOSIT, "alice", T0, amount=UNIT))
        assert g.state is pre_state
        assert g.towers.get("alice") is None


# ---------------------------------------------------------------------------
# upgrade_tower
# ---------------------------------------------------------------------------


class TestUpgradeTower:
    def test_first_upgrade(self):
        g = Game()
        g.run(Action.DEPOSIT, "alice", amount=UNIT)
        t = g.run(Action.UPGRADE_TOWER, "alice", tier=0)
        acc = g.towers.get("alice")
        assert acc.builders[0] == 1
        assert acc.credits == 1_000_000 - 14
        assert acc.yield_rate == 467
        assert t.effect.credits == 14

    def test_upgrade_settles_accrual_at_the_old_rate(self):
        g = Game()
        g.run(Action.DEPOSIT, "alice", amount=UNIT)
        g.run(Action.UPGRADE_TOWER, "alice", tier=0)
        g.run(Action.UPGRADE_TOWER, "alice", tier=0, now=T0 + 2 * SECONDS_PER_HOUR)
        acc = g.towers.get("alice")
        assert acc.pending_earnings == 2 * 467
        assert acc.yield_rate == 467 + 722

    def test_unregistered_is_rejected(self):
        with pytest.raises(NotRegisteredError):
            Game().run(Action.UPGRADE_TOWER, "alice", tier=0)

    @pytest.mark.parametrize("tier", [-1, NUM_TIERS, True])
    def test_invalid_tier(self, tier):
        g = Game()
        g.run(Action.DEPOSIT, "alice", amount=UNIT)
        with pytest.raises(InvalidTierError):
            g.run(Action.UPGRADE_TOWER, "alice", tier=tier)

    def test_prerequisite(self):
        g = Game()
        g.run(Action.DEPOSIT, "alice", amount=UNIT)
        for _ in range(MAX_SUB_LEVEL - 1):
            g.run(Action.UPGRADE_TOWER, "alice", tier=0)
        with pytest.raises(PrerequisiteNotMetError):
            g.run(Action.UPGRADE_TOWER, "alice", tier=1)
        g.run(Action.UPGRADE_TOWER, "alice", tier=0)
        g.run(Action.UPGRADE_TOWER, "alice", tier=1)
        assert g.towers.get("alice").builders[:2] == (5, 1)

    def test_max_sub_level(self):
        g = Game()
        g.run(Action.DEPOSIT, "alice", amount=UNIT)
        for _ in range(MAX_SUB_LEVEL):
            g.run(Action.UPGRADE_TOWER, "alice", tier=0)
        with pytest.raises(MaxSubLevelError):
            g.run(Action.UPGRADE_TOWER, "alice", tier=0)

    def test_insufficient_credits(self):
        g = Game()
        g.run(Action.DEPOSIT, "alice", amount=13 * PRICE)
        with pytest.raises(InsufficientCreditsError):
            g.run(Action.UPGRADE_TOWER, "alice", tier=0)


# ---------------------------------------------------------------------------
# collect / withdraw / reinvest
# ---------------------------------------------------------------------------


class TestEarnings:
    def _earning(self) -> Game:
        g = Game()
        g.run(Action.DEPOSIT, "alice", amount=UNIT)
        g.run(Action.UPGRADE_TOWER, "alice", tier=0)
        return g

    def test_collect_after_a_day(self):
        g = self._earning()
        t = g.run(Action.COLLECT, "alice", now=T0 + 24 * SECONDS_PER_HOUR)
        assert t.effect.credits == 11_208
        assert g.towers.get("alice").withdrawable_earnings == 11_208

    def test_collect_requires_registration(self):
        with pytest.raises(NotRegisteredError):
            Game().run(Action.COLLECT, "alice")

    def test_withdraw_pays_from_reserve(self):
        g = self._earning()
        g.run(Action.COLLECT, "alice", now=T0 + 24 * SECONDS_PER_HOUR)
        reserve = g.state.reserve_balance
        t = g.run(Action.WITHDRAW, "alice", now=T0 + 24 * SECONDS_PER_HOUR)
        assert t.effect.payout == 11_208 * PRICE
        assert g.state.reserve_balance == reserve - 11_208 * PRICE
        acc = g.towers.get("alice")
        assert acc.withdrawable_earnings == 0
        assert acc.total_withdrawn == 11_208 * PRICE

    def test_withdraw_with_short_reserve_keeps_the_remainder(self):
        g = self._earning()
        g.run(Action.COLLECT, "alice", now=T0 + 24 * SECONDS_PER_HOUR)
        g.state = replace(g.state, reserve_balance=1_000 * PRICE + 1)
        t = g.run(Action.WITHDRAW, "alice", now=T0 + 24 * SECONDS_PER_HOUR)
        assert t.effect.payout == 1_000 * PRICE + 1
        assert t.effect.earnings_debited == 1_001
        assert g.state.reserve_balance == 0
        assert g.towers.get("alice").withdrawable_earnings == 11_208 - 1_001

    def test_withdraw_nothing_is_rejected(self):
        g = self._earning()
        with pytest.raises(ZeroAmountError):
            g.run(Action.WITHDRAW, "alice")

    def test_reinvest(self):
        g = self._earning()
        g.run(Action.COLLECT, "alice", now=T0 + 24 * SECONDS_PER_HOUR)
        t = g.run(Action.REINVEST, "alice", now=T0 + 24 * SECONDS_PER_HOUR)
        acc = g.towers.get("alice")
        assert t.effect.credits == 11_208
        assert acc.credits == 1_000_000 - 14 + 11_208
        assert acc.withdrawable_earnings == 0

    def test_reinvest_respects_the_cap(self):
        g = Game()
        g.run(Action.DEPOSIT, "alice", amount=150 * UNIT)
        g.run(Action.UPGRADE_TOWER, "alice", tier=0)
        g.run(Action.COLLECT, "alice", now=T0 + 24 * SECONDS_PER_HOUR)
        with pytest.raises(CreditCapExceededError):
            g.run(Action.REINVEST, "alice", now=T0 + 24 * SECONDS_PER_HOUR)

    def test_reinvest_nothing_is_rejected(self):
        g = self._earning()
        with pytest.raises(ZeroAmountError):
            g.run(Action.REINVEST, "alice")


# ---------------------------------------------------------------------------
# claim_token / force_add_liquidity
# ---------------------------------------------------------------------------


class TestClaimAndLiquidity:
    def _with_builder(self, reserve: int = 900) -> Game:
        g = Game()
        g.put(_fully_built("alice"))
        g.state = replace(g.state, total_towers=1, total_invested=reserve, reserve_balance=reserve)
        return g

    def test_claim_requires_full_build(self):
        g = Game()
        g.run(Action.DEPOSIT, "alice", amount=UNIT)
        with pytest.raises(ClaimForbiddenError):
            g.run(Action.CLAIM_TOKEN, "alice")
        with pytest.raises(ClaimForbiddenError):
            g.run(Action.CLAIM_TOKEN, "nobody")

    def test_claim_seeds_liquidity_once(self):
        g = self._with_builder()
        t = g.run(Action.CLAIM_TOKEN, "alice")
        assert t.effect.token_reward == g.config.claim_reward_tokens
        assert t.effect.provision.kind is ProvisionKind.SEED
        assert t.effect.provision.reserve_amount == 900
        assert g.state.reserve_balance == 0
        assert g.state.liquidity_status is ProvisionStatus.PROVISIONING
        assert g.state.total_claims == 1
        assert g.towers.get("alice").has_claimed

    def test_claim_twice_is_rejected(self):
        g = self._with_builder()
        g.put(replace(_fully_built("alice"), has_claimed=True))
        with pytest.raises(AlreadyClaimedError):
            g.run(Action.CLAIM_TOKEN, "alice")

    def test_claim_with_empty_reserve_skips_provisioning(self):
        g = self._with_builder(reserve=0)
        t = g.run(Action.CLAIM_TOKEN, "alice")
        assert t.effect.provision is None
        assert g.state.liquidity_status is ProvisionStatus.NOT_PROVISIONED

    def test_force_before_unlock(self):
        g = self._with_builder()
        with pytest.raises(ProvisionWindowNotReachedError):
            g.run(Action.FORCE_ADD_LIQUIDITY, "anyone", now=g.config.liquidity_unlock_time - 1)

    def test_force_after_unlock(self):
        g = self._with_builder()
        t = g.run(Action.FORCE_ADD_LIQUIDITY, "anyone", now=g.config.liquidity_unlock_time)
        assert t.effect.event is Event.LIQUIDITY_FORCED
        assert t.effect.provision.reserve_amount == 900
        assert t.accounts == {}

    def test_force_with_empty_reserve(self):
        g = self._with_builder(reserve=0)
        with pytest.raises(ZeroAmountError):
            g.run(Action.FORCE_ADD_LIQUIDITY, "anyone", now=g.config.liquidity_unlock_time)

    def test_force_when_provisioned(self):
        g = self._with_builder()
        g.state = replace(g.state, liquidity_status=ProvisionStatus.PROVISIONED, liquidity_pool="pool")
        with pytest.raises(AlreadyProvisionedError):
            g.run(Action.FORCE_ADD_LIQUIDITY, "anyone", now=g.config.liquidity_unlock_time)


# ---------------------------------------------------------------------------
# claim_referral_earnings
# ---------------------------------------------------------------------------


def test_claim_referral_earnings() -> None:
    g = Game()
    g.run(Action.DEPOSIT, "bob", amount=UNIT)
    g.run(Action.DEPOSIT, "alice", amount=UNIT, referrer="bob")
    t = g.run(Action.CLAIM_REFERRAL_EARNINGS, "bob")
    assert t.effect.credits == 50_000
    bob = g.towers.get("bob")
    assert bob.unclaimed_referral == 0
    assert bob.withdrawable_earnings == 50_000
    with pytest.raises(ZeroAmountError):
        g.run(Action.CLAIM_REFERRAL_EARNINGS, "bob")


# ---------------------------------------------------------------------------
# engine plumbing
# ---------------------------------------------------------------------------


def test_corrupted_account_trips_invariants() -> None:
    g = Game()
    g.put(TowerAccount(owner="alice", yield_rate=999, registered_at=T0, last_accrual=T0))
    with pytest.raises(GameInvariantError) as excinfo:
        g.run(Action.COLLECT, "alice")
    assert "alice:inv_yield_matches_builders" in excinfo.value.violations


def test_try_step_reports_rejection_by_error_name() -> None:
    g = Game()
    r = try_step(g.config, DEFAULT_CATALOG, g.state, g.towers, ActionParams(Action.WITHDRAW, "alice", T0))
    assert not r.accepted
    assert r.rejection == "ZeroAmountError"
    assert isinstance(r.error, ZeroAmountError)

    ok = try_step(g.config, DEFAULT_CATALOG, g.state, g.towers, ActionParams(Action.DEPOSIT, "alice", T0, amount=UNIT))
    assert ok.accepted
    assert ok.transition.effect.credits == 1_000_000


def test_every_action_checks_the_start_time() -> None:
    g = Game()
    for action in Action:
        with pytest.raises(GameNotStartedError):
            g.run(action, "alice", now=T0 - 1, amount=UNIT)
