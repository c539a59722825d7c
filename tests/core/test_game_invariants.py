"""Tests for idletower/core/invariants.py."""

from dataclasses import replace

from idletower.core.catalog import DEFAULT_CATALOG
from idletower.core.invariants import check_account, check_all, check_state
from idletower.core.types import GlobalState, ProvisionStatus, TowerAccount


def _acc(**kwargs) -> TowerAccount:
    base = dict(owner="alice", registered_at=1, referrer="manager")
    base.update(kwargs)
    return TowerAccount(**base)


def _state(**kwargs) -> GlobalState:
    base = dict(start_time=1, liquidity_unlock_time=2)
    base.update(kwargs)
    return GlobalState(**base)


class TestAccountInvariants:
    def test_fresh_accounts_pass(self):
        assert check_account(DEFAULT_CATALOG, _acc()) == []
        assert check_account(DEFAULT_CATALOG, TowerAccount(owner="bob")) == []

    def test_consistent_build_passes(self):
        builders = (5, 5, 2, 0, 0, 0, 0, 0)
        acc = _acc(builders=builders, yield_rate=DEFAULT_CATALOG.yield_for(builders))
        assert check_account(DEFAULT_CATALOG, acc) == []

    def test_gap_in_builders(self):
        builders = (4, 1, 0, 0, 0, 0, 0, 0)
        acc = _acc(builders=builders, yield_rate=DEFAULT_CATALOG.yield_for(builders))
        assert check_account(DEFAULT_CATALOG, acc) == ["inv_builders_prefix"]

    def test_level_out_of_range(self):
        acc = _acc(builders=(6, 0, 0, 0, 0, 0, 0, 0))
        assert "inv_builders_shape" in check_account(DEFAULT_CATALOG, acc)

    def test_yield_mismatch(self):
        acc = _acc(builders=(1, 0, 0, 0, 0, 0, 0, 0), yield_rate=468)
        assert check_account(DEFAULT_CATALOG, acc) == ["inv_yield_matches_builders"]

    def test_negative_balance(self):
        assert check_account(DEFAULT_CATALOG, _acc(withdrawable_earnings=-1)) == ["inv_balances_nonneg"]

    def test_claim_without_full_build(self):
        assert check_account(DEFAULT_CATALOG, _acc(has_claimed=True)) == ["inv_claim_requires_full_build"]

    def test_self_referral(self):
        assert check_account(DEFAULT_CATALOG, _acc(referrer="alice")) == ["inv_no_self_referral"]

    def test_unregistered_with_credits(self):
        acc = TowerAccount(owner="bob", credits=5)
        assert check_account(DEFAULT_CATALOG, acc) == ["inv_unregistered_is_empty"]


class TestStateInvariants:
    def test_fresh_state_passes(self):
        assert check_state(_state()) == []

    def test_pool_handle_matches_status(self):
        assert check_state(_state(liquidity_status=ProvisionStatus.PROVISIONED)) == ["inv_pool_iff_provisioned"]
        assert check_state(_state(liquidity_pool="p")) == ["inv_pool_iff_provisioned"]
        assert check_state(_state(liquidity_status=ProvisionStatus.PROVISIONING)) == []

    def test_reserve_cannot_exceed_inflow(self):
        assert check_state(_state(reserve_balance=10, total_invested=5)) == ["inv_reserve_bounded_by_inflow"]

    def test_claims_bounded_by_towers(self):
        assert check_state(_state(total_claims=1)) == ["inv_claims_bounded_by_towers"]


class TestStepInvariants:
    def test_builders_never_decrease(self):
        builders = (2, 0, 0, 0, 0, 0, 0, 0)
        before = _acc(builders=builders, yield_rate=DEFAULT_CATALOG.yield_for(builders))
        after = replace(before, builders=(1, 0, 0, 0, 0, 0, 0, 0), yield_rate=467)
        violations = check_all(DEFAULT_CATALOG, _state(), {"alice": after}, {"alice": before})
        assert violations == ["alice:inv_builders_monotone"]

    def test_referrer_is_immutable_once_registered(self):
        before = _acc()
        after = replace(before, referrer="eve")
        assert check_all(DEFAULT_CATALOG, _state(), {"alice": after}, {"alice": before}) == [
            "alice:inv_referrer_immutable"
        ]

    def test_claim_is_sticky(self):
        builders = (5,) * 8
        before = _acc(builders=builders, yield_rate=DEFAULT_CATALOG.yield_for(builders), has_claimed=True)
        after = replace(before, has_claimed=False)
        assert check_all(DEFAULT_CATALOG, _state(), {"alice": after}, {"alice": before}) == ["alice:inv_claim_sticky"]

    def test_key_must_match_owner(self):
        assert check_all(DEFAULT_CATALOG, _state(), {"bob": _acc()}) == ["bob:inv_owner_key"]
