from __future__ import annotations

import pytest

from idletower.kernels.python.lp_math import (
    MIN_LP_LOCK,
    mint_liquidity,
    optimal_liquidity,
    quote,
    weighted_initial_shares,
    weighted_join,
)


def test_quote_is_ratio_preserving() -> None:
    assert quote(amount0=100, reserve0=1_000, reserve1=2_000) == 200
    assert quote(amount0=1, reserve0=3, reserve1=2) == 0
    with pytest.raises(ValueError):
        quote(amount0=1, reserve0=0, reserve1=2)


def test_optimal_liquidity_refunds_the_excess_side() -> None:
    r = optimal_liquidity(reserve0=1_000, reserve1=2_000, amount0_desired=100, amount1_desired=500)
    assert (r.amount0_used, r.amount1_used) == (100, 200)
    assert (r.amount0_refund, r.amount1_refund) == (0, 300)

    r = optimal_liquidity(reserve0=1_000, reserve1=2_000, amount0_desired=100, amount1_desired=50)
    assert (r.amount0_used, r.amount1_used) == (25, 50)


def test_initial_mint_locks_minimum_liquidity() -> None:
    r = mint_liquidity(reserve0=0, reserve1=0, total_supply=0, amount0_desired=10_000, amount1_desired=10_000)
    assert r.liquidity_minted == 10_000 - MIN_LP_LOCK
    assert r.new_total_supply == 10_000
    assert (r.new_reserve0, r.new_reserve1) == (10_000, 10_000)


def test_initial_mint_uses_integer_isqrt() -> None:
    n = (1 << 70) + 12345
    r = mint_liquidity(reserve0=0, reserve1=0, total_supply=0, amount0_desired=n, amount1_desired=n)
    assert r.liquidity_minted == n - MIN_LP_LOCK


def test_initial_mint_too_small() -> None:
    with pytest.raises(ValueError):
        mint_liquidity(reserve0=0, reserve1=0, total_supply=0, amount0_desired=1_000, amount1_desired=1_000)


def test_proportional_mint() -> None:
    r = mint_liquidity(
        reserve0=10_000, reserve1=10_000, total_supply=10_000, amount0_desired=1_000, amount1_desired=5_000
    )
    assert r.liquidity_minted == 1_000
    assert (r.amount0_used, r.amount1_used) == (1_000, 1_000)
    assert r.new_total_supply == 11_000


def test_weighted_seed_join() -> None:
    assert weighted_initial_shares(amounts=(10_000, 30_000), weights=(5_000, 5_000)) == 20_000
    r = weighted_join(balances=(0, 0), weights=(5_000, 5_000), total_shares=0, max_amounts_in=(10_000, 30_000))
    assert r.shares_minted == 20_000 - MIN_LP_LOCK
    assert r.new_total_shares == 20_000
    assert r.amounts_in == (10_000, 30_000)


def test_weighted_proportional_join_rounds_in_favour_of_the_pool() -> None:
    r = weighted_join(
        balances=(10_000, 30_000), weights=(8_000, 2_000), total_shares=20_000, max_amounts_in=(1_000, 6_000)
    )
    assert r.shares_minted == 2_000
    assert r.amounts_in == (1_000, 3_000)
    assert r.new_balances == (11_000, 33_000)
    assert r.new_total_shares == 22_000

    r = weighted_join(balances=(3, 7), weights=(5_000, 5_000), total_shares=10, max_amounts_in=(1, 10))
    # shares = min(1*10//3, 10*10//7) = 3; pulls ceil(3*3/10)=1 and ceil(3*7/10)=3
    assert r.shares_minted == 3
    assert r.amounts_in == (1, 3)


def test_weighted_rejects_bad_weights() -> None:
    with pytest.raises(ValueError):
        weighted_initial_shares(amounts=(10_000, 10_000), weights=(5_000, 4_000))
    with pytest.raises(ValueError):
        weighted_join(balances=(1, 1, 1), weights=(5_000, 5_000), total_shares=0, max_amounts_in=(1, 1))
