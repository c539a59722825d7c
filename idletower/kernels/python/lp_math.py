"""
Liquidity math kernel.

Pure functions with explicit rounding rules for the two venue shapes the game
can provision into:
- constant-product pools (Uniswap-v2 style pair, locked minimum liquidity),
- weighted pools (fixed per-token weights, proportional joins).

Rounding always favours the pool: shares round down, amounts pulled from the
provider round up.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence, Tuple


MIN_LP_LOCK = 1000
WEIGHT_DENOM = 10_000


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


@dataclass(frozen=True)
class OptimalLiquidityResult:
    amount0_used: int
    amount1_used: int
    amount0_refund: int
    amount1_refund: int


@dataclass(frozen=True)
class MintLiquidityResult:
    liquidity_minted: int
    amount0_used: int
    amount1_used: int
    new_reserve0: int
    new_reserve1: int
    new_total_supply: int


@dataclass(frozen=True)
class WeightedJoinResult:
    shares_minted: int
    amounts_in: Tuple[int, ...]
    new_balances: Tuple[int, ...]
    new_total_shares: int


# ---------------------------------------------------------------------------
# Constant product
# ---------------------------------------------------------------------------


def quote(*, amount0: int, reserve0: int, reserve1: int) -> int:
    """Amount of token1 matching `amount0` at the pool ratio (floor)."""
    for name, v in (("amount0", amount0), ("reserve0", reserve0), ("reserve1", reserve1)):
        _require_int(name, v)
    if amount0 <= 0:
        raise ValueError("amount0 must be positive")
    if reserve0 <= 0 or reserve1 <= 0:
        raise ValueError("cannot quote against an empty pool")
    return (amount0 * reserve1) // reserve0


def optimal_liquidity(
    *,
    reserve0: int,
    reserve1: int,
    amount0_desired: int,
    amount1_desired: int,
) -> OptimalLiquidityResult:
    """
    Compute ratio-preserving used amounts and refunds.

    For an empty pool (reserve0 == 0 or reserve1 == 0), uses everything and refunds nothing.
    """
    for name, v in (
        ("reserve0", reserve0),
        ("reserve1", reserve1),
        ("amount0_desired", amount0_desired),
        ("amount1_desired", amount1_desired),
    ):
        _require_int(name, v)

    if reserve0 < 0 or reserve1 < 0:
        raise ValueError("reserves must be non-negative")
    if amount0_desired <= 0 or amount1_desired <= 0:
        raise ValueError("desired amounts must be positive")

    if reserve0 == 0 or reserve1 == 0:
        return OptimalLiquidityResult(
            amount0_used=amount0_desired,
            amount1_used=amount1_desired,
            amount0_refund=0,
            amount1_refund=0,
        )

    amount1_from_amount0 = quote(amount0=amount0_desired, reserve0=reserve0, reserve1=reserve1)
    if amount1_from_amount0 <= amount1_desired:
        amount0_used = amount0_desired
        amount1_used = amount1_from_amount0
    else:
        amount0_used = quote(amount0=amount1_desired, reserve0=reserve1, reserve1=reserve0)
        amount1_used = amount1_desired

    if amount0_used <= 0 or amount1_used <= 0:
        raise ValueError("computed used amounts must be positive")

    return OptimalLiquidityResult(
        amount0_used=amount0_used,
        amount1_used=amount1_used,
        amount0_refund=amount0_desired - amount0_used,
        amount1_refund=amount1_desired - amount1_used,
    )


def mint_liquidity(
    *,
    reserve0: int,
    reserve1: int,
    total_supply: int,
    amount0_desired: int,
    amount1_desired: int,
    min_lp_lock: int = MIN_LP_LOCK,
) -> MintLiquidityResult:
    """
    Mint LP shares for a ratio-preserving deposit.

    The first mint locks `min_lp_lock` shares forever; `total_supply` includes them.
    """
    _require_int("total_supply", total_supply)
    if total_supply < 0:
        raise ValueError("total_supply must be non-negative")

    opt = optimal_liquidity(
        reserve0=reserve0,
        reserve1=reserve1,
        amount0_desired=amount0_desired,
        amount1_desired=amount1_desired,
    )

    if total_supply == 0:
        if reserve0 != 0 or reserve1 != 0:
            raise ValueError("cannot mint initial liquidity when reserves are non-zero")
        sqrt_product = math.isqrt(opt.amount0_used * opt.amount1_used)
        if sqrt_product <= min_lp_lock:
            raise ValueError("insufficient initial liquidity (sqrt(amount0*amount1) <= min_lp_lock)")
        minted = sqrt_product - min_lp_lock
        new_total_supply = sqrt_product
    else:
        if reserve0 == 0 or reserve1 == 0:
            raise ValueError("cannot mint into an empty pool when total_supply > 0")
        minted = min(
            (opt.amount0_used * total_supply) // reserve0,
            (opt.amount1_used * total_supply) // reserve1,
        )
        if minted <= 0:
            raise ValueError("liquidity_minted is zero (deposit too small)")
        new_total_supply = total_supply + minted

    return MintLiquidityResult(
        liquidity_minted=minted,
        amount0_used=opt.amount0_used,
        amount1_used=opt.amount1_used,
        new_reserve0=reserve0 + opt.amount0_used,
        new_reserve1=reserve1 + opt.amount1_used,
        new_total_supply=new_total_supply,
    )


# ---------------------------------------------------------------------------
# Weighted pools
# ---------------------------------------------------------------------------


def _require_vectors(weights: Sequence[int], *vectors: Sequence[int]) -> None:
    if len(weights) < 2:
        raise ValueError("a weighted pool needs at least two tokens")
    if sum(weights) != WEIGHT_DENOM or any(w <= 0 for w in weights):
        raise ValueError(f"weights must be positive and sum to {WEIGHT_DENOM}")
    for vec in vectors:
        if len(vec) != len(weights):
            raise ValueError("vector length does not match the number of tokens")
        for v in vec:
            _require_int("amount", v)
            if v < 0:
                raise ValueError("amounts must be non-negative")


def weighted_initial_shares(*, amounts: Sequence[int], weights: Sequence[int]) -> int:
    """Shares for the first join: the weight-averaged deposit, less the locked minimum."""
    _require_vectors(weights, amounts)
    if any(a <= 0 for a in amounts):
        raise ValueError("initial amounts must be positive")
    value = sum(a * w for a, w in zip(amounts, weights)) // WEIGHT_DENOM
    if value <= MIN_LP_LOCK:
        raise ValueError("insufficient initial liquidity (weighted value <= MIN_LP_LOCK)")
    return value


def weighted_join(
    *,
    balances: Sequence[int],
    weights: Sequence[int],
    total_shares: int,
    max_amounts_in: Sequence[int],
) -> WeightedJoinResult:
    """
    Join a weighted pool with at most `max_amounts_in`.

    The first join takes everything and locks MIN_LP_LOCK shares. Later joins are
    proportional: the scarcest token sets the shares, and each token is pulled at
    the pool ratio (ceil), which never exceeds its maximum.
    """
    _require_vectors(weights, balances, max_amounts_in)
    _require_int("total_shares", total_shares)
    if total_shares < 0:
        raise ValueError("total_shares must be non-negative")

    if total_shares == 0:
        if any(balances):
            raise ValueError("cannot seed a pool that already holds balances")
        value = weighted_initial_shares(amounts=max_amounts_in, weights=weights)
        amounts_in = tuple(max_amounts_in)
        return WeightedJoinResult(
            shares_minted=value - MIN_LP_LOCK,
            amounts_in=amounts_in,
            new_balances=amounts_in,
            new_total_shares=value,
        )

    if any(b <= 0 for b in balances):
        raise ValueError("cannot join a pool with an empty balance")
    shares = min((m * total_shares) // b for m, b in zip(max_amounts_in, balances))
    if shares <= 0:
        raise ValueError("shares_minted is zero (join too small)")
    amounts_in = tuple(-(-(shares * b) // total_shares) for b in balances)
    if any(a > m for a, m in zip(amounts_in, max_amounts_in)):
        raise AssertionError("join pulled more than the maximum")
    return WeightedJoinResult(
        shares_minted=shares,
        amounts_in=amounts_in,
        new_balances=tuple(b + a for b, a in zip(balances, amounts_in)),
        new_total_shares=total_shares + shares,
    )
