"""
In-memory liquidity venues.

`InMemoryRouter` keeps constant-product pair pools; `InMemoryWeightedVault`
keeps weighted pools. Both are passive: they price a join, update their own
books and return the amounts used. Moving the assets in is the caller's job
(see `provisioners.py`).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, Optional, Sequence, Tuple

from ..kernels.python.lp_math import mint_liquidity, weighted_join
from .collaborators import RouterVenue, VaultVenue


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PairPool:
    handle: str
    token0: str
    token1: str
    reserve0: int = 0
    reserve1: int = 0
    total_supply: int = 0


@dataclass(frozen=True)
class WeightedPool:
    pool_id: str
    tokens: Tuple[str, ...]
    weights: Tuple[int, ...]
    balances: Tuple[int, ...]
    total_shares: int = 0


class InMemoryRouter(RouterVenue):
    def __init__(self, account: str = "router") -> None:
        self.account = account
        self._pools: Dict[str, PairPool] = {}
        self._by_pair: Dict[Tuple[str, str], str] = {}
        self.shares: Dict[Tuple[str, str], int] = {}

    @staticmethod
    def _pair_key(token_a: str, token_b: str) -> Tuple[str, str]:
        if token_a == token_b:
            raise ValueError("identical tokens")
        return (token_a, token_b) if token_a < token_b else (token_b, token_a)

    def pool(self, handle: str) -> PairPool:
        try:
            return self._pools[handle]
        except KeyError:
            raise ValueError(f"unknown pool: {handle}") from None

    def get_pool(self, token_a: str, token_b: str) -> Optional[str]:
        return self._by_pair.get(self._pair_key(token_a, token_b))

    def create_pool(self, token_a: str, token_b: str) -> str:
        key = self._pair_key(token_a, token_b)
        if key in self._by_pair:
            raise ValueError(f"pool already exists for {key[0]}/{key[1]}")
        handle = f"pair:{key[0]}/{key[1]}"
        self._pools[handle] = PairPool(handle=handle, token0=key[0], token1=key[1])
        self._by_pair[key] = handle
        logger.info("created pool %s", handle)
        return handle

    def get_reserves(self, handle: str, token_a: str, token_b: str) -> Tuple[int, int]:
        p = self.pool(handle)
        if (token_a, token_b) == (p.token0, p.token1):
            return p.reserve0, p.reserve1
        if (token_a, token_b) == (p.token1, p.token0):
            return p.reserve1, p.reserve0
        raise ValueError(f"pool {handle} does not hold {token_a}/{token_b}")

    def add_liquidity(
        self,
        provider: str,
        token_a: str,
        token_b: str,
        amount_a_desired: int,
        amount_b_desired: int,
        amount_a_min: int,
        amount_b_min: int,
    ) -> Tuple[int, int, int]:
        key = self._pair_key(token_a, token_b)
        handle = self._by_pair.get(key)
        if handle is None:
            handle = self.create_pool(token_a, token_b)
        p = self._pools[handle]
        flipped = token_a != p.token0
        reserve_a, reserve_b = (p.reserve1, p.reserve0) if flipped else (p.reserve0, p.reserve1)

        res = mint_liquidity(
            reserve0=reserve_a,
            reserve1=reserve_b,
            total_supply=p.total_supply,
            amount0_desired=amount_a_desired,
            amount1_desired=amount_b_desired,
        )
        if res.amount0_used < amount_a_min:
            raise ValueError(f"insufficient {token_a} amount: {res.amount0_used} < {amount_a_min}")
        if res.amount1_used < amount_b_min:
            raise ValueError(f"insufficient {token_b} amount: {res.amount1_used} < {amount_b_min}")

        new0, new1 = (res.new_reserve1, res.new_reserve0) if flipped else (res.new_reserve0, res.new_reserve1)
        self._pools[handle] = replace(p, reserve0=new0, reserve1=new1, total_supply=res.new_total_supply)
        share_key = (handle, provider)
        self.shares[share_key] = self.shares.get(share_key, 0) + res.liquidity_minted
        logger.info(
            "added liquidity to %s: %d %s + %d %s -> %d shares",
            handle, res.amount0_used, token_a, res.amount1_used, token_b, res.liquidity_minted,
        )
        return res.amount0_used, res.amount1_used, res.liquidity_minted


class InMemoryWeightedVault(VaultVenue):
    def __init__(self, account: str = "vault") -> None:
        self.account = account
        self._pools: Dict[str, WeightedPool] = {}
        self.shares: Dict[Tuple[str, str], int] = {}

    def pool(self, pool_id: str) -> WeightedPool:
        try:
            return self._pools[pool_id]
        except KeyError:
            raise ValueError(f"unknown pool: {pool_id}") from None

    def register_weighted_pool(self, tokens: Sequence[str], weights: Sequence[int]) -> str:
        tokens = tuple(tokens)
        weights = tuple(weights)
        if len(tokens) != len(weights):
            raise ValueError("tokens and weights must have the same length")
        if len(set(tokens)) != len(tokens):
            raise ValueError("duplicate tokens")
        pool_id = f"weighted:{len(self._pools)}:{'/'.join(tokens)}"
        self._pools[pool_id] = WeightedPool(
            pool_id=pool_id,
            tokens=tokens,
            weights=weights,
            balances=(0,) * len(tokens),
        )
        logger.info("registered weighted pool %s with weights %s", pool_id, weights)
        return pool_id

    def get_pool_tokens(self, pool_id: str) -> Tuple[Tuple[str, ...], Tuple[int, ...], int]:
        p = self.pool(pool_id)
        return p.tokens, p.balances, p.total_shares

    def join(
        self,
        pool_id: str,
        provider: str,
        max_amounts_in: Sequence[int],
        min_share_out: int,
    ) -> Tuple[Tuple[int, ...], int]:
        p = self.pool(pool_id)
        res = weighted_join(
            balances=p.balances,
            weights=p.weights,
            total_shares=p.total_shares,
            max_amounts_in=tuple(max_amounts_in),
        )
        if res.shares_minted < min_share_out:
            raise ValueError(f"shares out {res.shares_minted} below minimum {min_share_out}")
        self._pools[pool_id] = replace(p, balances=res.new_balances, total_shares=res.new_total_shares)
        share_key = (pool_id, provider)
        self.shares[share_key] = self.shares.get(share_key, 0) + res.shares_minted
        logger.info("joined %s with %s -> %d shares", pool_id, res.amounts_in, res.shares_minted)
        return res.amounts_in, res.shares_minted
