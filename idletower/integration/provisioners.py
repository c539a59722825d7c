"""
Liquidity provisioners (imperative shell).

A provisioner turns a `ProvisionRequest` into calls on one concrete venue:

- `quote(reserve_amount, pool)` prices the game-token side: the configured seed
  price for a new pool (weight-adjusted on a weighted vault), the live pool
  ratio for a top-up;
- `provision(reserve_amount, token_amount, pool)` creates the pool if needed,
  joins it with slippage-bounded minimums, then moves the amounts the venue
  actually used (payment asset via the payment rail, game token minted
  straight to the venue).
"""

from __future__ import annotations

import logging
from typing import Optional

from ..core.config import BPS_DENOM, VENUE_KIND_ROUTER, VENUE_KIND_VAULT, GameConfig
from ..core.liquidity_gate import ProvisionReceipt, seed_token_amount
from ..kernels.python.lp_math import quote, weighted_join
from .collaborators import PaymentRail, RouterVenue, TokenLedger, VaultVenue


logger = logging.getLogger(__name__)


def _with_slippage(amount: int, slippage_bps: int) -> int:
    return (amount * (BPS_DENOM - slippage_bps)) // BPS_DENOM


class LiquidityProvisioner:
    """Interface for provisioning the game's liquidity pool."""

    def __init__(self, config: GameConfig, payment_rail: PaymentRail, token_ledger: TokenLedger) -> None:
        self.config = config
        self.payment_rail = payment_rail
        self.token_ledger = token_ledger

    def quote(self, reserve_amount: int, pool: Optional[str]) -> int:
        raise NotImplementedError

    def provision(self, reserve_amount: int, token_amount: int, pool: Optional[str]) -> ProvisionReceipt:
        raise NotImplementedError

    def _settle(self, venue_account: str, reserve_used: int, token_used: int) -> None:
        if reserve_used > 0:
            self.payment_rail.pay(venue_account, reserve_used)
        if token_used > 0:
            self.token_ledger.mint(venue_account, token_used)


class ConstantProductProvisioner(LiquidityProvisioner):
    def __init__(
        self,
        config: GameConfig,
        router: RouterVenue,
        payment_rail: PaymentRail,
        token_ledger: TokenLedger,
    ) -> None:
        super().__init__(config, payment_rail, token_ledger)
        self.router = router

    def _existing_pool(self, pool: Optional[str]) -> Optional[str]:
        cfg = self.config
        return pool if pool is not None else self.router.get_pool(cfg.payment_asset, cfg.game_token)

    def quote(self, reserve_amount: int, pool: Optional[str]) -> int:
        cfg = self.config
        pool = self._existing_pool(pool)
        if pool is not None:
            reserve_pay, reserve_tok = self.router.get_reserves(pool, cfg.payment_asset, cfg.game_token)
            if reserve_pay > 0 and reserve_tok > 0:
                return quote(amount0=reserve_amount, reserve0=reserve_pay, reserve1=reserve_tok)
        return seed_token_amount(cfg, reserve_amount)

    def provision(self, reserve_amount: int, token_amount: int, pool: Optional[str]) -> ProvisionReceipt:
        cfg = self.config
        # A pair left behind by an earlier failed attempt is reused.
        pool = self._existing_pool(pool)
        if pool is None:
            pool = self.router.create_pool(cfg.payment_asset, cfg.game_token)
        used_pay, used_tok, shares = self.router.add_liquidity(
            cfg.game_account,
            cfg.payment_asset,
            cfg.game_token,
            reserve_amount,
            token_amount,
            _with_slippage(reserve_amount, cfg.slippage_bps),
            _with_slippage(token_amount, cfg.slippage_bps),
        )
        self._settle(self.router.account, used_pay, used_tok)
        logger.info("provisioned %s: %d payment + %d token -> %d shares", pool, used_pay, used_tok, shares)
        return ProvisionReceipt(pool=pool, reserve_used=used_pay, token_used=used_tok, shares=shares)


class WeightedVaultProvisioner(LiquidityProvisioner):
    def __init__(
        self,
        config: GameConfig,
        vault: VaultVenue,
        payment_rail: PaymentRail,
        token_ledger: TokenLedger,
    ) -> None:
        super().__init__(config, payment_rail, token_ledger)
        self.vault = vault
        self._unfunded_pool: Optional[str] = None

    def _pool_balances(self, pool: str) -> tuple:
        """(payment balance, token balance, total shares) of `pool`."""
        cfg = self.config
        tokens, balances, total_shares = self.vault.get_pool_tokens(pool)
        by_token = dict(zip(tokens, balances))
        if cfg.payment_asset not in by_token or cfg.game_token not in by_token:
            raise ValueError(f"pool {pool} does not hold {cfg.payment_asset}/{cfg.game_token}")
        return by_token[cfg.payment_asset], by_token[cfg.game_token], total_shares

    def quote(self, reserve_amount: int, pool: Optional[str]) -> int:
        if pool is None:
            # Spot price of a weighted pool is (B_tok / w_tok) / (B_pay / w_pay).
            w_pay, w_tok = self.config.pool_weights_bps
            return seed_token_amount(self.config, reserve_amount) * w_tok // w_pay
        bal_pay, bal_tok, _ = self._pool_balances(pool)
        return quote(amount0=reserve_amount, reserve0=bal_pay, reserve1=bal_tok)

    def _expected_shares(self, pool: str, reserve_amount: int, token_amount: int) -> int:
        bal_pay, bal_tok, total_shares = self._pool_balances(pool)
        res = weighted_join(
            balances=(bal_pay, bal_tok),
            weights=self.config.pool_weights_bps,
            total_shares=total_shares,
            max_amounts_in=(reserve_amount, token_amount),
        )
        return res.shares_minted

    def provision(self, reserve_amount: int, token_amount: int, pool: Optional[str]) -> ProvisionReceipt:
        cfg = self.config
        if pool is None:
            # A pool registered by an earlier failed attempt is reused.
            if self._unfunded_pool is None:
                self._unfunded_pool = self.vault.register_weighted_pool(
                    (cfg.payment_asset, cfg.game_token), cfg.pool_weights_bps
                )
            pool = self._unfunded_pool
        min_shares = _with_slippage(self._expected_shares(pool, reserve_amount, token_amount), cfg.slippage_bps)
        tokens, _, _ = self.vault.get_pool_tokens(pool)
        desired = {cfg.payment_asset: reserve_amount, cfg.game_token: token_amount}
        amounts_in, shares = self.vault.join(pool, cfg.game_account, [desired[t] for t in tokens], min_shares)
        self._unfunded_pool = None
        used = dict(zip(tokens, amounts_in))
        used_pay, used_tok = used[cfg.payment_asset], used[cfg.game_token]
        self._settle(self.vault.account, used_pay, used_tok)
        logger.info("provisioned %s: %d payment + %d token -> %d shares", pool, used_pay, used_tok, shares)
        return ProvisionReceipt(pool=pool, reserve_used=used_pay, token_used=used_tok, shares=shares)


def make_provisioner(
    config: GameConfig,
    venue: object,
    payment_rail: PaymentRail,
    token_ledger: TokenLedger,
) -> LiquidityProvisioner:
    if config.venue_kind == VENUE_KIND_ROUTER:
        if not isinstance(venue, RouterVenue):
            raise TypeError(f"venue_kind {VENUE_KIND_ROUTER!r} needs a RouterVenue, got {type(venue).__name__}")
        return ConstantProductProvisioner(config, venue, payment_rail, token_ledger)
    if config.venue_kind == VENUE_KIND_VAULT:
        if not isinstance(venue, VaultVenue):
            raise TypeError(f"venue_kind {VENUE_KIND_VAULT!r} needs a VaultVenue, got {type(venue).__name__}")
        return WeightedVaultProvisioner(config, venue, payment_rail, token_ledger)
    raise ValueError(f"unsupported venue_kind: {config.venue_kind!r}")
