"""
Game configuration (immutable after construction).

`GameConfig` is validated eagerly; everything the engine derives from it
(credit price, unlock time) is computed from validated integers only.

YAML layout accepted by `load_config()` is a flat mapping whose keys are the
`GameConfig` field names, e.g.:

    start_time: 1700000000
    payment_to_credit_rate: 1000000
    manager: "0xmanager"
    fee_bps: 1000
    referral_bps: [500, 300, 200]
    venue_kind: router
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Tuple

import yaml


BPS_DENOM = 10_000
SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 24 * SECONDS_PER_HOUR

REFERRAL_PAYOUT_LEDGER = "ledger"
REFERRAL_PAYOUT_AUTO = "auto"
VENUE_KIND_ROUTER = "router"
VENUE_KIND_VAULT = "vault"


def _require_int(name: str, value: Any, *, minimum: int = 0) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}: {value}")


def _require_bps(name: str, value: Any) -> None:
    _require_int(name, value)
    if value > BPS_DENOM:
        raise ValueError(f"{name} must be in [0, {BPS_DENOM}]: {value}")


def _require_str(name: str, value: Any) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{name} must be a non-empty string")


@dataclass(frozen=True)
class GameConfig:
    start_time: int
    payment_to_credit_rate: int
    manager: str

    payment_decimals: int = 18
    fee_bps: int = 1000
    max_credits_per_tower: int = 150_000_000
    max_accrual_hours: int = 24

    # Per-level referral share of minted credits (level 0 = direct referrer).
    referral_bps: Tuple[int, ...] = (500, 300, 200)
    referral_payout: str = REFERRAL_PAYOUT_LEDGER

    # Liquidity provisioning.
    liquidity_unlock_delay: int = 30 * SECONDS_PER_DAY
    liquidity_reserve_bps: int = BPS_DENOM
    claim_reward_tokens: int = 1_000 * 10**18
    seed_tokens_per_payment_unit: int = 100_000 * 10**18
    slippage_bps: int = 100
    venue_kind: str = VENUE_KIND_ROUTER
    pool_weights_bps: Tuple[int, int] = (5000, 5000)

    # Collaborator identities.
    payment_asset: str = "WETH"
    game_token: str = "TOWER"
    game_account: str = "game"

    def __post_init__(self) -> None:
        _require_int("start_time", self.start_time, minimum=1)
        _require_int("payment_to_credit_rate", self.payment_to_credit_rate, minimum=1)
        _require_str("manager", self.manager)
        _require_int("payment_decimals", self.payment_decimals)
        _require_bps("fee_bps", self.fee_bps)
        _require_int("max_credits_per_tower", self.max_credits_per_tower, minimum=1)
        _require_int("max_accrual_hours", self.max_accrual_hours, minimum=1)

        unit = 10**self.payment_decimals
        if unit % self.payment_to_credit_rate != 0:
            raise ValueError(
                f"payment_to_credit_rate ({self.payment_to_credit_rate}) must divide 10**payment_decimals ({unit})"
            )

        if not isinstance(self.referral_bps, tuple):
            raise TypeError("referral_bps must be a tuple")
        for i, bps in enumerate(self.referral_bps):
            _require_bps(f"referral_bps[{i}]", bps)
        if self.referral_payout not in (REFERRAL_PAYOUT_LEDGER, REFERRAL_PAYOUT_AUTO):
            raise ValueError(f"referral_payout must be {REFERRAL_PAYOUT_LEDGER!r} or {REFERRAL_PAYOUT_AUTO!r}")

        _require_int("liquidity_unlock_delay", self.liquidity_unlock_delay)
        _require_bps("liquidity_reserve_bps", self.liquidity_reserve_bps)
        _require_int("claim_reward_tokens", self.claim_reward_tokens)
        _require_int("seed_tokens_per_payment_unit", self.seed_tokens_per_payment_unit, minimum=1)
        _require_bps("slippage_bps", self.slippage_bps)
        if self.venue_kind not in (VENUE_KIND_ROUTER, VENUE_KIND_VAULT):
            raise ValueError(f"venue_kind must be {VENUE_KIND_ROUTER!r} or {VENUE_KIND_VAULT!r}")
        if not isinstance(self.pool_weights_bps, tuple) or len(self.pool_weights_bps) != 2:
            raise TypeError("pool_weights_bps must be a (payment, token) tuple")
        for i, w in enumerate(self.pool_weights_bps):
            _require_bps(f"pool_weights_bps[{i}]", w)
            if w == 0:
                raise ValueError("pool weights must be positive")
        if sum(self.pool_weights_bps) != BPS_DENOM:
            raise ValueError(f"pool_weights_bps must sum to {BPS_DENOM}")

        for name in ("payment_asset", "game_token", "game_account"):
            _require_str(name, getattr(self, name))
        if self.payment_asset == self.game_token:
            raise ValueError("payment_asset and game_token must differ")

    @property
    def payment_unit(self) -> int:
        """Payment base units in one whole payment unit."""
        return 10**self.payment_decimals

    @property
    def credit_price(self) -> int:
        """Payment base units per credit."""
        return self.payment_unit // self.payment_to_credit_rate

    @property
    def liquidity_unlock_time(self) -> int:
        return self.start_time + self.liquidity_unlock_delay

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for f in fields(self):
            v = getattr(self, f.name)
            out[f.name] = list(v) if isinstance(v, tuple) else v
        return out


_TUPLE_FIELDS = ("referral_bps", "pool_weights_bps")


def config_from_mapping(data: Mapping[str, Any]) -> GameConfig:
    """Build a `GameConfig` from a plain mapping (e.g. parsed YAML). Unknown keys are rejected."""
    if not isinstance(data, Mapping):
        raise TypeError("config must be a mapping")
    known = {f.name for f in fields(GameConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"unknown config keys: {', '.join(unknown)}")
    kwargs = dict(data)
    for name in _TUPLE_FIELDS:
        if name in kwargs and isinstance(kwargs[name], list):
            kwargs[name] = tuple(kwargs[name])
    return GameConfig(**kwargs)


def load_config(path: str | Path) -> GameConfig:
    """Load a `GameConfig` from a YAML file."""
    obj = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if not isinstance(obj, Mapping):
        raise TypeError("config YAML must be a mapping")
    return config_from_mapping(obj)
