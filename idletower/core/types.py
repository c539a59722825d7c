"""Data types for the tower game engine.

All types are frozen dataclasses (immutable); transitions build new values with
`dataclasses.replace()`.

Units/conventions:
- payment amounts (`amount`, `reserve_balance`, `payout`, ...) are integer base
  units of the payment asset (10**payment_decimals per whole unit);
- credits, yields and earnings are integer credit units;
- `*_bps` rates are basis points (1/10_000);
- times are integer unix seconds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Mapping, Optional, Protocol, Tuple

from .catalog import MAX_SUB_LEVEL, NUM_TIERS


AccountId = str


@unique
class ProvisionStatus(Enum):
    NOT_PROVISIONED = "not_provisioned"
    PROVISIONING = "provisioning"
    PROVISIONED = "provisioned"


@unique
class ProvisionKind(Enum):
    SEED = "seed"
    TOP_UP = "top_up"


@unique
class Action(Enum):
    """One member per state-changing operation."""
    DEPOSIT = "deposit"
    UPGRADE_TOWER = "upgrade_tower"
    COLLECT = "collect"
    WITHDRAW = "withdraw"
    REINVEST = "reinvest"
    CLAIM_TOKEN = "claim_token"
    FORCE_ADD_LIQUIDITY = "force_add_liquidity"
    CLAIM_REFERRAL_EARNINGS = "claim_referral_earnings"


@unique
class Event(Enum):
    DEPOSITED = "Deposited"
    TOWER_UPGRADED = "TowerUpgraded"
    COLLECTED = "Collected"
    WITHDRAWN = "Withdrawn"
    REINVESTED = "Reinvested"
    TOKEN_CLAIMED = "TokenClaimed"
    LIQUIDITY_FORCED = "LiquidityForced"
    REFERRAL_CLAIMED = "ReferralClaimed"


@dataclass(frozen=True)
class GlobalState:
    """Mutable-by-replacement singleton of game-wide counters."""

    start_time: int
    liquidity_unlock_time: int
    total_towers: int = 0
    total_invested: int = 0
    reserve_balance: int = 0
    manager_fees_paid: int = 0
    total_claims: int = 0
    liquidity_status: ProvisionStatus = ProvisionStatus.NOT_PROVISIONED
    liquidity_pool: Optional[str] = None

    @property
    def liquidity_provisioned(self) -> bool:
        return self.liquidity_status is not ProvisionStatus.NOT_PROVISIONED


def _empty_builders() -> Tuple[int, ...]:
    return (0,) * NUM_TIERS


@dataclass(frozen=True)
class TowerAccount:
    """Per-account ledger entry. Created zero-initialized, never deleted."""

    owner: AccountId
    credits: int = 0
    yield_rate: int = 0
    last_accrual: int = 0
    pending_earnings: int = 0
    withdrawable_earnings: int = 0
    builders: Tuple[int, ...] = field(default_factory=_empty_builders)
    referrer: Optional[AccountId] = None
    # Total referral credits earned, one slot per referral level.
    referral_earnings: Tuple[int, ...] = ()
    unclaimed_referral: int = 0
    has_claimed: bool = False
    registered_at: Optional[int] = None
    total_withdrawn: int = 0

    @property
    def is_registered(self) -> bool:
        return self.registered_at is not None

    @property
    def is_fully_built(self) -> bool:
        return all(level == MAX_SUB_LEVEL for level in self.builders)


class TowerReader(Protocol):
    """Read-only view over the tower table used by the pure core."""

    def get(self, owner: AccountId) -> Optional[TowerAccount]: ...


@dataclass(frozen=True)
class ActionParams:
    """Parameters for an action. Unused fields keep their defaults."""

    action: Action
    caller: AccountId
    now: int
    amount: int = 0                       # deposit
    tier: int = 0                         # upgrade_tower
    referrer: Optional[AccountId] = None  # deposit


@dataclass(frozen=True)
class ReferralCredit:
    account: AccountId
    level: int
    credits: int


@dataclass(frozen=True)
class ProvisionRequest:
    """Reserve earmarked for the liquidity gate; already debited from the reserve."""

    kind: ProvisionKind
    reserve_amount: int
    pool: Optional[str] = None


@dataclass(frozen=True)
class Effect:
    """Observable outcome of an accepted step; tells the shell which external calls to make."""

    event: Event
    account: AccountId
    credits: int = 0
    manager_fee: int = 0
    payout: int = 0
    earnings_debited: int = 0
    token_reward: int = 0
    referral_credits: Tuple[ReferralCredit, ...] = ()
    provision: Optional[ProvisionRequest] = None


@dataclass(frozen=True)
class Transition:
    """Result of a step: next global state plus every account the step touched."""

    state: GlobalState
    accounts: Mapping[AccountId, TowerAccount]
    effect: Effect
