"""
Game state snapshot encoding.

Goals:
- Deterministic JSON serialization for hashing / persistence.
- Round-trippable into the functional-core types (config, catalog, global
  state, tower table).
- Explicit versioning.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from ..core.catalog import UpgradeCatalog
from ..core.config import GameConfig, config_from_mapping
from ..core.types import GlobalState, ProvisionStatus, TowerAccount
from .canonical import canonical_json_bytes, domain_sep_bytes, sha256_hex
from .towers import TowerTable


GAME_SNAPSHOT_VERSION = 1


def _require_str(value: Any, *, name: str, max_len: int = 4096) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a string")
    if not value:
        raise ValueError(f"{name} must be non-empty")
    if len(value) > max_len:
        raise ValueError(f"{name} too large")
    return value


def _optional_str(value: Any, *, name: str) -> Optional[str]:
    if value is None:
        return None
    return _require_str(value, name=name)


def _require_int(value: Any, *, name: str, non_negative: bool = True) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if non_negative and value < 0:
        raise ValueError(f"{name} must be non-negative")
    return int(value)


def _require_int_list(value: Any, *, name: str) -> tuple:
    if not isinstance(value, list):
        raise TypeError(f"{name} must be a list")
    return tuple(_require_int(v, name=f"{name}[]") for v in value)


@dataclass(frozen=True)
class GameSnapshot:
    """
    Deterministic, versioned snapshot of the whole game.

    The commitment is *not* included inside `data` to avoid self-reference.
    """

    version: int
    data: Dict[str, Any]

    def canonical_bytes(self) -> bytes:
        return canonical_json_bytes(self.data)

    def commitment_bytes(self) -> bytes:
        payload = domain_sep_bytes("game_snapshot", version=self.version) + self.canonical_bytes()
        return hashlib.sha256(payload).digest()

    def commitment_hex(self) -> str:
        payload = domain_sep_bytes("game_snapshot", version=self.version) + self.canonical_bytes()
        return sha256_hex(payload)


@dataclass(frozen=True)
class RestoredGame:
    config: GameConfig
    catalog: UpgradeCatalog
    state: GlobalState
    towers: TowerTable


def _account_entry(acc: TowerAccount) -> Dict[str, Any]:
    return {
        "owner": acc.owner,
        "credits": int(acc.credits),
        "yield_rate": int(acc.yield_rate),
        "last_accrual": int(acc.last_accrual),
        "pending_earnings": int(acc.pending_earnings),
        "withdrawable_earnings": int(acc.withdrawable_earnings),
        "builders": list(acc.builders),
        "referrer": acc.referrer,
        "referral_earnings": list(acc.referral_earnings),
        "unclaimed_referral": int(acc.unclaimed_referral),
        "has_claimed": bool(acc.has_claimed),
        "registered_at": acc.registered_at,
        "total_withdrawn": int(acc.total_withdrawn),
    }


def snapshot_from_state(
    config: GameConfig,
    catalog: UpgradeCatalog,
    state: GlobalState,
    towers: TowerTable,
    *,
    version: int = GAME_SNAPSHOT_VERSION,
) -> GameSnapshot:
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("version must be a positive int")
    if state.liquidity_status is ProvisionStatus.PROVISIONING:
        raise ValueError("cannot snapshot while provisioning is in progress")

    accounts = [_account_entry(towers.get(owner)) for owner in towers.owners()]

    data: Dict[str, Any] = {
        "version": int(version),
        "config": config.to_dict(),
        "catalog": catalog.to_dict(),
        "global": {
            "start_time": int(state.start_time),
            "liquidity_unlock_time": int(state.liquidity_unlock_time),
            "total_towers": int(state.total_towers),
            "total_invested": int(state.total_invested),
            "reserve_balance": int(state.reserve_balance),
            "manager_fees_paid": int(state.manager_fees_paid),
            "total_claims": int(state.total_claims),
            "liquidity_status": state.liquidity_status.value,
            "liquidity_pool": state.liquidity_pool,
        },
        "accounts": accounts,
    }
    return GameSnapshot(version=version, data=data)


def _account_from_entry(entry: Mapping[str, Any]) -> TowerAccount:
    registered_at = entry.get("registered_at")
    if registered_at is not None:
        registered_at = _require_int(registered_at, name="account.registered_at")
    has_claimed = entry.get("has_claimed", False)
    if not isinstance(has_claimed, bool):
        raise TypeError("account.has_claimed must be a bool")
    return TowerAccount(
        owner=_require_str(entry.get("owner"), name="account.owner", max_len=512),
        credits=_require_int(entry.get("credits", 0), name="account.credits"),
        yield_rate=_require_int(entry.get("yield_rate", 0), name="account.yield_rate"),
        last_accrual=_require_int(entry.get("last_accrual", 0), name="account.last_accrual"),
        pending_earnings=_require_int(entry.get("pending_earnings", 0), name="account.pending_earnings"),
        withdrawable_earnings=_require_int(
            entry.get("withdrawable_earnings", 0), name="account.withdrawable_earnings"
        ),
        builders=_require_int_list(entry.get("builders"), name="account.builders"),
        referrer=_optional_str(entry.get("referrer"), name="account.referrer"),
        referral_earnings=_require_int_list(entry.get("referral_earnings", []), name="account.referral_earnings"),
        unclaimed_referral=_require_int(entry.get("unclaimed_referral", 0), name="account.unclaimed_referral"),
        has_claimed=has_claimed,
        registered_at=registered_at,
        total_withdrawn=_require_int(entry.get("total_withdrawn", 0), name="account.total_withdrawn"),
    )


def state_from_snapshot(snapshot: Mapping[str, Any], *, max_accounts: int = 1_000_000) -> RestoredGame:
    if not isinstance(snapshot, Mapping):
        raise TypeError("snapshot must be a mapping")

    version = snapshot.get("version", GAME_SNAPSHOT_VERSION)
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("snapshot.version must be a positive int")
    if version != GAME_SNAPSHOT_VERSION:
        raise ValueError(f"unsupported snapshot version: {version}")

    config_obj = snapshot.get("config")
    if not isinstance(config_obj, Mapping):
        raise TypeError("snapshot.config must be an object")
    config = config_from_mapping(config_obj)

    catalog_obj = snapshot.get("catalog")
    if not isinstance(catalog_obj, Mapping):
        raise TypeError("snapshot.catalog must be an object")
    catalog = UpgradeCatalog.from_tables(catalog_obj.get("costs"), catalog_obj.get("yields"))

    g = snapshot.get("global")
    if not isinstance(g, Mapping):
        raise TypeError("snapshot.global must be an object")
    status_raw = g.get("liquidity_status", ProvisionStatus.NOT_PROVISIONED.value)
    try:
        status = ProvisionStatus(str(status_raw))
    except ValueError as exc:
        raise ValueError(f"invalid liquidity status: {status_raw}") from exc
    if status is ProvisionStatus.PROVISIONING:
        raise ValueError("snapshot taken mid-provisioning")
    state = GlobalState(
        start_time=_require_int(g.get("start_time"), name="global.start_time"),
        liquidity_unlock_time=_require_int(g.get("liquidity_unlock_time"), name="global.liquidity_unlock_time"),
        total_towers=_require_int(g.get("total_towers", 0), name="global.total_towers"),
        total_invested=_require_int(g.get("total_invested", 0), name="global.total_invested"),
        reserve_balance=_require_int(g.get("reserve_balance", 0), name="global.reserve_balance"),
        manager_fees_paid=_require_int(g.get("manager_fees_paid", 0), name="global.manager_fees_paid"),
        total_claims=_require_int(g.get("total_claims", 0), name="global.total_claims"),
        liquidity_status=status,
        liquidity_pool=_optional_str(g.get("liquidity_pool"), name="global.liquidity_pool"),
    )

    towers = TowerTable()
    entries = snapshot.get("accounts")
    if entries is None:
        entries = []
    if not isinstance(entries, list):
        raise TypeError("snapshot.accounts must be a list")
    if len(entries) > max_accounts:
        raise ValueError(f"too many account entries: {len(entries)} > {max_accounts}")
    for entry in entries:
        if not isinstance(entry, Mapping):
            raise TypeError("snapshot.accounts entries must be objects")
        acc = _account_from_entry(entry)
        if acc.owner in towers:
            raise ValueError(f"duplicate account entry: {acc.owner}")
        towers.set(acc)

    return RestoredGame(config=config, catalog=catalog, state=state, towers=towers)
