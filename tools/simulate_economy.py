#!/usr/bin/env python3
"""
Run a seeded multi-player simulation of the tower game against in-memory
collaborators and print a summary.

Each simulated hour every player picks one action at random (deposit, upgrade
the cheapest open tier, collect, withdraw, reinvest, claim). Rejected actions are
counted by error type; they are part of normal play.
"""

from __future__ import annotations

import argparse
import json
import logging
import random
import sys
from collections import Counter
from pathlib import Path
from typing import Any, Dict, Optional

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from idletower.core.catalog import MAX_SUB_LEVEL
from idletower.core.config import SECONDS_PER_HOUR, GameConfig, config_from_mapping, load_config
from idletower.core.errors import GameError
from idletower.integration import (
    GameController,
    InMemoryPaymentRail,
    InMemoryRouter,
    InMemoryTokenLedger,
    InMemoryWeightedVault,
    make_provisioner,
)


DEFAULT_START = 1_700_000_000


def _build_game(config: GameConfig, clock) -> GameController:
    rail = InMemoryPaymentRail()
    ledger = InMemoryTokenLedger(config.game_token)
    venue = InMemoryRouter() if config.venue_kind == "router" else InMemoryWeightedVault()
    return GameController(
        config,
        payment_rail=rail,
        token_ledger=ledger,
        provisioner=make_provisioner(config, venue, rail, ledger),
        clock=clock,
    )


def _next_tier(builders) -> Optional[int]:
    for tier, level in enumerate(builders):
        if level < MAX_SUB_LEVEL:
            return tier
    return None


def simulate(config: GameConfig, *, players: int, hours: int, seed: int) -> Dict[str, Any]:
    rng = random.Random(seed)
    now = [config.start_time]
    game = _build_game(config, lambda: now[0])
    names = [f"player{i}" for i in range(players)]
    accepted: Counter = Counter()
    rejected: Counter = Counter()

    def attempt(label: str, fn, *args) -> None:
        try:
            fn(*args)
        except GameError as exc:
            rejected[type(exc).__name__] += 1
        else:
            accepted[label] += 1

    for i, name in enumerate(names):
        referrer = names[rng.randrange(i)] if i > 0 else None
        attempt("deposit", game.deposit, name, config.payment_unit * rng.randint(1, 5), referrer)

    for _ in range(hours):
        now[0] += SECONDS_PER_HOUR
        for name in names:
            roll = rng.random()
            if roll < 0.05:
                attempt("deposit", game.deposit, name, config.payment_unit * rng.randint(1, 3))
            elif roll < 0.45:
                tier = _next_tier(game.builders(name))
                if tier is not None:
                    attempt("upgrade_tower", game.upgrade_tower, name, tier)
            elif roll < 0.75:
                attempt("collect", game.collect, name)
            elif roll < 0.85:
                attempt("withdraw", game.withdraw, name)
            elif roll < 0.95:
                attempt("reinvest", game.reinvest, name)
            else:
                attempt("claim_referral_earnings", game.claim_referral_earnings, name)
            if game.is_fully_built(name) and not game.tower(name).has_claimed:
                attempt("claim_token", game.claim_token, name)

    if not game.global_state.liquidity_provisioned and now[0] >= config.liquidity_unlock_time:
        attempt("force_add_liquidity", game.force_add_liquidity, names[0])

    g = game.global_state
    return {
        "players": players,
        "hours": hours,
        "seed": seed,
        "total_towers": g.total_towers,
        "total_invested": g.total_invested,
        "reserve_balance": g.reserve_balance,
        "manager_fees_paid": g.manager_fees_paid,
        "total_claims": g.total_claims,
        "liquidity_status": g.liquidity_status.value,
        "liquidity_pool": g.liquidity_pool,
        "paid_out": game.payment_rail.total_paid,
        "accepted": dict(sorted(accepted.items())),
        "rejected": dict(sorted(rejected.items())),
        "snapshot_commitment": game.snapshot().commitment_hex(),
    }


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Simulate the tower game economy with in-memory collaborators.")
    p.add_argument("--config", type=Path, default=None, help="GameConfig YAML (default: built-in demo config)")
    p.add_argument("--players", type=int, default=10, help="Number of simulated players (default: 10)")
    p.add_argument("--hours", type=int, default=24 * 7, help="Simulated hours (default: one week)")
    p.add_argument("--seed", type=int, default=0, help="RNG seed (default: 0)")
    p.add_argument("--venue", choices=("router", "vault"), default=None, help="Override venue_kind")
    p.add_argument("--json", action="store_true", help="Print the summary as JSON")
    p.add_argument("-v", "--verbose", action="count", default=0, help="-v for INFO logs, -vv for DEBUG")
    args = p.parse_args(argv)

    level = logging.WARNING - 10 * min(args.verbose, 2)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    if args.players <= 0 or args.hours < 0:
        p.error("--players must be positive and --hours non-negative")

    if args.config is not None:
        config = load_config(args.config)
    else:
        config = config_from_mapping(
            {"start_time": DEFAULT_START, "payment_to_credit_rate": 1_000_000, "manager": "manager"}
        )
    if args.venue is not None:
        config = config_from_mapping({**config.to_dict(), "venue_kind": args.venue})

    summary = simulate(config, players=args.players, hours=args.hours, seed=args.seed)
    if args.json:
        print(json.dumps(summary, indent=2, sort_keys=True))
    else:
        for key, value in summary.items():
            print(f"[simulate] {key}={value}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
