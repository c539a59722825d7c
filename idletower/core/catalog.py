"""
Upgrade catalog: the static (tier, sub-level) -> (credit cost, yield increment) table.

Tiers are numbered 0..7 and sub-levels 1..5. A tower buys sub-levels of a tier
strictly in order and may only open tier t+1 once tier t is at sub-level 5.
Within a tier both cost and yield strictly increase.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple


NUM_TIERS = 8
MAX_SUB_LEVEL = 5


@dataclass(frozen=True)
class UpgradeCatalogEntry:
    credit_cost: int
    yield_increment: int

    def __post_init__(self) -> None:
        for name, v in (("credit_cost", self.credit_cost), ("yield_increment", self.yield_increment)):
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
            if v <= 0:
                raise ValueError(f"{name} must be positive: {v}")


# Credits per purchase, indexed [tier][sub_level - 1].
DEFAULT_COSTS: Tuple[Tuple[int, ...], ...] = (
    (14, 21, 42, 77, 168),
    (385, 490, 630, 840, 1_120),
    (2_450, 3_115, 3_990, 5_180, 6_860),
    (14_350, 18_550, 23_800, 30_800, 40_250),
    (84_000, 105_000, 135_100, 175_000, 227_500),
    (455_000, 577_500, 738_500, 945_000, 1_225_000),
    (2_450_000, 3_115_000, 3_990_000, 5_110_000, 6_580_000),
    (13_300_000, 16_975_000, 21_700_000, 27_825_000, 35_700_000),
)

# Yield per hour added by each purchase, same indexing.
DEFAULT_YIELDS: Tuple[Tuple[int, ...], ...] = (
    (467, 722, 1_488, 2_797, 6_285),
    (13_900, 17_900, 23_200, 31_400, 42_500),
    (88_000, 112_000, 143_500, 186_000, 246_000),
    (515_000, 667_000, 853_000, 1_100_000, 1_440_000),
    (3_010_000, 3_760_000, 4_840_000, 6_270_000, 8_150_000),
    (16_300_000, 20_700_000, 26_500_000, 33_900_000, 43_900_000),
    (87_800_000, 111_600_000, 143_000_000, 183_100_000, 235_800_000),
    (476_600_000, 608_400_000, 777_700_000, 997_200_000, 1_279_400_000),
)


@dataclass(frozen=True)
class UpgradeCatalog:
    """Immutable 8x5 table of upgrade entries."""

    entries: Tuple[Tuple[UpgradeCatalogEntry, ...], ...]

    def __post_init__(self) -> None:
        if len(self.entries) != NUM_TIERS:
            raise ValueError(f"catalog must have {NUM_TIERS} tiers, got {len(self.entries)}")
        for tier, row in enumerate(self.entries):
            if len(row) != MAX_SUB_LEVEL:
                raise ValueError(f"tier {tier} must have {MAX_SUB_LEVEL} sub-levels, got {len(row)}")
            for prev, cur in zip(row, row[1:]):
                if cur.credit_cost <= prev.credit_cost:
                    raise ValueError(f"tier {tier}: credit costs must strictly increase")
                if cur.yield_increment <= prev.yield_increment:
                    raise ValueError(f"tier {tier}: yield increments must strictly increase")

    @classmethod
    def from_tables(cls, costs: Sequence[Sequence[int]], yields: Sequence[Sequence[int]]) -> "UpgradeCatalog":
        if len(costs) != len(yields):
            raise ValueError("costs and yields must have the same number of tiers")
        rows = []
        for tier, (cost_row, yield_row) in enumerate(zip(costs, yields)):
            if len(cost_row) != len(yield_row):
                raise ValueError(f"tier {tier}: costs and yields must have the same length")
            rows.append(
                tuple(UpgradeCatalogEntry(credit_cost=c, yield_increment=y) for c, y in zip(cost_row, yield_row))
            )
        return cls(entries=tuple(rows))

    def entry(self, tier: int, sub_level: int) -> UpgradeCatalogEntry:
        """Look up (tier, sub_level); sub-levels are 1-based."""
        if not isinstance(tier, int) or isinstance(tier, bool) or not (0 <= tier < NUM_TIERS):
            raise ValueError(f"tier must be in [0, {NUM_TIERS - 1}]: {tier!r}")
        if not isinstance(sub_level, int) or isinstance(sub_level, bool) or not (1 <= sub_level <= MAX_SUB_LEVEL):
            raise ValueError(f"sub_level must be in [1, {MAX_SUB_LEVEL}]: {sub_level!r}")
        return self.entries[tier][sub_level - 1]

    def yield_for(self, builders: Sequence[int]) -> int:
        """Total yield of a tower whose tiers are built to `builders`."""
        total = 0
        for tier, level in enumerate(builders):
            for sub_level in range(1, level + 1):
                total += self.entries[tier][sub_level - 1].yield_increment
        return total

    def total_cost(self) -> int:
        """Credits needed to build every tier to the last sub-level."""
        return sum(e.credit_cost for row in self.entries for e in row)

    def to_dict(self) -> dict:
        return {
            "costs": [[e.credit_cost for e in row] for row in self.entries],
            "yields": [[e.yield_increment for e in row] for row in self.entries],
        }


DEFAULT_CATALOG = UpgradeCatalog.from_tables(DEFAULT_COSTS, DEFAULT_YIELDS)
