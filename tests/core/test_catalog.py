from __future__ import annotations

import pytest

from idletower.core.catalog import (
    DEFAULT_CATALOG,
    DEFAULT_COSTS,
    DEFAULT_YIELDS,
    MAX_SUB_LEVEL,
    NUM_TIERS,
    UpgradeCatalog,
    UpgradeCatalogEntry,
)


def test_first_purchase_costs_14_credits_and_yields_467() -> None:
    entry = DEFAULT_CATALOG.entry(0, 1)
    assert entry == UpgradeCatalogEntry(credit_cost=14, yield_increment=467)


def test_full_build_cost() -> None:
    assert DEFAULT_CATALOG.total_cost() == 141_565_732


def test_yield_for_sums_every_purchased_level() -> None:
    assert DEFAULT_CATALOG.yield_for((0,) * NUM_TIERS) == 0
    assert DEFAULT_CATALOG.yield_for((1,) + (0,) * 7) == 467
    assert DEFAULT_CATALOG.yield_for((5,) + (0,) * 7) == 467 + 722 + 1_488 + 2_797 + 6_285
    assert DEFAULT_CATALOG.yield_for((5, 1) + (0,) * 6) == 11_759 + 13_900


@pytest.mark.parametrize("tier, sub_level", [(-1, 1), (NUM_TIERS, 1), (0, 0), (0, MAX_SUB_LEVEL + 1), (True, 1)])
def test_entry_rejects_out_of_range(tier, sub_level) -> None:
    with pytest.raises(ValueError):
        DEFAULT_CATALOG.entry(tier, sub_level)


def test_costs_must_strictly_increase_within_a_tier() -> None:
    costs = [list(row) for row in DEFAULT_COSTS]
    costs[3][2] = costs[3][1]
    with pytest.raises(ValueError, match="credit costs"):
        UpgradeCatalog.from_tables(costs, DEFAULT_YIELDS)


def test_yields_must_strictly_increase_within_a_tier() -> None:
    yields = [list(row) for row in DEFAULT_YIELDS]
    yields[0][4] = 1
    with pytest.raises(ValueError, match="yield increments"):
        UpgradeCatalog.from_tables(DEFAULT_COSTS, yields)


def test_shape_is_checked() -> None:
    with pytest.raises(ValueError):
        UpgradeCatalog.from_tables(DEFAULT_COSTS[:7], DEFAULT_YIELDS[:7])
    with pytest.raises(ValueError):
        UpgradeCatalog.from_tables([row[:4] for row in DEFAULT_COSTS], [row[:4] for row in DEFAULT_YIELDS])


def test_entry_values_must_be_positive_ints() -> None:
    with pytest.raises(ValueError):
        UpgradeCatalogEntry(credit_cost=0, yield_increment=1)
    with pytest.raises(TypeError):
        UpgradeCatalogEntry(credit_cost=1.5, yield_increment=1)


def test_to_dict_rebuilds_the_same_catalog() -> None:
    d = DEFAULT_CATALOG.to_dict()
    assert UpgradeCatalog.from_tables(d["costs"], d["yields"]) == DEFAULT_CATALOG
