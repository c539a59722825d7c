"""
Core game algorithms
"""

from .catalog import DEFAULT_CATALOG, MAX_SUB_LEVEL, NUM_TIERS, UpgradeCatalog, UpgradeCatalogEntry
from .config import GameConfig, config_from_mapping, load_config
from .engine import StepResult, step, try_step
from .errors import GameError, GameInvariantError
from .types import (
    Action,
    ActionParams,
    Effect,
    Event,
    GlobalState,
    ProvisionKind,
    ProvisionRequest,
    ProvisionStatus,
    TowerAccount,
    Transition,
)

__all__ = [
    "DEFAULT_CATALOG",
    "MAX_SUB_LEVEL",
    "NUM_TIERS",
    "UpgradeCatalog",
    "UpgradeCatalogEntry",
    "GameConfig",
    "config_from_mapping",
    "load_config",
    "StepResult",
    "step",
    "try_step",
    "GameError",
    "GameInvariantError",
    "Action",
    "ActionParams",
    "Effect",
    "Event",
    "GlobalState",
    "ProvisionKind",
    "ProvisionRequest",
    "ProvisionStatus",
    "TowerAccount",
    "Transition",
]
