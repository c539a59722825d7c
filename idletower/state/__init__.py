"""
State storage and persistence for the tower game
"""

from .snapshot import GAME_SNAPSHOT_VERSION, GameSnapshot, RestoredGame, snapshot_from_state, state_from_snapshot
from .towers import TowerTable

__all__ = [
    "GAME_SNAPSHOT_VERSION",
    "GameSnapshot",
    "RestoredGame",
    "TowerTable",
    "snapshot_from_state",
    "state_from_snapshot",
]
