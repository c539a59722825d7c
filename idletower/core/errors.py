"""Exception types for the tower game engine.

Every rejected operation raises exactly one of these, so callers can tell
failures apart without parsing messages. The engine never partially applies a
rejected operation.
"""

from __future__ import annotations


class GameError(Exception):
    """Base class for all game rejections."""


class GameNotStartedError(GameError):
    """Raised when an operation is attempted before `start_time`."""


class ZeroAmountError(GameError):
    """Raised when an amount (deposit, earnings, reserve) is zero."""


class MaxCreditsExceededError(GameError):
    """Raised when a deposit would push a tower above the per-tower credit cap."""


class InvalidTierError(GameError):
    """Raised for a tier outside the catalog."""


class PrerequisiteNotMetError(GameError):
    """Raised when the previous tier is not fully built."""


class MaxSubLevelError(GameError):
    """Raised when the tier is already at its last sub-level."""


class InsufficientCreditsError(GameError):
    """Raised when a tower cannot pay for an upgrade."""


class NotRegisteredError(GameError):
    """Raised when the caller never deposited."""


class AlreadyClaimedError(GameError):
    """Raised on a second token claim by the same account."""


class ClaimForbiddenError(GameError):
    """Raised when a claim is attempted before every tier is fully built."""


class CreditCapExceededError(GameError):
    """Raised when reinvesting would push a tower above the per-tower credit cap."""


class AlreadyProvisionedError(GameError):
    """Raised when the liquidity pool was already provisioned."""


class ProvisionWindowNotReachedError(GameError):
    """Raised when forced provisioning is attempted before the unlock time."""


class ReentrancyError(GameError):
    """Raised when a guarded operation is entered while another is in flight."""


class ExternalVenueError(GameError):
    """Raised when a collaborator call fails; the original error is the `__cause__`."""


class GameInvariantError(GameError):
    """Raised when a post-state violates one or more invariants."""

    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        super().__init__(f"invariant violations: {', '.join(violations)}")
