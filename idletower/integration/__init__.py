"""
Imperative shell: controller, collaborator interfaces and in-memory collaborators
"""

from .collaborators import PaymentRail, RouterVenue, TokenLedger, VaultVenue
from .controller import GameController
from .ledgers import InMemoryPaymentRail, InMemoryTokenLedger
from .provisioners import (
    ConstantProductProvisioner,
    LiquidityProvisioner,
    WeightedVaultProvisioner,
    make_provisioner,
)
from .venues import InMemoryRouter, InMemoryWeightedVault

__all__ = [
    "PaymentRail",
    "RouterVenue",
    "TokenLedger",
    "VaultVenue",
    "GameController",
    "InMemoryPaymentRail",
    "InMemoryTokenLedger",
    "ConstantProductProvisioner",
    "LiquidityProvisioner",
    "WeightedVaultProvisioner",
    "make_provisioner",
    "InMemoryRouter",
    "InMemoryWeightedVault",
]
