"""Protocol-based interfaces for Aetherium collaborators.

This module exports the contracts the battle service depends on, so
production adapters and test fakes are interchangeable.
"""

from aetherium.interfaces.battle_store import IBattleStore
from aetherium.interfaces.chain import IChainGateway
from aetherium.interfaces.characters import ICharacterDirectory

__all__ = [
    "IBattleStore",
    "IChainGateway",
    "ICharacterDirectory",
]
