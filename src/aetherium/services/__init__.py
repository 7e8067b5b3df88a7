"""Service layer for Aetherium battles.

Services depend on the protocol interfaces in :mod:`aetherium.interfaces`:

- BattleService: battle start, turn resolution, settlement bookkeeping
- LocalChainGateway / HttpChainGateway: cooldown checks and reward settlement

Production wiring lives in :mod:`aetherium.api.runtime`; tests construct
``BattleService`` directly with in-memory fakes.
"""

from aetherium.services.battle_service import BattleService, BattleStart, TurnOutcome
from aetherium.services.chain_gateway import HttpChainGateway, LocalChainGateway

__all__ = [
    "BattleService",
    "BattleStart",
    "HttpChainGateway",
    "LocalChainGateway",
    "TurnOutcome",
]
