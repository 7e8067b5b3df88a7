"""Blockchain Gateway Protocol Interface.

This module defines the two calls the battle service makes to the chain:
the combat cooldown check before a battle and the reward settlement after it.
"""

from typing import Protocol


class IChainGateway(Protocol):
    """Protocol for the blockchain collaborator."""

    def is_cooldown_active(self, wallet_address: str) -> bool:
        """Return True while the wallet may not start another battle.

        Raises:
            ChainUnavailableError: If the chain could not be queried
        """
        ...

    def settle_battle_reward(self, wallet_address: str, victory: bool, *, battle_id: str) -> str:
        """Credit the battle outcome on chain and return the transaction reference.

        Calls are idempotent per ``battle_id``: settling the same battle twice
        returns the original transaction reference.

        Raises:
            SettlementFailedError: If the settlement was rejected or not delivered
        """
        ...
