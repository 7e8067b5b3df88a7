"""Battle Store Protocol Interface.

This module defines the protocol (interface) for persisting battles.  The
orchestrator treats the store as a key-value map of battle id to aggregate;
the current battle state is never stored separately from the log.
"""

from typing import Protocol

from aetherium.domain.models import Battle, BattleID, CharacterID


class IBattleStore(Protocol):
    """Protocol defining the persistence operations used by the battle service.

    Writes are optimistic: ``update`` only succeeds when the stored log still
    has ``expected_log_length`` entries, otherwise it raises ``ConflictError``
    and writes nothing.
    """

    def create(self, battle: Battle) -> None:
        """Persist a new battle.

        Raises:
            OngoingBattleExistsError: If the character already has an ongoing battle
        """
        ...

    def get(self, battle_id: BattleID) -> Battle:
        """Load a battle.

        Raises:
            BattleNotFoundError: If no battle has this id
        """
        ...

    def update(self, battle: Battle, *, expected_log_length: int) -> None:
        """Replace a stored battle if its log length still matches.

        Raises:
            BattleNotFoundError: If no battle has this id
            ConflictError: If the stored log length differs
        """
        ...

    def find_ongoing(self, character_id: CharacterID) -> Battle | None:
        """Return the character's ongoing battle, if any."""
        ...

    def list_for_character(self, character_id: CharacterID) -> list[Battle]:
        """Return every battle fought by a character, newest first."""
        ...

    def list_pending_settlements(self) -> list[Battle]:
        """Return completed battles whose reward settlement is still pending."""
        ...
