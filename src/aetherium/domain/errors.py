"""Exception hierarchy raised by the battle domain and its services.

Player mistakes that only waste a turn (unknown item, not enough MP) are not
errors; they resolve to a descriptive log entry instead.
"""

from __future__ import annotations


class BattleError(Exception):
    """Base class for every battle-related failure."""


class NotFoundError(BattleError, LookupError):
    """A referenced character, battle or enemy does not exist."""


class CharacterNotFoundError(NotFoundError):
    def __init__(self, character_id: str) -> None:
        super().__init__(f"Character {character_id} not found")
        self.character_id = character_id


class BattleNotFoundError(NotFoundError):
    def __init__(self, battle_id: str) -> None:
        super().__init__(f"Battle {battle_id} not found")
        self.battle_id = battle_id


class EnemyNotFoundError(NotFoundError):
    def __init__(self, enemy_type: str) -> None:
        super().__init__(f"Unknown enemy type '{enemy_type}'")
        self.enemy_type = enemy_type


class InvalidStateError(BattleError, ValueError):
    """The request is well formed but not allowed in the battle's current state."""


class BattleAlreadyCompletedError(InvalidStateError):
    def __init__(self, battle_id: str) -> None:
        super().__init__("Battle is already completed")
        self.battle_id = battle_id


class NotPlayersTurnError(InvalidStateError):
    def __init__(self, battle_id: str) -> None:
        super().__init__("Not character's turn")
        self.battle_id = battle_id


class NotEnemysTurnError(InvalidStateError):
    def __init__(self, battle_id: str) -> None:
        super().__init__("Enemy has no pending turn")
        self.battle_id = battle_id


class OngoingBattleExistsError(InvalidStateError):
    """Raised when a character already has an ongoing battle."""

    def __init__(self, character_id: str, battle_id: str) -> None:
        super().__init__("Character already has an ongoing battle")
        self.character_id = character_id
        self.battle_id = battle_id


class CooldownActiveError(BattleError):
    def __init__(self, wallet_address: str) -> None:
        super().__init__("Battle cooldown active. Please wait before battling again.")
        self.wallet_address = wallet_address


class ConflictError(BattleError):
    """A concurrent write changed the battle log since it was read."""

    def __init__(self, battle_id: str, expected_length: int, actual_length: int) -> None:
        super().__init__(
            f"Battle {battle_id} was modified concurrently "
            f"(expected {expected_length} log entries, found {actual_length})"
        )
        self.battle_id = battle_id
        self.expected_length = expected_length
        self.actual_length = actual_length


class ChainUnavailableError(BattleError):
    """The blockchain collaborator could not answer."""


class SettlementFailedError(BattleError):
    """Reward settlement was rejected or could not be delivered."""


class StorageError(BattleError):
    """The battle store failed to read or write."""
