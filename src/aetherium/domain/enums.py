"""Enumerations used by the battle domain."""

from __future__ import annotations

from enum import StrEnum


class BattleResult(StrEnum):
    """Lifecycle of a persisted battle."""

    ONGOING = "ongoing"
    VICTORY = "victory"
    DEFEAT = "defeat"


class TurnOwner(StrEnum):
    """Which side is expected to act next."""

    CHARACTER = "character"
    ENEMY = "enemy"
    NONE = "none"


class Actor(StrEnum):
    """Producer of a log entry."""

    CHARACTER = "character"
    ENEMY = "enemy"
    BATTLE_START = "battle_start"


class ActionKind(StrEnum):
    """Actions a combatant can take on its turn."""

    ATTACK = "attack"
    DEFEND = "defend"
    SKILL = "skill"
    ITEM = "item"


class EnemyType(StrEnum):
    """Keys of the enemy catalog."""

    GOBLIN = "goblin"
    ORC = "orc"
    SKELETON = "skeleton"
    DRAGON = "dragon"


class SettlementStatus(StrEnum):
    """State of the on-chain reward settlement for a finished battle."""

    NONE = "none"
    PENDING = "pending"
    SETTLED = "settled"
    FAILED = "failed"
