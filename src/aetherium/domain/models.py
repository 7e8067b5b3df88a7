"""Dataclasses describing battles, combatants and their log.

The rules layer only ever works on these plain values.  Persistence
adapters serialise them through pydantic ``TypeAdapter`` instances, so the
fields double as the stored schema.

A battle has no separately stored "current state": the state is always the
snapshot embedded in the last log entry.  Snapshots are structural copies
(every combatant field is an immutable scalar), never serialise/parse
round-trips.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import ClassVar, NewType

from .enums import ActionKind, Actor, BattleResult, SettlementStatus, TurnOwner

# --- Strongly typed identifiers -------------------------------------------------

BattleID = NewType("BattleID", str)
CharacterID = NewType("CharacterID", str)


# --- Characters and enemies -----------------------------------------------------


@dataclass(frozen=True, slots=True)
class BaseAttributes:
    """A character's allocatable attributes."""

    strength: int
    vitality: int
    intelligence: int
    dexterity: int
    luck: int = 0


@dataclass(frozen=True, slots=True)
class CombatStats:
    """Combat-ready stats derived from level and attributes."""

    max_hp: int
    max_mp: int
    attack: int
    defense: int
    speed: int


@dataclass(slots=True)
class CharacterProfile:
    """Character data supplied by the character directory."""

    id: CharacterID
    name: str
    level: int
    wallet_address: str
    attributes: BaseAttributes


@dataclass(frozen=True, slots=True)
class EnemyStats:
    """Starting stats of an enemy archetype."""

    hp: int
    mp: int
    attack: int
    defense: int
    speed: int


@dataclass(frozen=True, slots=True)
class EnemyTemplate:
    """Catalog entry describing one enemy archetype."""

    key: str
    name: str
    level: int
    base_stats: EnemyStats
    experience_reward: int
    token_reward: int


# --- Battle state ----------------------------------------------------------------


@dataclass(slots=True)
class Combatant:
    """One side's mutable combat attributes within a battle."""

    name: str
    level: int
    hp: int
    max_hp: int
    mp: int
    max_mp: int
    attack: int
    defense: int
    speed: int
    guard: int = 0  # defense currently granted by a defend action

    @property
    def is_defeated(self) -> bool:
        return self.hp <= 0

    def take_damage(self, amount: int) -> None:
        self.hp = max(0, self.hp - amount)

    def copy(self) -> Combatant:
        return replace(self)


@dataclass(slots=True)
class BattleState:
    """Both combatants plus turn bookkeeping."""

    character: Combatant
    enemy: Combatant
    turn: int = 1
    current_turn: TurnOwner = TurnOwner.CHARACTER

    @property
    def is_over(self) -> bool:
        return self.character.is_defeated or self.enemy.is_defeated

    def snapshot(self) -> BattleState:
        """Return an independent copy of the state."""

        return BattleState(
            character=self.character.copy(),
            enemy=self.enemy.copy(),
            turn=self.turn,
            current_turn=self.current_turn,
        )


@dataclass(frozen=True, slots=True)
class LogEntry:
    """One recorded action and the state right after it."""

    turn: int
    actor: Actor
    action: str
    damage: int
    message: str
    battle_state: BattleState


# --- Actions -----------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AttackAction:
    kind: ClassVar[ActionKind] = ActionKind.ATTACK


@dataclass(frozen=True, slots=True)
class DefendAction:
    kind: ClassVar[ActionKind] = ActionKind.DEFEND


@dataclass(frozen=True, slots=True)
class SkillAction:
    kind: ClassVar[ActionKind] = ActionKind.SKILL


@dataclass(frozen=True, slots=True)
class ItemAction:
    kind: ClassVar[ActionKind] = ActionKind.ITEM

    item_id: int | None = None


Action = AttackAction | DefendAction | SkillAction | ItemAction


def parse_action(kind: ActionKind | str, item_id: int | None = None) -> Action:
    """Build a typed action from its wire tag.

    Raises:
        ValueError: If ``kind`` is not one of the four action kinds.
    """

    kind = ActionKind(kind)
    if kind is ActionKind.ATTACK:
        return AttackAction()
    if kind is ActionKind.DEFEND:
        return DefendAction()
    if kind is ActionKind.SKILL:
        return SkillAction()
    return ItemAction(item_id=item_id)


# --- Persisted aggregate ----------------------------------------------------------


@dataclass(slots=True)
class Battle:
    """Persisted record of one encounter including its append-only log."""

    id: BattleID
    character_id: CharacterID
    enemy_type: str
    enemy_name: str
    enemy_base_stats: EnemyStats
    created_at: datetime
    result: BattleResult = BattleResult.ONGOING
    experience_gained: int = 0
    tokens_earned: int = 0
    log: list[LogEntry] = field(default_factory=list)
    completed_at: datetime | None = None
    settlement_status: SettlementStatus = SettlementStatus.NONE
    settlement_tx: str | None = None
    settlement_attempts: int = 0

    @property
    def is_ongoing(self) -> bool:
        return self.result == BattleResult.ONGOING

    def current_state(self) -> BattleState:
        """Recover a working copy of the state from the last log entry."""

        if not self.log:
            raise ValueError(f"Battle {self.id} has an empty log")
        return self.log[-1].battle_state.snapshot()
