"""Resolution of the character's action within a round.

The resolver mutates the working state it is handed and returns a log entry
holding a snapshot of the result.  It never advances ``turn`` or
``current_turn``; sequencing belongs to :mod:`aetherium.domain.battle`.
"""

from __future__ import annotations

import math

from aetherium.domain.enums import Actor
from aetherium.domain.models import (
    Action,
    AttackAction,
    BattleState,
    Combatant,
    DefendAction,
    ItemAction,
    LogEntry,
    SkillAction,
)
from aetherium.domain.rules_config import DEFAULT_RULES, RulesConfig
from aetherium.utils.rng import RandomSource


def roll_attack_damage(
    attacker: Combatant,
    defender: Combatant,
    rng: RandomSource,
    *,
    spread: int,
    offset: int,
    minimum: int,
) -> int:
    """Basic attack damage: attack - defense + U[0, spread] - offset, at least ``minimum``."""

    return max(minimum, attacker.attack - defender.defense + rng.randint(0, spread) - offset)


def raise_guard(combatant: Combatant, bonus: int) -> None:
    combatant.defense += bonus
    combatant.guard += bonus


def drop_guard(combatant: Combatant) -> None:
    """Remove any defense granted by an earlier defend action."""

    combatant.defense -= combatant.guard
    combatant.guard = 0


def make_entry(
    state: BattleState, actor: Actor, action: str, damage: int, message: str
) -> LogEntry:
    return LogEntry(
        turn=state.turn,
        actor=actor,
        action=action,
        damage=damage,
        message=message,
        battle_state=state.snapshot(),
    )


def resolve_character_action(
    state: BattleState,
    action: Action,
    rng: RandomSource,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> LogEntry:
    """Apply the character's action to ``state`` and describe it.

    Bad input (unknown item, not enough MP) wastes the turn instead of
    raising: the entry carries zero damage and an explanatory message.
    """

    character = state.character
    enemy = state.enemy
    tuning = rules.character
    if rules.defend_decays:
        drop_guard(character)

    damage = 0
    if isinstance(action, AttackAction):
        damage = roll_attack_damage(
            character,
            enemy,
            rng,
            spread=tuning.attack_spread,
            offset=tuning.attack_offset,
            minimum=rules.minimum_damage,
        )
        enemy.take_damage(damage)
        message = f"{character.name} attacks {enemy.name} for {damage} damage!"
    elif isinstance(action, DefendAction):
        raise_guard(character, tuning.defend_bonus)
        message = f"{character.name} takes a defensive stance!"
    elif isinstance(action, SkillAction):
        if character.mp >= tuning.skill_mp_cost:
            character.mp -= tuning.skill_mp_cost
            damage = math.floor(character.attack * tuning.skill_multiplier)
            enemy.take_damage(damage)
            message = f"{character.name} uses a special skill for {damage} damage!"
        else:
            message = f"{character.name} doesn't have enough MP for a skill!"
    elif isinstance(action, ItemAction):
        message = _use_item(character, action.item_id, rules)
    else:
        message = f"{character.name} hesitates..."

    kind = getattr(action, "kind", "unknown")
    return make_entry(state, Actor.CHARACTER, str(kind), damage, message)


def _use_item(character: Combatant, item_id: int | None, rules: RulesConfig) -> str:
    tuning = rules.character
    if item_id == tuning.health_potion_id:
        character.hp = min(character.max_hp, character.hp + tuning.health_potion_amount)
        return (
            f"{character.name} uses a Health Potion and recovers "
            f"{tuning.health_potion_amount} HP!"
        )
    if item_id == tuning.mana_potion_id:
        character.mp = min(character.max_mp, character.mp + tuning.mana_potion_amount)
        return (
            f"{character.name} uses a Mana Potion and recovers "
            f"{tuning.mana_potion_amount} MP!"
        )
    return f"{character.name} fumbles for an item but finds nothing useful!"
