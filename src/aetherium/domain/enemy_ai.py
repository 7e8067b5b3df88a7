"""Enemy behaviour: a weighted random policy over attack, skill and defend."""

from __future__ import annotations

import math

from aetherium.domain.actions import drop_guard, make_entry, raise_guard, roll_attack_damage
from aetherium.domain.enums import ActionKind, Actor
from aetherium.domain.models import BattleState, LogEntry
from aetherium.domain.rules_config import DEFAULT_RULES, RulesConfig
from aetherium.utils.rng import RandomSource


def choose_enemy_action(
    roll: float, enemy_mp: int, *, rules: RulesConfig = DEFAULT_RULES
) -> ActionKind:
    """Map a uniform roll in [0, 1) to the enemy's action.

    ``attack_chance`` of the mass attacks, the next ``skill_chance`` uses the
    skill when MP allows, everything else (including a skill roll without
    enough MP) defends.
    """

    tuning = rules.enemy
    if roll < tuning.attack_chance:
        return ActionKind.ATTACK
    if roll < tuning.attack_chance + tuning.skill_chance and enemy_mp >= tuning.skill_mp_cost:
        return ActionKind.SKILL
    return ActionKind.DEFEND


def resolve_enemy_action(
    state: BattleState, rng: RandomSource, *, rules: RulesConfig = DEFAULT_RULES
) -> LogEntry:
    """Pick and apply the enemy's action, mutating ``state`` in place."""

    character = state.character
    enemy = state.enemy
    tuning = rules.enemy
    if rules.defend_decays:
        drop_guard(enemy)

    kind = choose_enemy_action(rng.random(), enemy.mp, rules=rules)
    damage = 0
    if kind is ActionKind.ATTACK:
        damage = roll_attack_damage(
            enemy,
            character,
            rng,
            spread=tuning.attack_spread,
            offset=tuning.attack_offset,
            minimum=rules.minimum_damage,
        )
        character.take_damage(damage)
        message = f"{enemy.name} attacks {character.name} for {damage} damage!"
    elif kind is ActionKind.SKILL:
        enemy.mp -= tuning.skill_mp_cost
        damage = math.floor(enemy.attack * tuning.skill_multiplier)
        character.take_damage(damage)
        message = f"{enemy.name} uses a special attack for {damage} damage!"
    else:
        raise_guard(enemy, tuning.defend_bonus)
        message = f"{enemy.name} takes a defensive stance!"

    return make_entry(state, Actor.ENEMY, str(kind), damage, message)
