"""Derivation of combat stats from a character's level and attributes."""

from __future__ import annotations

import math

from aetherium.domain.models import BaseAttributes, CharacterProfile, Combatant, CombatStats
from aetherium.domain.rules_config import DEFAULT_RULES, StatRules


def derive_stats(
    level: int, attributes: BaseAttributes, *, rules: StatRules = DEFAULT_RULES.stats
) -> CombatStats:
    """Convert level and base attributes into floored combat stats.

    With the default rules:
        max_hp  = 50 + level * 10 + vitality * 2
        max_mp  = 20 + level * 5 + intelligence * 1.5
        attack  = 10 + level * 2 + strength
        defense = 5 + level + vitality * 0.5
        speed   = 10 + dexterity
    """

    max_hp = rules.hp_base + level * rules.hp_per_level + attributes.vitality * rules.hp_per_vitality
    max_mp = (
        rules.mp_base
        + level * rules.mp_per_level
        + attributes.intelligence * rules.mp_per_intelligence
    )
    attack = (
        rules.attack_base
        + level * rules.attack_per_level
        + attributes.strength * rules.attack_per_strength
    )
    defense = (
        rules.defense_base
        + level * rules.defense_per_level
        + attributes.vitality * rules.defense_per_vitality
    )
    speed = rules.speed_base + attributes.dexterity * rules.speed_per_dexterity

    return CombatStats(
        max_hp=math.floor(max_hp),
        max_mp=math.floor(max_mp),
        attack=math.floor(attack),
        defense=math.floor(defense),
        speed=math.floor(speed),
    )


def character_combatant(
    profile: CharacterProfile, *, rules: StatRules = DEFAULT_RULES.stats
) -> Combatant:
    """Build a full-health combatant for a character entering battle."""

    stats = derive_stats(profile.level, profile.attributes, rules=rules)
    return Combatant(
        name=profile.name,
        level=profile.level,
        hp=stats.max_hp,
        max_hp=stats.max_hp,
        mp=stats.max_mp,
        max_mp=stats.max_mp,
        attack=stats.attack,
        defense=stats.defense,
        speed=stats.speed,
    )
