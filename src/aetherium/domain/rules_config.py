"""Declarative rule configuration for the battle domain."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class StatRules:
    """Coefficients turning base attributes into combat stats."""

    hp_base: float = 50
    hp_per_level: float = 10
    hp_per_vitality: float = 2
    mp_base: float = 20
    mp_per_level: float = 5
    mp_per_intelligence: float = 1.5
    attack_base: float = 10
    attack_per_level: float = 2
    attack_per_strength: float = 1
    defense_base: float = 5
    defense_per_level: float = 1
    defense_per_vitality: float = 0.5
    speed_base: float = 10
    speed_per_dexterity: float = 1


@dataclass(frozen=True, slots=True)
class CharacterActionRules:
    """Character-side action constants."""

    attack_spread: int = 9  # roll is uniform in [0, spread]
    attack_offset: int = 5
    defend_bonus: int = 5
    skill_mp_cost: int = 10
    skill_multiplier: float = 1.5
    health_potion_id: int = 7
    health_potion_amount: int = 50
    mana_potion_id: int = 8
    mana_potion_amount: int = 30


@dataclass(frozen=True, slots=True)
class EnemyActionRules:
    """Enemy policy weights and action constants."""

    attack_chance: float = 0.7
    skill_chance: float = 0.2
    attack_spread: int = 7
    attack_offset: int = 4
    defend_bonus: int = 3
    skill_mp_cost: int = 8
    skill_multiplier: float = 1.3


@dataclass(frozen=True, slots=True)
class RewardRules:
    """Consolation rewards and settlement retry limits."""

    defeat_experience: int = 10
    defeat_tokens: int = 10
    max_settlement_attempts: int = 5


@dataclass(frozen=True, slots=True)
class RulesConfig:
    """Top-level container grouping every rule family."""

    stats: StatRules = StatRules()
    character: CharacterActionRules = CharacterActionRules()
    enemy: EnemyActionRules = EnemyActionRules()
    rewards: RewardRules = RewardRules()
    minimum_damage: int = 1
    defend_decays: bool = False


DEFAULT_RULES = RulesConfig()
