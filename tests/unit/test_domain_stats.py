"""Tests for combat stat derivation."""

from hypothesis import given
from hypothesis import strategies as st

from aetherium.domain.models import BaseAttributes, CharacterID, CharacterProfile
from aetherium.domain.rules_config import StatRules
from aetherium.domain.stats import character_combatant, derive_stats

attribute_values = st.integers(min_value=0, max_value=200)


def test_derive_stats_matches_formulas():
    stats = derive_stats(1, BaseAttributes(strength=10, vitality=10, intelligence=10, dexterity=10))

    assert stats.max_hp == 80
    assert stats.max_mp == 40
    assert stats.attack == 22
    assert stats.defense == 11
    assert stats.speed == 20


def test_fractional_stats_are_floored():
    stats = derive_stats(1, BaseAttributes(strength=0, vitality=5, intelligence=5, dexterity=0))

    # mp = 20 + 5 + 7.5, defense = 5 + 1 + 2.5
    assert stats.max_mp == 32
    assert stats.defense == 8


def test_luck_has_no_effect():
    plain = derive_stats(3, BaseAttributes(strength=4, vitality=4, intelligence=4, dexterity=4))
    lucky = derive_stats(
        3, BaseAttributes(strength=4, vitality=4, intelligence=4, dexterity=4, luck=99)
    )
    assert plain == lucky


def test_custom_rules_are_applied():
    rules = StatRules(hp_base=100, speed_base=0)
    stats = derive_stats(1, BaseAttributes(0, 0, 0, 3), rules=rules)

    assert stats.max_hp == 110
    assert stats.speed == 3


@given(
    level=st.integers(min_value=1, max_value=99),
    strength=attribute_values,
    vitality=attribute_values,
    intelligence=attribute_values,
    dexterity=attribute_values,
)
def test_stats_never_decrease_with_level(level, strength, vitality, intelligence, dexterity):
    attrs = BaseAttributes(strength, vitality, intelligence, dexterity)
    lower = derive_stats(level, attrs)
    higher = derive_stats(level + 1, attrs)

    assert higher.max_hp >= lower.max_hp
    assert higher.max_mp >= lower.max_mp
    assert higher.attack >= lower.attack
    assert higher.defense >= lower.defense
    assert higher.speed == lower.speed


@given(level=st.integers(min_value=1, max_value=99), vitality=attribute_values)
def test_stats_never_decrease_with_vitality(level, vitality):
    lower = derive_stats(level, BaseAttributes(0, vitality, 0, 0))
    higher = derive_stats(level, BaseAttributes(0, vitality + 1, 0, 0))

    assert higher.max_hp > lower.max_hp
    assert higher.defense >= lower.defense


def test_character_combatant_starts_at_full_resources():
    profile = CharacterProfile(
        id=CharacterID("c-1"),
        name="Aria",
        level=2,
        wallet_address="0xabc",
        attributes=BaseAttributes(strength=5, vitality=5, intelligence=4, dexterity=3),
    )

    combatant = character_combatant(profile)

    assert combatant.name == "Aria"
    assert combatant.hp == combatant.max_hp == 80
    assert combatant.mp == combatant.max_mp == 36
    assert combatant.guard == 0
