"""Battle state machine: opening, round sequencing, end detection and rewards.

Functions here are pure with respect to storage.  They take a working
``BattleState`` recovered from the log, mutate it, and hand back the log
entries to append.  The final entry of every step carries the post-step
state (advanced ``turn`` and ``current_turn``), so reading the last entry
is always enough to resume the battle.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from aetherium.domain.actions import resolve_character_action
from aetherium.domain.enemy_ai import resolve_enemy_action
from aetherium.domain.enums import Actor, BattleResult, TurnOwner
from aetherium.domain.models import Action, BattleState, Combatant, EnemyTemplate, LogEntry
from aetherium.domain.rules_config import DEFAULT_RULES, RulesConfig
from aetherium.utils.rng import RandomSource


@dataclass(slots=True)
class RoundOutcome:
    """Entries and verdict produced by one call into the state machine."""

    state: BattleState
    entries: list[LogEntry]
    character_entry: LogEntry | None
    enemy_entry: LogEntry | None
    result: BattleResult

    @property
    def ended(self) -> bool:
        return self.result != BattleResult.ONGOING


@dataclass(frozen=True, slots=True)
class Rewards:
    experience: int
    tokens: int


def initiative(character: Combatant, enemy: Combatant) -> TurnOwner:
    """The faster side acts first; ties go to the character."""

    return TurnOwner.CHARACTER if character.speed >= enemy.speed else TurnOwner.ENEMY


def open_battle(character: Combatant, enemy: Combatant) -> tuple[BattleState, LogEntry]:
    """Build the initial state and the ``battle_start`` entry."""

    state = BattleState(
        character=character,
        enemy=enemy,
        turn=1,
        current_turn=initiative(character, enemy),
    )
    entry = LogEntry(
        turn=0,
        actor=Actor.BATTLE_START,
        action="battle_start",
        damage=0,
        message=f"Battle begins! {character.name} vs {enemy.name}",
        battle_state=state.snapshot(),
    )
    return state, entry


def judge(state: BattleState) -> BattleResult:
    """Victory takes precedence when both sides are down."""

    if state.enemy.is_defeated:
        return BattleResult.VICTORY
    if state.character.is_defeated:
        return BattleResult.DEFEAT
    return BattleResult.ONGOING


def play_round(
    state: BattleState,
    action: Action,
    rng: RandomSource,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> RoundOutcome:
    """Resolve the character's action and, if the battle goes on, the enemy's reply.

    The caller is responsible for checking that it is the character's turn.
    """

    character_entry = resolve_character_action(state, action, rng, rules=rules)
    result = judge(state)

    enemy_entry: LogEntry | None = None
    if result == BattleResult.ONGOING:
        state.current_turn = TurnOwner.ENEMY
        character_entry = _seal(character_entry, state)
        enemy_entry = resolve_enemy_action(state, rng, rules=rules)
        if state.character.is_defeated:
            result = BattleResult.DEFEAT

    state.turn += 1
    state.current_turn = TurnOwner.NONE if result != BattleResult.ONGOING else TurnOwner.CHARACTER

    if enemy_entry is not None:
        enemy_entry = _seal(enemy_entry, state)
        entries = [character_entry, enemy_entry]
    else:
        character_entry = _seal(character_entry, state)
        entries = [character_entry]

    return RoundOutcome(
        state=state,
        entries=entries,
        character_entry=character_entry,
        enemy_entry=enemy_entry,
        result=result,
    )


def play_enemy_opening(
    state: BattleState, rng: RandomSource, *, rules: RulesConfig = DEFAULT_RULES
) -> RoundOutcome:
    """Resolve the enemy's pending turn when it won initiative.

    The opening strike does not count as a round, so ``turn`` is unchanged.
    """

    enemy_entry = resolve_enemy_action(state, rng, rules=rules)
    result = BattleResult.DEFEAT if state.character.is_defeated else BattleResult.ONGOING
    state.current_turn = TurnOwner.NONE if result != BattleResult.ONGOING else TurnOwner.CHARACTER
    enemy_entry = _seal(enemy_entry, state)
    return RoundOutcome(
        state=state,
        entries=[enemy_entry],
        character_entry=None,
        enemy_entry=enemy_entry,
        result=result,
    )


def compute_rewards(
    result: BattleResult, template: EnemyTemplate, *, rules: RulesConfig = DEFAULT_RULES
) -> Rewards:
    """Experience and tokens granted for a finished battle."""

    if result == BattleResult.VICTORY:
        return Rewards(experience=template.experience_reward, tokens=template.token_reward)
    if result == BattleResult.DEFEAT:
        return Rewards(
            experience=rules.rewards.defeat_experience, tokens=rules.rewards.defeat_tokens
        )
    return Rewards(experience=0, tokens=0)


def _seal(entry: LogEntry, state: BattleState) -> LogEntry:
    return replace(entry, battle_state=state.snapshot())
