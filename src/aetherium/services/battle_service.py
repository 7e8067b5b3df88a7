"""Battle orchestration service.

This module drives the battle state machine against the battle store and
the external collaborators.  Each call is one read-modify-write unit:
load the aggregate, recover the state from its last log entry, run the
rules on a working copy, then persist with an optimistic log-length check.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from aetherium.domain import battle as rules_engine
from aetherium.domain.enemies import EnemyCatalog, spawn_enemy
from aetherium.domain.enums import BattleResult, SettlementStatus, TurnOwner
from aetherium.domain.errors import (
    BattleAlreadyCompletedError,
    ConflictError,
    CooldownActiveError,
    NotEnemysTurnError,
    NotFoundError,
    NotPlayersTurnError,
    OngoingBattleExistsError,
    SettlementFailedError,
    StorageError,
)
from aetherium.domain.models import (
    Action,
    Battle,
    BattleID,
    BattleState,
    CharacterID,
    CharacterProfile,
    EnemyTemplate,
    LogEntry,
)
from aetherium.domain.rules_config import DEFAULT_RULES, RulesConfig
from aetherium.domain.stats import character_combatant
from aetherium.interfaces import IBattleStore, IChainGateway, ICharacterDirectory
from aetherium.utils.rng import generate_seed, seeded_random

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BattleStart:
    """Outcome of starting a battle."""

    battle: Battle
    state: BattleState
    enemy: EnemyTemplate


@dataclass(slots=True)
class TurnOutcome:
    """Outcome of one turn call."""

    battle: Battle
    state: BattleState
    action_result: LogEntry | None
    enemy_action_result: LogEntry | None

    @property
    def battle_ended(self) -> bool:
        return not self.battle.is_ongoing


class BattleService:
    """Service for starting battles and resolving their turns."""

    def __init__(
        self,
        store: IBattleStore,
        characters: ICharacterDirectory,
        chain: IChainGateway,
        *,
        catalog: EnemyCatalog | None = None,
        rules: RulesConfig = DEFAULT_RULES,
        rng_secret: str = "",
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self.store = store
        self.characters = characters
        self.chain = chain
        self.catalog = catalog or EnemyCatalog()
        self.rules = rules
        self._rng_secret = rng_secret
        self._clock = clock
        self._id_factory = id_factory

    # ------------------------------------------------------------------ start

    def start_battle(self, character_id: CharacterID, enemy_type: str) -> BattleStart:
        """Open a battle between a character and an enemy archetype.

        Raises:
            CharacterNotFoundError: If the character does not exist
            EnemyNotFoundError: If ``enemy_type`` is not in the catalog
            OngoingBattleExistsError: If the character is already fighting
            CooldownActiveError: If the chain reports an active cooldown
            ChainUnavailableError: If the cooldown could not be checked
        """
        profile = self.characters.get_character(character_id)
        template = self.catalog.lookup(enemy_type)

        ongoing = self.store.find_ongoing(character_id)
        if ongoing is not None:
            raise OngoingBattleExistsError(character_id, ongoing.id)
        if self.chain.is_cooldown_active(profile.wallet_address):
            raise CooldownActiveError(profile.wallet_address)

        state, start_entry = rules_engine.open_battle(
            character_combatant(profile, rules=self.rules.stats), spawn_enemy(template)
        )
        battle = Battle(
            id=BattleID(self._id_factory()),
            character_id=profile.id,
            enemy_type=template.key,
            enemy_name=template.name,
            enemy_base_stats=template.base_stats,
            created_at=self._clock(),
            log=[start_entry],
        )
        self.store.create(battle)
        logger.info(
            "battle %s started: %s vs %s (%s moves first)",
            battle.id,
            profile.name,
            template.name,
            state.current_turn,
        )
        return BattleStart(battle=battle, state=battle.current_state(), enemy=template)

    # ------------------------------------------------------------------ turns

    def submit_turn(self, battle_id: BattleID, action: Action) -> TurnOutcome:
        """Resolve the character's action and the enemy's reply in one call.

        Raises:
            BattleNotFoundError: If the battle does not exist
            BattleAlreadyCompletedError: If the battle has ended
            NotPlayersTurnError: If the enemy still has a pending turn
            ConflictError: If another call changed the battle concurrently
        """
        battle = self._load_ongoing(battle_id)
        state = battle.current_state()
        if state.current_turn != TurnOwner.CHARACTER:
            raise NotPlayersTurnError(battle_id)

        rng = seeded_random(
            generate_seed(battle.id, state.turn, "round", secret=self._rng_secret)
        )
        outcome = rules_engine.play_round(state, action, rng, rules=self.rules)
        self._commit(battle, outcome)
        return TurnOutcome(
            battle=battle,
            state=outcome.state,
            action_result=outcome.character_entry,
            enemy_action_result=outcome.enemy_entry,
        )

    def advance_enemy_turn(self, battle_id: BattleID) -> TurnOutcome:
        """Resolve the enemy's pending turn when it won initiative.

        Raises:
            BattleNotFoundError: If the battle does not exist
            BattleAlreadyCompletedError: If the battle has ended
            NotEnemysTurnError: If it is not the enemy's turn
            ConflictError: If another call changed the battle concurrently
        """
        battle = self._load_ongoing(battle_id)
        state = battle.current_state()
        if state.current_turn != TurnOwner.ENEMY:
            raise NotEnemysTurnError(battle_id)

        rng = seeded_random(
            generate_seed(battle.id, state.turn, "enemy_opening", secret=self._rng_secret)
        )
        outcome = rules_engine.play_enemy_opening(state, rng, rules=self.rules)
        self._commit(battle, outcome)
        return TurnOutcome(
            battle=battle,
            state=outcome.state,
            action_result=None,
            enemy_action_result=outcome.enemy_entry,
        )

    def _load_ongoing(self, battle_id: BattleID) -> Battle:
        battle = self.store.get(battle_id)
        if not battle.is_ongoing:
            raise BattleAlreadyCompletedError(battle_id)
        return battle

    def _commit(self, battle: Battle, outcome: rules_engine.RoundOutcome) -> None:
        expected = len(battle.log)
        battle.log.extend(outcome.entries)

        if outcome.ended:
            rewards = rules_engine.compute_rewards(
                outcome.result, self.catalog.lookup(battle.enemy_type), rules=self.rules
            )
            battle.result = outcome.result
            battle.experience_gained = rewards.experience
            battle.tokens_earned = rewards.tokens
            battle.completed_at = self._clock()
            battle.settlement_status = SettlementStatus.PENDING

        try:
            self.store.update(battle, expected_log_length=expected)
        except ConflictError:
            logger.warning("battle %s changed concurrently; turn rejected", battle.id)
            raise

        if outcome.ended:
            logger.info(
                "battle %s finished with %s (+%d xp, +%d tokens)",
                battle.id,
                battle.result,
                battle.experience_gained,
                battle.tokens_earned,
            )
            self.settle(battle)

    # ------------------------------------------------------------- settlement

    def settle(self, battle: Battle) -> bool:
        """Try to settle a finished battle's reward on chain.

        Settlement is best-effort: the battle result is already persisted, so
        a failure only leaves the status ``pending`` (``failed`` once the
        attempt budget is exhausted) for a later retry.  Returns True on success.
        """
        if battle.settlement_status != SettlementStatus.PENDING:
            return battle.settlement_status == SettlementStatus.SETTLED

        battle.settlement_attempts += 1
        try:
            profile = self.characters.get_character(battle.character_id)
            tx = self.chain.settle_battle_reward(
                profile.wallet_address,
                battle.result == BattleResult.VICTORY,
                battle_id=battle.id,
            )
        except (SettlementFailedError, NotFoundError) as exc:
            logger.warning(
                "settlement for battle %s failed (attempt %d): %s",
                battle.id,
                battle.settlement_attempts,
                exc,
            )
            if battle.settlement_attempts >= self.rules.rewards.max_settlement_attempts:
                battle.settlement_status = SettlementStatus.FAILED
            settled = False
        else:
            battle.settlement_status = SettlementStatus.SETTLED
            battle.settlement_tx = tx
            settled = True

        try:
            self.store.update(battle, expected_log_length=len(battle.log))
        except (ConflictError, StorageError):
            logger.exception("could not record settlement state for battle %s", battle.id)
        return settled

    def retry_pending_settlements(self) -> int:
        """Retry every pending settlement and return how many succeeded."""

        settled = 0
        for battle in self.store.list_pending_settlements():
            if self.settle(battle):
                settled += 1
        return settled

    # ------------------------------------------------------------------ reads

    def get_battle(self, battle_id: BattleID) -> tuple[Battle, CharacterProfile | None]:
        """Return a battle and, when still known, the character fighting it."""

        battle = self.store.get(battle_id)
        try:
            profile = self.characters.get_character(battle.character_id)
        except NotFoundError:
            profile = None
        return battle, profile

    def list_battles(self, character_id: CharacterID) -> list[Battle]:
        """Return the character's battle history, newest first."""

        self.characters.get_character(character_id)
        return self.store.list_for_character(character_id)

    def list_enemies(self) -> list[EnemyTemplate]:
        return list(self.catalog)
