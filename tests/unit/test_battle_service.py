"""Tests for BattleService orchestration."""

import threading
from datetime import UTC, datetime, timedelta
from itertools import count

import pytest

from aetherium.domain.enums import BattleResult, EnemyType, SettlementStatus, TurnOwner
from aetherium.domain.errors import (
    BattleAlreadyCompletedError,
    BattleNotFoundError,
    CharacterNotFoundError,
    ConflictError,
    CooldownActiveError,
    EnemyNotFoundError,
    NotEnemysTurnError,
    NotPlayersTurnError,
    OngoingBattleExistsError,
    StorageError,
)
from aetherium.domain.models import (
    AttackAction,
    BaseAttributes,
    BattleID,
    CharacterID,
    CharacterProfile,
    DefendAction,
)
from aetherium.repository import InMemoryCharacterDirectory, JsonBattleRepository
from aetherium.services import BattleService, LocalChainGateway

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)

CHAMPION = CharacterProfile(
    id=CharacterID("champion"),
    name="Champion",
    level=10,
    wallet_address="0xChampion",
    attributes=BaseAttributes(strength=50, vitality=20, intelligence=10, dexterity=10),
)
NOVICE = CharacterProfile(
    id=CharacterID("novice"),
    name="Novice",
    level=1,
    wallet_address="0xNovice",
    attributes=BaseAttributes(strength=0, vitality=0, intelligence=0, dexterity=0),
)


class Clock:
    def __init__(self, start: datetime = NOW) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now


def _ids(prefix: str = "battle"):
    counter = count(1)
    return lambda: f"{prefix}-{next(counter)}"


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def chain(clock):
    return LocalChainGateway(clock=clock)


@pytest.fixture
def store(tmp_path):
    return JsonBattleRepository(tmp_path / "battles")


@pytest.fixture
def service(store, chain, clock):
    return BattleService(
        store,
        InMemoryCharacterDirectory([CHAMPION, NOVICE]),
        chain,
        rng_secret="test-secret",
        clock=clock,
        id_factory=_ids(),
    )


def _fight_to_the_end(service: BattleService, battle_id: BattleID, limit: int = 200):
    outcome = None
    for _ in range(limit):
        state = service.store.get(battle_id).current_state()
        if state.current_turn == TurnOwner.ENEMY:
            outcome = service.advance_enemy_turn(battle_id)
        else:
            outcome = service.submit_turn(battle_id, AttackAction())
        if outcome.battle_ended:
            return outcome
    raise AssertionError("battle did not finish")


class TestStartBattle:
    def test_start_records_opening_entry(self, service, store):
        started = service.start_battle(CHAMPION.id, EnemyType.GOBLIN)

        assert started.battle.id == "battle-1"
        assert started.enemy.name == "Goblin"
        assert started.state.turn == 1
        assert started.state.current_turn == TurnOwner.CHARACTER
        assert started.state.character.hp == started.state.character.max_hp

        stored = store.get(started.battle.id)
        assert stored.result == BattleResult.ONGOING
        assert stored.enemy_type == "goblin"
        assert stored.created_at == NOW
        assert len(stored.log) == 1
        assert stored.log[0].message == "Battle begins! Champion vs Goblin"

    def test_unknown_character(self, service):
        with pytest.raises(CharacterNotFoundError):
            service.start_battle(CharacterID("ghost"), EnemyType.GOBLIN)

    def test_unknown_enemy(self, service):
        with pytest.raises(EnemyNotFoundError):
            service.start_battle(CHAMPION.id, "lich")

    def test_second_ongoing_battle_is_rejected(self, service):
        first = service.start_battle(NOVICE.id, EnemyType.DRAGON)

        with pytest.raises(OngoingBattleExistsError) as excinfo:
            service.start_battle(NOVICE.id, EnemyType.GOBLIN)

        assert excinfo.value.battle_id == first.battle.id

    def test_cooldown_blocks_new_battle(self, store, clock):
        chain = LocalChainGateway(cooldown_seconds=3600, clock=clock)
        service = BattleService(
            store,
            InMemoryCharacterDirectory([CHAMPION]),
            chain,
            clock=clock,
            id_factory=_ids(),
        )
        started = service.start_battle(CHAMPION.id, EnemyType.GOBLIN)
        _fight_to_the_end(service, started.battle.id)

        with pytest.raises(CooldownActiveError):
            service.start_battle(CHAMPION.id, EnemyType.GOBLIN)

        clock.now = NOW + timedelta(hours=2)
        assert service.start_battle(CHAMPION.id, EnemyType.GOBLIN).battle.is_ongoing


class TestSubmitTurn:
    def test_victory_records_rewards_and_settles(self, service, store, chain):
        started = service.start_battle(CHAMPION.id, EnemyType.GOBLIN)
        outcome = service.submit_turn(started.battle.id, AttackAction())

        assert outcome.battle_ended
        assert outcome.enemy_action_result is None
        assert outcome.state.current_turn == TurnOwner.NONE

        stored = store.get(started.battle.id)
        assert stored.result == BattleResult.VICTORY
        assert stored.experience_gained == 25
        assert stored.tokens_earned == 50
        assert stored.completed_at == NOW
        assert stored.settlement_status == SettlementStatus.SETTLED
        assert stored.settlement_tx == chain.settlements[started.battle.id]
        assert stored.current_state().current_turn == TurnOwner.NONE

    def test_defeat_grants_consolation(self, service, store):
        started = service.start_battle(NOVICE.id, EnemyType.DRAGON)
        outcome = _fight_to_the_end(service, started.battle.id)

        assert outcome.battle.result == BattleResult.DEFEAT
        stored = store.get(started.battle.id)
        assert stored.experience_gained == 10
        assert stored.tokens_earned == 10
        assert stored.current_state().character.hp == 0

    def test_ongoing_round_appends_two_entries(self, service, store):
        started = service.start_battle(NOVICE.id, EnemyType.ORC)
        outcome = service.submit_turn(started.battle.id, DefendAction())

        assert not outcome.battle_ended
        assert outcome.action_result is not None
        assert outcome.enemy_action_result is not None
        assert outcome.state.turn == 2

        stored = store.get(started.battle.id)
        assert len(stored.log) == 3
        assert stored.current_state().turn == 2
        assert stored.current_state().current_turn == TurnOwner.CHARACTER

    def test_completed_battle_rejects_turns(self, service, store):
        started = service.start_battle(CHAMPION.id, EnemyType.GOBLIN)
        service.submit_turn(started.battle.id, AttackAction())
        log_length = len(store.get(started.battle.id).log)

        with pytest.raises(BattleAlreadyCompletedError):
            service.submit_turn(started.battle.id, AttackAction())

        assert len(store.get(started.battle.id).log) == log_length

    def test_unknown_battle(self, service):
        with pytest.raises(BattleNotFoundError):
            service.submit_turn(BattleID("missing"), AttackAction())

    def test_character_cannot_act_during_enemy_turn(self, service):
        started = service.start_battle(NOVICE.id, EnemyType.GOBLIN)
        assert started.state.current_turn == TurnOwner.ENEMY

        with pytest.raises(NotPlayersTurnError):
            service.submit_turn(started.battle.id, AttackAction())

    def test_same_seed_replays_identically(self, tmp_path, clock):
        logs = []
        for name in ("a", "b"):
            service = BattleService(
                JsonBattleRepository(tmp_path / name),
                InMemoryCharacterDirectory([NOVICE]),
                LocalChainGateway(clock=clock),
                rng_secret="shared",
                clock=clock,
                id_factory=lambda: "same-id",
            )
            started = service.start_battle(NOVICE.id, EnemyType.ORC)
            for _ in range(3):
                service.submit_turn(started.battle.id, AttackAction())
            logs.append([entry.message for entry in service.store.get(started.battle.id).log])

        assert logs[0] == logs[1]

    def test_stale_write_is_rejected(self, service, store):
        started = service.start_battle(NOVICE.id, EnemyType.ORC)
        stale = store.get(started.battle.id)

        service.submit_turn(started.battle.id, AttackAction())

        stale.log.append(stale.log[-1])
        with pytest.raises(ConflictError):
            store.update(stale, expected_log_length=1)
        assert len(store.get(started.battle.id).log) == 3


class TestAdvanceEnemyTurn:
    def test_enemy_opening(self, service, store):
        started = service.start_battle(NOVICE.id, EnemyType.GOBLIN)
        outcome = service.advance_enemy_turn(started.battle.id)

        assert outcome.action_result is None
        assert outcome.enemy_action_result is not None
        assert outcome.state.turn == 1
        assert outcome.state.current_turn == TurnOwner.CHARACTER
        assert len(store.get(started.battle.id).log) == 2

        with pytest.raises(NotEnemysTurnError):
            service.advance_enemy_turn(started.battle.id)

        followup = service.submit_turn(started.battle.id, AttackAction())
        assert followup.state.turn == 2


class TestSettlement:
    def test_failed_settlement_is_retried(self, service, store, chain):
        chain.fail_settlements = True
        started = service.start_battle(CHAMPION.id, EnemyType.GOBLIN)
        outcome = service.submit_turn(started.battle.id, AttackAction())

        assert outcome.battle.result == BattleResult.VICTORY
        stored = store.get(started.battle.id)
        assert stored.result == BattleResult.VICTORY
        assert stored.settlement_status == SettlementStatus.PENDING
        assert stored.settlement_attempts == 1

        chain.fail_settlements = False
        assert service.retry_pending_settlements() == 1

        stored = store.get(started.battle.id)
        assert stored.settlement_status == SettlementStatus.SETTLED
        assert stored.settlement_attempts == 2
        assert stored.settlement_tx == chain.settlements[started.battle.id]
        assert service.retry_pending_settlements() == 0

    def test_settlement_gives_up_after_attempt_limit(self, service, store, chain):
        chain.fail_settlements = True
        started = service.start_battle(CHAMPION.id, EnemyType.GOBLIN)
        service.submit_turn(started.battle.id, AttackAction())

        for _ in range(10):
            service.retry_pending_settlements()

        stored = store.get(started.battle.id)
        assert stored.settlement_status == SettlementStatus.FAILED
        assert stored.settlement_attempts == 5
        assert stored.result == BattleResult.VICTORY

    def test_settlement_is_idempotent(self, service, store, chain):
        started = service.start_battle(CHAMPION.id, EnemyType.GOBLIN)
        service.submit_turn(started.battle.id, AttackAction())
        battle = store.get(started.battle.id)

        assert service.settle(battle) is True
        assert len(chain.settlements) == 1


class TestReads:
    def test_get_battle_includes_character(self, service):
        started = service.start_battle(CHAMPION.id, EnemyType.GOBLIN)
        battle, character = service.get_battle(started.battle.id)

        assert battle.id == started.battle.id
        assert character == CHAMPION

    def test_list_battles_newest_first(self, service, clock):
        first = service.start_battle(CHAMPION.id, EnemyType.GOBLIN)
        service.submit_turn(first.battle.id, AttackAction())
        clock.now = NOW + timedelta(minutes=5)
        second = service.start_battle(CHAMPION.id, EnemyType.ORC)

        history = service.list_battles(CHAMPION.id)
        assert [b.id for b in history] == [second.battle.id, first.battle.id]

    def test_list_battles_unknown_character(self, service):
        with pytest.raises(CharacterNotFoundError):
            service.list_battles(CharacterID("ghost"))

    def test_list_enemies(self, service):
        assert [t.key for t in service.list_enemies()] == ["goblin", "orc", "skeleton", "dragon"]


class RendezvousStore:
    """Store wrapper that holds the next two ``get`` callers until both have read."""

    def __init__(self, inner) -> None:
        self._inner = inner
        self.barrier: threading.Barrier | None = None

    def get(self, battle_id):
        battle = self._inner.get(battle_id)
        barrier = self.barrier
        if barrier is not None:
            barrier.wait(timeout=5)
        return battle

    def __getattr__(self, name):
        return getattr(self._inner, name)


def race_two_turns(service: BattleService, store: RendezvousStore, battle_id: BattleID):
    store.barrier = threading.Barrier(2)
    results: list[object] = []
    lock = threading.Lock()

    def play() -> None:
        try:
            outcome = service.submit_turn(battle_id, AttackAction())
        except ConflictError as exc:
            outcome = exc
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=play) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)
    store.barrier = None
    return results


class TestConcurrentTurns:
    def test_concurrent_turns_yield_one_conflict(self, tmp_path, clock):
        store = RendezvousStore(JsonBattleRepository(tmp_path / "race"))
        service = BattleService(
            store,
            InMemoryCharacterDirectory([NOVICE]),
            LocalChainGateway(clock=clock),
            clock=clock,
            id_factory=_ids(),
        )
        started = service.start_battle(NOVICE.id, EnemyType.ORC)

        results = race_two_turns(service, store, started.battle.id)

        assert len(results) == 2
        assert sum(isinstance(r, ConflictError) for r in results) == 1
        assert len(store.get(started.battle.id).log) == 3


def test_corrupt_record_does_not_block_other_characters(service, store):
    (store.base_path / "battle_junk.json").write_text("{not json", encoding="utf-8")

    started = service.start_battle(NOVICE.id, EnemyType.DRAGON)
    assert started.battle.is_ongoing

    with pytest.raises(StorageError):
        store.get(BattleID("junk"))
