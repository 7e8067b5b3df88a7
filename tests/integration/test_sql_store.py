"""Integration tests for the SQLAlchemy battle store on SQLite."""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import inspect

from aetherium.database import (
    check_database_health,
    create_db_engine,
    create_session_factory,
    init_db,
)
from aetherium.domain.battle import open_battle
from aetherium.domain.enemies import EnemyCatalog, spawn_enemy
from aetherium.domain.enums import BattleResult, EnemyType, SettlementStatus, TurnOwner
from aetherium.domain.errors import (
    BattleNotFoundError,
    ConflictError,
    OngoingBattleExistsError,
    StorageError,
)
from aetherium.domain.models import (
    AttackAction,
    BaseAttributes,
    Battle,
    BattleID,
    CharacterID,
    CharacterProfile,
)
from aetherium.domain.stats import character_combatant
from aetherium.models import Base
from aetherium.repository import InMemoryCharacterDirectory, SqlBattleRepository
from aetherium.services import BattleService, LocalChainGateway

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)

PROFILE = CharacterProfile(
    id=CharacterID("c-1"),
    name="Aria",
    level=3,
    wallet_address="0xAria",
    attributes=BaseAttributes(strength=8, vitality=6, intelligence=5, dexterity=4),
)


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite:///:memory:")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def repo(engine):
    return SqlBattleRepository(create_session_factory(engine))


def _battle(battle_id: str = "b-1", character_id: str = "c-1", **overrides) -> Battle:
    template = EnemyCatalog().lookup("orc")
    _, entry = open_battle(character_combatant(PROFILE), spawn_enemy(template))
    battle = Battle(
        id=BattleID(battle_id),
        character_id=CharacterID(character_id),
        enemy_type=template.key,
        enemy_name=template.name,
        enemy_base_stats=template.base_stats,
        created_at=NOW,
        log=[entry],
    )
    return replace(battle, **overrides)


def test_schema_is_created(engine):
    assert check_database_health(engine)
    assert inspect(engine).has_table("battles")


def test_create_and_get(repo):
    battle = _battle()
    repo.create(battle)

    loaded = repo.get(battle.id)
    assert loaded == battle
    assert loaded.created_at.tzinfo is not None


def test_get_missing(repo):
    with pytest.raises(BattleNotFoundError):
        repo.get(BattleID("missing"))


def test_partial_unique_index_allows_one_ongoing_battle(repo):
    repo.create(_battle("b-1"))

    with pytest.raises(OngoingBattleExistsError) as excinfo:
        repo.create(_battle("b-2"))
    assert excinfo.value.battle_id == "b-1"

    repo.create(_battle("b-3", result=BattleResult.VICTORY))
    repo.create(_battle("b-4", character_id="c-2"))


def test_conditional_update(repo):
    battle = _battle()
    repo.create(battle)

    stale = repo.get(battle.id)
    battle.log.append(battle.log[-1])
    repo.update(battle, expected_log_length=1)

    stale.log.append(stale.log[-1])
    with pytest.raises(ConflictError) as excinfo:
        repo.update(stale, expected_log_length=1)
    assert excinfo.value.actual_length == 2

    with pytest.raises(BattleNotFoundError):
        repo.update(_battle("ghost"), expected_log_length=1)


def test_queries(repo):
    repo.create(_battle("old", result=BattleResult.DEFEAT))
    repo.create(
        _battle(
            "new",
            result=BattleResult.VICTORY,
            created_at=NOW + timedelta(minutes=10),
            completed_at=NOW + timedelta(minutes=15),
            settlement_status=SettlementStatus.PENDING,
        )
    )
    repo.create(_battle("current", created_at=NOW + timedelta(minutes=20)))

    history = repo.list_for_character(CharacterID("c-1"))
    assert [b.id for b in history] == ["current", "new", "old"]
    assert repo.find_ongoing(CharacterID("c-1")).id == "current"
    assert repo.find_ongoing(CharacterID("c-2")) is None
    assert [b.id for b in repo.list_pending_settlements()] == ["new"]


def test_service_round_trip_on_sql(repo):
    service = BattleService(
        repo,
        InMemoryCharacterDirectory([PROFILE]),
        LocalChainGateway(),
        rng_secret="sql",
        clock=lambda: NOW,
        id_factory=lambda: "sql-battle",
    )
    started = service.start_battle(PROFILE.id, EnemyType.ORC)
    outcome = service.submit_turn(started.battle.id, AttackAction())

    assert not outcome.battle_ended
    stored = repo.get(started.battle.id)
    assert len(stored.log) == 3
    assert stored.log == outcome.battle.log
    assert stored.current_state().current_turn == TurnOwner.CHARACTER
    assert stored.current_state().turn == 2


def test_query_failures_become_storage_errors(engine, repo):
    Base.metadata.drop_all(engine)

    with pytest.raises(StorageError):
        repo.find_ongoing(CharacterID("c-1"))
    with pytest.raises(StorageError):
        repo.list_for_character(CharacterID("c-1"))
    with pytest.raises(StorageError):
        repo.list_pending_settlements()


class HoldingStore:
    """Delegating store whose ``get`` waits until two readers have loaded."""

    def __init__(self, inner: SqlBattleRepository) -> None:
        self._inner = inner
        self.barrier: threading.Barrier | None = None

    def get(self, battle_id):
        battle = self._inner.get(battle_id)
        if self.barrier is not None:
            self.barrier.wait(timeout=5)
        return battle

    def __getattr__(self, name):
        return getattr(self._inner, name)


def test_concurrent_turns_on_sql_yield_one_conflict(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'race.db'}")
    init_db(engine)
    store = HoldingStore(SqlBattleRepository(create_session_factory(engine)))
    service = BattleService(
        store,
        InMemoryCharacterDirectory([PROFILE]),
        LocalChainGateway(),
        clock=lambda: NOW,
        id_factory=lambda: "race-battle",
    )
    started = service.start_battle(PROFILE.id, EnemyType.ORC)

    store.barrier = threading.Barrier(2)
    results: list[object] = []

    def play() -> None:
        try:
            results.append(service.submit_turn(started.battle.id, AttackAction()))
        except ConflictError as exc:
            results.append(exc)

    threads = [threading.Thread(target=play) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)
    store.barrier = None

    assert len(results) == 2
    assert sum(isinstance(r, ConflictError) for r in results) == 1
    assert len(store.get(started.battle.id).log) == 3
    engine.dispose()
