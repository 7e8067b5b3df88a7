"""SQLAlchemy-backed battle repository."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from pydantic import TypeAdapter
from sqlalchemy import Select, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from aetherium.domain.enums import BattleResult, SettlementStatus
from aetherium.domain.errors import (
    BattleNotFoundError,
    ConflictError,
    OngoingBattleExistsError,
    StorageError,
)
from aetherium.domain.models import Battle, BattleID, CharacterID, EnemyStats, LogEntry
from aetherium.models import BattleRecord

logger = logging.getLogger(__name__)

LOG_ADAPTER: TypeAdapter[list[LogEntry]] = TypeAdapter(list[LogEntry])
STATS_ADAPTER: TypeAdapter[EnemyStats] = TypeAdapter(EnemyStats)


def _aware(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo on the way back
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class SqlBattleRepository:
    """Persist battles in a relational database.

    ``update`` is a single conditional ``UPDATE ... WHERE log_length = ?``; a
    partial unique index enforces one ongoing battle per character.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    @staticmethod
    def _to_columns(battle: Battle) -> dict[str, Any]:
        return {
            "character_id": battle.character_id,
            "enemy_type": battle.enemy_type,
            "enemy_name": battle.enemy_name,
            "enemy_base_stats": STATS_ADAPTER.dump_python(battle.enemy_base_stats, mode="json"),
            "result": str(battle.result),
            "experience_gained": battle.experience_gained,
            "tokens_earned": battle.tokens_earned,
            "log": LOG_ADAPTER.dump_python(battle.log, mode="json"),
            "log_length": len(battle.log),
            "created_at": battle.created_at,
            "completed_at": battle.completed_at,
            "settlement_status": str(battle.settlement_status),
            "settlement_tx": battle.settlement_tx,
            "settlement_attempts": battle.settlement_attempts,
        }

    @staticmethod
    def _to_domain(record: BattleRecord) -> Battle:
        return Battle(
            id=BattleID(record.id),
            character_id=CharacterID(record.character_id),
            enemy_type=record.enemy_type,
            enemy_name=record.enemy_name,
            enemy_base_stats=STATS_ADAPTER.validate_python(record.enemy_base_stats),
            created_at=_aware(record.created_at),
            result=BattleResult(record.result),
            experience_gained=record.experience_gained,
            tokens_earned=record.tokens_earned,
            log=LOG_ADAPTER.validate_python(record.log),
            completed_at=_aware(record.completed_at),
            settlement_status=SettlementStatus(record.settlement_status),
            settlement_tx=record.settlement_tx,
            settlement_attempts=record.settlement_attempts,
        )

    def create(self, battle: Battle) -> None:
        try:
            with self._session_factory() as session, session.begin():
                session.add(BattleRecord(id=battle.id, **self._to_columns(battle)))
        except IntegrityError as exc:
            existing = self.find_ongoing(battle.character_id)
            if existing is not None:
                raise OngoingBattleExistsError(battle.character_id, existing.id) from exc
            raise StorageError(f"Could not create battle {battle.id}") from exc
        except SQLAlchemyError as exc:
            logger.error("failed to insert battle %s", battle.id)
            raise StorageError(f"Could not create battle {battle.id}") from exc

    def get(self, battle_id: BattleID) -> Battle:
        try:
            with self._session_factory() as session:
                record = session.get(BattleRecord, battle_id)
                if record is None:
                    raise BattleNotFoundError(battle_id)
                return self._to_domain(record)
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not load battle {battle_id}") from exc

    def update(self, battle: Battle, *, expected_log_length: int) -> None:
        try:
            with self._session_factory() as session, session.begin():
                statement = (
                    update(BattleRecord)
                    .where(
                        BattleRecord.id == battle.id,
                        BattleRecord.log_length == expected_log_length,
                    )
                    .values(**self._to_columns(battle))
                )
                if session.execute(statement).rowcount == 1:
                    return
                actual = session.scalar(
                    select(BattleRecord.log_length).where(BattleRecord.id == battle.id)
                )
        except SQLAlchemyError as exc:
            logger.error("failed to update battle %s", battle.id)
            raise StorageError(f"Could not update battle {battle.id}") from exc

        if actual is None:
            raise BattleNotFoundError(battle.id)
        raise ConflictError(battle.id, expected_log_length, actual)

    def find_ongoing(self, character_id: CharacterID) -> Battle | None:
        statement = select(BattleRecord).where(
            BattleRecord.character_id == character_id,
            BattleRecord.result == BattleResult.ONGOING.value,
        )
        try:
            with self._session_factory() as session:
                record = session.scalars(statement).first()
                return self._to_domain(record) if record is not None else None
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not look up battles of {character_id}") from exc

    def list_for_character(self, character_id: CharacterID) -> list[Battle]:
        statement = (
            select(BattleRecord)
            .where(BattleRecord.character_id == character_id)
            .order_by(BattleRecord.created_at.desc())
        )
        return self._fetch_all(statement)

    def list_pending_settlements(self) -> list[Battle]:
        statement = (
            select(BattleRecord)
            .where(BattleRecord.settlement_status == SettlementStatus.PENDING.value)
            .order_by(func.coalesce(BattleRecord.completed_at, BattleRecord.created_at))
        )
        return self._fetch_all(statement)

    def _fetch_all(self, statement: Select[tuple[BattleRecord]]) -> list[Battle]:
        try:
            with self._session_factory() as session:
                return [self._to_domain(record) for record in session.scalars(statement)]
        except SQLAlchemyError as exc:
            logger.error("battle query failed")
            raise StorageError("Could not query battles") from exc
