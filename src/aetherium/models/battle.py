"""Battle record model.

One row per encounter.  The append-only log is stored as a JSON array and
``log_length`` mirrors its size so writers can make conditional updates on
it without reading the log.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, CheckConstraint, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class BattleRecord(Base):
    """Persisted battle aggregate.

    Attributes:
        id: Battle identifier (UUID string)
        character_id: Character fighting the battle
        enemy_type: Enemy catalog key
        enemy_name: Display name of the enemy
        enemy_base_stats: JSON with the enemy's starting stats
        result: ongoing/victory/defeat
        experience_gained: Experience granted on completion
        tokens_earned: Tokens granted on completion
        log: JSON array of log entries, each embedding a state snapshot
        log_length: Number of entries in ``log``
        created_at: When the battle started
        completed_at: When the battle ended, if it has
        settlement_status: none/pending/settled/failed
        settlement_tx: Transaction reference returned by the chain
        settlement_attempts: Number of settlement calls made so far
    """

    __tablename__ = "battles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    character_id: Mapped[str] = mapped_column(String(64), nullable=False)
    enemy_type: Mapped[str] = mapped_column(String, nullable=False)
    enemy_name: Mapped[str] = mapped_column(String, nullable=False)
    enemy_base_stats: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    result: Mapped[str] = mapped_column(String, nullable=False, default="ongoing")
    experience_gained: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tokens_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    log: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    log_length: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    settlement_status: Mapped[str] = mapped_column(String, nullable=False, default="none")
    settlement_tx: Mapped[str | None] = mapped_column(String, nullable=True)
    settlement_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint(
            "result IN ('ongoing', 'victory', 'defeat')", name="ck_battles_result"
        ),
        CheckConstraint(
            "settlement_status IN ('none', 'pending', 'settled', 'failed')",
            name="ck_battles_settlement_status",
        ),
        Index("idx_battles_character", "character_id", "created_at"),
        Index("idx_battles_settlement", "settlement_status"),
        # At most one ongoing battle per character
        Index(
            "uq_battles_one_ongoing",
            "character_id",
            unique=True,
            sqlite_where=text("result = 'ongoing'"),
            postgresql_where=text("result = 'ongoing'"),
        ),
    )

    def __repr__(self) -> str:
        return f"<BattleRecord(id='{self.id}', result='{self.result}', log_length={self.log_length})>"
