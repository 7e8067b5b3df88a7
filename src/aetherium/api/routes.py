"""HTTP routes for the Aetherium battle API."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from aetherium import __version__
from aetherium.api.runtime import (
    ApiState,
    battle_detail_dict,
    battle_summary_dict,
    enemy_dict,
    entry_dict,
    state_dict,
)
from aetherium.domain.enums import ActionKind, EnemyType
from aetherium.domain.errors import (
    BattleError,
    ChainUnavailableError,
    ConflictError,
    CooldownActiveError,
    InvalidStateError,
    NotFoundError,
    OngoingBattleExistsError,
)
from aetherium.domain.models import BattleID, CharacterID, parse_action
from aetherium.services import TurnOutcome

router = APIRouter()


def get_state(request: Request) -> ApiState:
    state = getattr(request.app.state, "api_state", None)
    if state is None:  # pragma: no cover - FastAPI should always initialise state
        raise RuntimeError("API state not initialised")
    return state


ApiStateDep = Annotated[ApiState, Depends(get_state)]


def to_http_error(exc: BattleError) -> HTTPException:
    """Map a domain failure onto the HTTP status the clients expect."""

    if isinstance(exc, OngoingBattleExistsError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": str(exc), "battleId": exc.battle_id},
        )
    if isinstance(exc, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, InvalidStateError | CooldownActiveError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, ConflictError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, ChainUnavailableError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(exc))


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CombatantView(CamelModel):
    name: str
    level: int
    hp: int
    max_hp: int
    mp: int
    max_mp: int
    attack: int
    defense: int
    speed: int


class BattleStateView(CamelModel):
    character: CombatantView
    enemy: CombatantView
    turn: int
    current_turn: str


class LogEntryView(CamelModel):
    turn: int
    actor: str
    action: str
    damage: int
    message: str
    battle_state: BattleStateView


class EnemyStatsView(CamelModel):
    hp: int
    mp: int
    attack: int
    defense: int
    speed: int


class EnemyView(CamelModel):
    type: str
    name: str
    level: int
    stats: EnemyStatsView
    experience_reward: int
    token_reward: int


class CharacterSummary(CamelModel):
    name: str
    level: int


class BattleSummary(CamelModel):
    id: str
    character_id: str
    enemy_type: str
    enemy_name: str
    result: str
    experience_gained: int
    tokens_earned: int
    turns: int
    created_at: datetime
    completed_at: datetime | None
    settlement_status: str


class BattleDetail(BattleSummary):
    enemy_base_stats: EnemyStatsView
    settlement_tx: str | None
    log: list[LogEntryView]
    character: CharacterSummary | None


class StartBattleRequest(CamelModel):
    character_id: str = Field(min_length=1)
    enemy_type: EnemyType = EnemyType.GOBLIN


class StartBattleResponse(CamelModel):
    battle_id: str
    battle_state: BattleStateView
    enemy: str
    message: str


class BattleTurnRequest(CamelModel):
    battle_id: str = Field(min_length=1)
    action: ActionKind
    target_id: str | None = None
    item_id: int | None = None


class AdvanceRequest(CamelModel):
    battle_id: str = Field(min_length=1)


class BattleTurnResponse(CamelModel):
    battle_state: BattleStateView
    action_result: LogEntryView | None = None
    enemy_action_result: LogEntryView | None = None
    battle_ended: bool
    result: str | None = None
    experience_gained: int | None = None
    tokens_earned: int | None = None


def _turn_response(outcome: TurnOutcome) -> BattleTurnResponse:
    battle = outcome.battle
    ended = outcome.battle_ended
    return BattleTurnResponse.model_validate(
        {
            "battle_state": state_dict(outcome.state),
            "action_result": entry_dict(outcome.action_result),
            "enemy_action_result": entry_dict(outcome.enemy_action_result),
            "battle_ended": ended,
            "result": str(battle.result) if ended else None,
            "experience_gained": battle.experience_gained if ended else None,
            "tokens_earned": battle.tokens_earned if ended else None,
        }
    )


@router.get("/health")
async def health(state: ApiStateDep) -> dict[str, object]:
    return {
        "status": "ok",
        "version": __version__,
        "storage": state.settings.storage_backend,
        "database": await asyncio.to_thread(state.database_status),
        "settlement_retry_running": state.settlements.running,
    }


@router.get("/api/battle/enemies", response_model=list[EnemyView])
async def list_enemies(state: ApiStateDep) -> list[EnemyView]:
    return [EnemyView.model_validate(enemy_dict(t)) for t in state.battles.list_enemies()]


@router.post(
    "/api/battle/start",
    response_model=StartBattleResponse,
    status_code=status.HTTP_201_CREATED,
)
async def start_battle(request: StartBattleRequest, state: ApiStateDep) -> StartBattleResponse:
    try:
        started = await asyncio.to_thread(
            state.battles.start_battle, CharacterID(request.character_id), request.enemy_type
        )
    except BattleError as exc:
        raise to_http_error(exc) from exc

    return StartBattleResponse.model_validate(
        {
            "battle_id": started.battle.id,
            "battle_state": state_dict(started.state),
            "enemy": started.enemy.name,
            "message": f"Battle started against {started.enemy.name}!",
        }
    )


@router.post("/api/battle/turn", response_model=BattleTurnResponse)
async def battle_turn(request: BattleTurnRequest, state: ApiStateDep) -> BattleTurnResponse:
    action = parse_action(request.action, request.item_id)
    try:
        outcome = await asyncio.to_thread(
            state.battles.submit_turn, BattleID(request.battle_id), action
        )
    except BattleError as exc:
        raise to_http_error(exc) from exc
    return _turn_response(outcome)


@router.post("/api/battle/advance", response_model=BattleTurnResponse)
async def advance_enemy_turn(request: AdvanceRequest, state: ApiStateDep) -> BattleTurnResponse:
    try:
        outcome = await asyncio.to_thread(
            state.battles.advance_enemy_turn, BattleID(request.battle_id)
        )
    except BattleError as exc:
        raise to_http_error(exc) from exc
    return _turn_response(outcome)


@router.get("/api/battle/{battle_id}", response_model=BattleDetail)
async def get_battle(battle_id: str, state: ApiStateDep) -> BattleDetail:
    try:
        battle, character = await asyncio.to_thread(
            state.battles.get_battle, BattleID(battle_id)
        )
    except BattleError as exc:
        raise to_http_error(exc) from exc
    return BattleDetail.model_validate(battle_detail_dict(battle, character))


@router.get("/api/character/{character_id}/battles", response_model=list[BattleSummary])
async def list_character_battles(character_id: str, state: ApiStateDep) -> list[BattleSummary]:
    try:
        battles = await asyncio.to_thread(state.battles.list_battles, CharacterID(character_id))
    except BattleError as exc:
        raise to_http_error(exc) from exc
    return [BattleSummary.model_validate(battle_summary_dict(b)) for b in battles]
