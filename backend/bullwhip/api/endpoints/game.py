import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...core.exceptions import GameNotFinished, InvalidRound, UnknownRole
from ...core.roles import Role
from ...schemas.game import (
    ExternalRoleAssignment,
    FinalResults,
    GameCreate,
    GameReport,
    OrderSuggestion,
    RoundResult,
    RoundState,
    TurnRequest,
)
from ...services.game_service import GameService
from ...services.policies import NamedStrategy
from ...services.state import SESSION

logger = logging.getLogger(__name__)

router = APIRouter()


def get_game_service() -> GameService:
    """Dependency returning the running game, 404 when none was created."""
    if SESSION.current is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No game in progress")
    return SESSION.current


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, UnknownRole):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, (InvalidRound, GameNotFinished)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.post("", response_model=Dict[str, Any], status_code=status.HTTP_201_CREATED)
def create_game(game_in: GameCreate):
    """
    Start a new game, replacing any game already in memory.

    - **external_actor**: Label of the person playing
    - **roles**: The five supply chain roles
    - **seed**: Optional seed for reproducible runs
    """
    try:
        game = GameService.initialize(game_in.roles, game_in.external_actor, seed=game_in.seed)
    except ValueError as e:
        raise _http_error(e)
    SESSION.start(game)
    logger.info("Game created for %s", game.external_actor)
    return {
        "message": "Game created successfully",
        "external_actor": game.external_actor,
        "max_rounds": game.max_rounds,
        "seed": game.seed,
    }


@router.get("/state/{role}", response_model=RoundState)
def get_round_state(
    role: str,
    round_number: Optional[int] = Query(default=None, ge=0, alias="round"),
    game: GameService = Depends(get_game_service),
):
    """Read-only view of one role; defaults to the upcoming round."""
    if round_number is None:
        round_number = min(game.current_round + 1, game.max_rounds)
    try:
        return game.snapshot(round_number, role)
    except (UnknownRole, InvalidRound) as e:
        raise _http_error(e)


@router.post("/rounds/{round_number}/assign-role", response_model=ExternalRoleAssignment)
def assign_role(round_number: int, game: GameService = Depends(get_game_service)):
    try:
        role = game.assign_random_role(round_number)
    except InvalidRound as e:
        raise _http_error(e)
    return ExternalRoleAssignment(round=round_number, role=role)


@router.post("/turn", response_model=RoundResult)
def submit_turn(turn: TurnRequest, game: GameService = Depends(get_game_service)):
    try:
        return game.process_external_turn(turn.role, turn.quantity, turn.round)
    except (UnknownRole, InvalidRound) as e:
        raise _http_error(e)


@router.get("/suggestion/{role}", response_model=OrderSuggestion)
def suggest_order(
    role: str,
    strategy: NamedStrategy = NamedStrategy.BALANCED,
    game: GameService = Depends(get_game_service),
):
    try:
        return game.suggest_order(Role.parse(role), strategy)
    except UnknownRole as e:
        raise _http_error(e)


@router.get("/results", response_model=FinalResults)
def get_final_results(game: GameService = Depends(get_game_service)):
    try:
        return game.final_results()
    except GameNotFinished as e:
        raise _http_error(e)


@router.get("/report", response_model=GameReport)
def get_report(game: GameService = Depends(get_game_service)):
    try:
        return game.report()
    except GameNotFinished as e:
        raise _http_error(e)
