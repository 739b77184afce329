"""Leaderboard API routes -- submissions, leaderboards, player info."""
import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from typefall.domain.errors import (
    Conflict,
    LeaderboardError,
    PlayerNotFound,
    ScopeNotFound,
    StorageUnavailable,
    ValidationError,
)

log = logging.getLogger("typefall.api")

router = APIRouter(prefix="/api", tags=["leaderboard"])

_STATUS_BY_ERROR = {
    ValidationError: 400,
    ScopeNotFound: 404,
    PlayerNotFound: 404,
    Conflict: 409,
    StorageUnavailable: 503,
}


# Raw values; the domain validators decide what is acceptable.
class SubmitGlobalRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    player_id: Optional[Any] = Field(None, alias="playerId")
    player_name: Optional[Any] = Field(None, alias="playerName")
    score: Optional[Any] = None
    levels_completed: Optional[Any] = Field(None, alias="levelsCompleted")


class SubmitLevelRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    player_id: Optional[Any] = Field(None, alias="playerId")
    player_name: Optional[Any] = Field(None, alias="playerName")
    level_id: Optional[Any] = Field(None, alias="levelId")
    language: Optional[Any] = None
    difficulty: Optional[Any] = None
    score: Optional[Any] = None


_service = None


def init_routes(leaderboard_service):
    global _service
    _service = leaderboard_service


def status_for(exc: LeaderboardError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return status_code
    return 500


def _raise_http(exc: LeaderboardError):
    status_code = status_for(exc)
    if status_code >= 500:
        log.error("%s: %s", exc.kind, exc.message)
    raise HTTPException(status_code=status_code, detail=exc.to_dict())


# ---------------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------------

@router.post("/submit-global")
@router.post("/global-score", include_in_schema=False)
def api_submit_global(req: SubmitGlobalRequest):
    """Append a global score and return its position."""
    try:
        return _service.submit_global(
            player_id=req.player_id,
            player_name=req.player_name,
            score=req.score,
            levels_completed=req.levels_completed,
        )
    except LeaderboardError as e:
        _raise_http(e)


@router.post("/submit-level")
@router.post("/level-score", include_in_schema=False)
def api_submit_level(req: SubmitLevelRequest):
    """Append a level score, re-rank the level and the global leaderboard."""
    try:
        return _service.submit_level(
            player_id=req.player_id,
            player_name=req.player_name,
            level_id=req.level_id,
            language=req.language,
            difficulty=req.difficulty,
            score=req.score,
        )
    except LeaderboardError as e:
        _raise_http(e)


# ---------------------------------------------------------------------------
# Leaderboards
# ---------------------------------------------------------------------------

@router.get("/global-leaderboard")
def api_global_leaderboard(limit: Optional[int] = None):
    try:
        return _service.global_leaderboard(limit)
    except LeaderboardError as e:
        _raise_http(e)


@router.get("/level-leaderboard")
def api_level_leaderboard(
    level_id: Optional[str] = None,
    language: Optional[str] = None,
    difficulty: Optional[str] = None,
    limit: Optional[int] = None,
    level_id_camel: Optional[str] = Query(None, alias="levelId", include_in_schema=False),
):
    try:
        return _service.level_leaderboard(
            level_id or level_id_camel, language, difficulty, limit,
        )
    except LeaderboardError as e:
        _raise_http(e)


@router.get("/player-info")
def api_player_info(
    player_id: Optional[str] = None,
    player_id_camel: Optional[str] = Query(None, alias="playerId", include_in_schema=False),
):
    """Aggregate totals and per-level bests for one player."""
    try:
        return _service.player_info(player_id or player_id_camel)
    except LeaderboardError as e:
        _raise_http(e)


@router.get("/scopes")
def api_scopes():
    """List the provisioned leaderboards."""
    try:
        return _service.scopes()
    except LeaderboardError as e:
        _raise_http(e)


def register_exception_handlers(app):
    """Malformed bodies and query strings answer with a validation_error body."""
    from fastapi.exceptions import RequestValidationError
    from fastapi.responses import JSONResponse

    @app.exception_handler(RequestValidationError)
    async def _request_validation_handler(request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        where = ".".join(str(p) for p in first.get("loc", ()))
        message = f"{where}: {first.get('msg', 'invalid request')}" if where else "Invalid request."
        return JSONResponse(
            status_code=400,
            content={"detail": ValidationError(message).to_dict()},
        )
