import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional, Dict

from fastapi import APIRouter, Depends, HTTPException

from app.auth import get_identity
from app.config import settings
from app.database import SessionLocal
from app.engine import FormatConfig, MatchEngine
from app.engine.interfaces import Identity, MatchRepository
from app.engine.state import Delivery, Extra, ExtraType, DismissalType, MatchStatus, Wicket
from app.storage import SqlMatchRepository
from app.api.schemas import (
    CreateMatchRequest, TossRequest, OpeningPlayersRequest, BallRequest,
    BowlerChangeRequest, BatsmanChangeRequest, SingleBattingRequest,
    MatchStateResponse, BallResultResponse, BatsmanStateBrief, BowlerStateBrief,
    LastManStandingResponse, ScorecardResponse, InningsScorecardResponse,
    MatchResultResponse,
)

router = APIRouter(prefix="/matches", tags=["Match Scoring"])

# In-process engines keyed by match code; a miss is cold-loaded from the repository
active_matches: Dict[str, MatchEngine] = {}

# Sync routes run in a threadpool; one lock per match code serialises engine calls
match_locks: Dict[str, threading.Lock] = {}
_match_locks_guard = threading.Lock()

_repository: Optional[MatchRepository] = None


def get_repository() -> MatchRepository:
    global _repository
    if _repository is None:
        _repository = SqlMatchRepository(
            SessionLocal,
            code_length=settings.MATCH_CODE_LENGTH,
            cache_ttl_seconds=settings.MATCH_CACHE_TTL_SECONDS,
        )
    return _repository


def _match_lock(code: str) -> threading.Lock:
    with _match_locks_guard:
        return match_locks.setdefault(code, threading.Lock())


def _stored_is_newer(document: dict, engine: MatchEngine) -> bool:
    updated_at = document.get("updated_at")
    return bool(updated_at) and datetime.fromisoformat(updated_at) > engine.match.updated_at


def _get_engine(code: str, repository: MatchRepository) -> MatchEngine:
    code = code.upper()
    document = repository.get_by_code(code)
    if document is None:
        active_matches.pop(code, None)
        raise HTTPException(status_code=404, detail="Match not found")

    engine = active_matches.get(code)
    if engine is not None and not _stored_is_newer(document, engine):
        return engine

    # Cold load, or someone else (the sweep command) wrote the match since it was cached
    engine = MatchEngine.load(document, repository)
    if engine.match.status == MatchStatus.COMPLETED:
        active_matches.pop(code, None)
    else:
        active_matches[code] = engine
    return engine


@contextmanager
def _match_session(code: str, repository: MatchRepository) -> Iterator[MatchEngine]:
    """Hold the match lock around one request; finished matches leave the in-process map"""
    code = code.upper()
    with _match_lock(code):
        engine = _get_engine(code, repository)
        yield engine
        if engine.match.status == MatchStatus.COMPLETED:
            active_matches.pop(code, None)


def _get_outcome_string(delivery: Delivery) -> str:
    if delivery.is_wicket:
        return "W"
    if delivery.extra is None:
        return str(delivery.runs_off_bat)
    if delivery.extra.type == ExtraType.WIDE:
        return "Wd"
    if delivery.extra.type == ExtraType.NO_BALL:
        return "Nb"
    suffix = "b" if delivery.extra.type == ExtraType.BYE else "lb"
    return f"{delivery.extra.runs}{suffix}"


def _batsman_brief(engine: MatchEngine, stats) -> BatsmanStateBrief:
    return BatsmanStateBrief(
        id=stats.player_id,
        name=engine.match.player_name(stats.player_id),
        runs=stats.runs,
        balls=stats.balls,
        fours=stats.fours,
        sixes=stats.sixes,
        strike_rate=round(stats.strike_rate, 2),
        is_out=stats.is_out,
        dismissal_type=stats.dismissal_type,
    )


def _bowler_brief(engine: MatchEngine, stats) -> BowlerStateBrief:
    return BowlerStateBrief(
        id=stats.player_id,
        name=engine.match.player_name(stats.player_id),
        overs=stats.overs_display,
        balls=stats.balls,
        runs=stats.runs,
        wickets=stats.wickets,
        maidens=stats.maidens,
        economy=round(stats.economy, 2),
    )


def _get_match_state_response(engine: MatchEngine) -> MatchStateResponse:
    match = engine.match
    response = MatchStateResponse(
        id=match.id,
        code=match.code,
        status=match.status.value,
        team_names=[t.name for t in match.teams],
        winner=match.winner,
        win_margin=match.win_margin,
        abandoned=match.abandoned,
        last_persist_error=engine.last_persist_error,
    )

    innings = engine.current_innings
    if innings is None:
        return response

    batsmen = engine.current_batsmen
    if not isinstance(batsmen, tuple):
        batsmen = (batsmen,)
    bowler = engine.current_bowler
    over = innings.current_over or innings.last_completed_over
    last_man = engine.is_last_man_standing()

    response.innings = innings.number
    response.runs = innings.total_runs
    response.wickets = innings.total_wickets
    response.overs = innings.overs_display
    response.extras = innings.extras
    response.run_rate = round(innings.run_rate, 2)
    response.target = innings.target
    response.innings_completed = innings.is_completed
    response.batting_team_name = match.team(innings.batting_team_id).name
    response.bowling_team_name = match.team(innings.bowling_team_id).name
    response.batsmen = [_batsman_brief(engine, s) for s in batsmen]
    response.bowler = _bowler_brief(engine, bowler) if bowler else None
    response.this_over = [_get_outcome_string(d) for d in over.deliveries] if over else []
    if last_man is not None:
        response.last_man_standing = LastManStandingResponse(
            is_last_man=last_man.is_last_man,
            remaining_batsman_id=last_man.remaining_batsman_id,
        )
    response.eligible_batsmen = engine.eligible_batsmen()
    response.eligible_bowlers = engine.eligible_bowlers()
    return response


def _result_response(result) -> MatchResultResponse:
    return MatchResultResponse(
        winner=result.winner,
        win_margin=result.win_margin,
        winning_team_id=result.winning_team_id,
        is_tie=result.is_tie,
        is_abandoned=result.is_abandoned,
    )


def _runs_so_far(engine: MatchEngine) -> int:
    innings = engine.current_innings
    return innings.total_runs if innings else 0


@router.post("")
def create_match(
    request: CreateMatchRequest,
    identity: Identity = Depends(get_identity),
    repository: MatchRepository = Depends(get_repository),
):
    """Validate the format and rosters and store a new match in setup"""
    config = FormatConfig.create(**request.config.model_dump())
    teams = [t.model_dump(mode="json") for t in request.teams]

    engine = MatchEngine.create(config, teams, identity=identity, repository=repository)
    active_matches[engine.match.code] = engine
    return _get_match_state_response(engine)


@router.get("/{code}")
def get_match_state(code: str, repository: MatchRepository = Depends(get_repository)):
    with _match_session(code, repository) as engine:
        return _get_match_state_response(engine)


@router.get("/{code}/scorecard")
def get_scorecard(code: str, repository: MatchRepository = Depends(get_repository)):
    with _match_session(code, repository) as engine:
        match = engine.match

        innings_cards = []
        for innings in match.innings:
            innings_cards.append(InningsScorecardResponse(
                number=innings.number,
                batting_team_name=match.team(innings.batting_team_id).name,
                bowling_team_name=match.team(innings.bowling_team_id).name,
                runs=innings.total_runs,
                wickets=innings.total_wickets,
                overs=innings.overs_display,
                extras=innings.extras,
                target=innings.target,
                batting=[_batsman_brief(engine, s) for s in engine.batting_stats(innings.number)],
                bowling=[_bowler_brief(engine, s) for s in engine.bowling_stats(innings.number)],
            ))

        return ScorecardResponse(
            code=match.code,
            innings=innings_cards,
            winner=match.winner,
            win_margin=match.win_margin,
            abandoned=match.abandoned,
        )


@router.post("/{code}/toss")
def record_toss(code: str, request: TossRequest, repository: MatchRepository = Depends(get_repository)):
    with _match_session(code, repository) as engine:
        engine.record_toss(request.winner_team_id, request.choice.value)
        return _get_match_state_response(engine)


@router.post("/{code}/start")
def start_match(code: str, request: OpeningPlayersRequest, repository: MatchRepository = Depends(get_repository)):
    with _match_session(code, repository) as engine:
        engine.start_match(request.opening_batsmen, request.opening_bowler)
        return _get_match_state_response(engine)


@router.post("/{code}/ball")
def record_ball(code: str, request: BallRequest, repository: MatchRepository = Depends(get_repository)):
    """Score one delivery; the bowler defaults to whoever is bowling now"""
    with _match_session(code, repository) as engine:
        innings = engine.current_innings

        bowler_id = request.bowler_id
        if bowler_id is None and innings is not None:
            bowler_id = innings.current_bowler_id

        delivery = Delivery(
            bowler_id=bowler_id,
            runs_off_bat=request.runs_off_bat,
            extra=Extra(ExtraType(request.extra.type.value), request.extra.runs) if request.extra else None,
            wicket=Wicket(DismissalType(request.wicket.value)) if request.wicket else None,
            striker_id=request.striker_id,
        )

        runs_before = _runs_so_far(engine)
        recorded = engine.record_delivery(delivery)

        return BallResultResponse(
            outcome=_get_outcome_string(recorded),
            runs=_runs_so_far(engine) - runs_before,
            is_wicket=recorded.is_wicket,
            over_number=recorded.over_number,
            ball_number=recorded.ball_number,
            match_state=_get_match_state_response(engine),
        )


@router.post("/{code}/bowler")
def change_bowler(code: str, request: BowlerChangeRequest, repository: MatchRepository = Depends(get_repository)):
    with _match_session(code, repository) as engine:
        engine.change_bowler(request.bowler_id)
        return _get_match_state_response(engine)


@router.post("/{code}/batsman")
def change_batsman(code: str, request: BatsmanChangeRequest, repository: MatchRepository = Depends(get_repository)):
    with _match_session(code, repository) as engine:
        engine.change_batsman(request.out_player_id, request.new_player_id)
        return _get_match_state_response(engine)


@router.post("/{code}/single-batting")
def switch_to_single_batting(
    code: str,
    request: SingleBattingRequest,
    repository: MatchRepository = Depends(get_repository),
):
    with _match_session(code, repository) as engine:
        engine.switch_to_single_batting(request.remaining_batsman_id)
        return _get_match_state_response(engine)


@router.post("/{code}/end-innings")
def end_innings(code: str, repository: MatchRepository = Depends(get_repository)):
    with _match_session(code, repository) as engine:
        engine.end_innings_early()
        return _get_match_state_response(engine)


@router.post("/{code}/second-innings")
def open_second_innings(
    code: str,
    request: OpeningPlayersRequest,
    repository: MatchRepository = Depends(get_repository),
):
    with _match_session(code, repository) as engine:
        engine.open_second_innings(request.opening_batsmen, request.opening_bowler)
        return _get_match_state_response(engine)


@router.post("/{code}/finalize")
def finalize_match(code: str, repository: MatchRepository = Depends(get_repository)):
    with _match_session(code, repository) as engine:
        return _result_response(engine.finalize_match())


@router.post("/{code}/undo")
def undo_last_ball(code: str, repository: MatchRepository = Depends(get_repository)):
    with _match_session(code, repository) as engine:
        runs_before = _runs_so_far(engine)
        undone = engine.undo_last_ball()

        return BallResultResponse(
            outcome=_get_outcome_string(undone),
            runs=runs_before - _runs_so_far(engine),
            is_wicket=undone.is_wicket,
            over_number=undone.over_number,
            ball_number=undone.ball_number,
            match_state=_get_match_state_response(engine),
        )


@router.post("/{code}/abandon")
def abandon_match(code: str, repository: MatchRepository = Depends(get_repository)):
    with _match_session(code, repository) as engine:
        return _result_response(engine.abandon_match())
