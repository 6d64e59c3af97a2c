"""
Match engine - owns one Match and runs it from toss to result.

The engine is synchronous and single-writer: callers must not apply two
operations to the same match concurrently; the HTTP layer holds a lock per
match code. After every accepted change it notifies its listeners (the
repository among them); a failing listener is logged and never undoes or
blocks scoring.
"""
import logging
from datetime import datetime
from typing import Callable, Optional, Union
from uuid import uuid4

from app.engine.errors import IllegalDeliveryError, InvalidTransitionError, ValidationError
from app.engine.format_config import FormatConfig
from app.engine.innings_engine import InningsEngine, LastManStanding
from app.engine.interfaces import Identity, MatchRepository
from app.engine.result import MatchResult, ResultResolver
from app.engine.roster import build_teams
from app.engine.state import (
    BatsmanStats,
    BowlerStats,
    Delivery,
    Innings,
    Match,
    MatchStatus,
    Over,
    SingleBatsman,
    Team,
    TossChoice,
)

logger = logging.getLogger(__name__)

DEFAULT_ABANDON_MINUTES = 30

Listener = Callable[[Match], None]


def create_match(config: FormatConfig, teams: list[dict], identity: Optional[Identity] = None) -> Match:
    """Validate the rosters and build a match in setup"""
    identity = identity or Identity.guest()
    return Match(
        id=uuid4().hex,
        config=config,
        teams=build_teams(teams, config),
        created_by=identity.user_id,
        is_guest=identity.is_guest,
    )


class MatchEngine:
    def __init__(self, match: Match, repository: Optional[MatchRepository] = None):
        self.match = match
        self.repository = repository
        self.last_persist_error: Optional[str] = None
        self._innings_engines: list[InningsEngine] = []
        self._listeners: list[Listener] = []

        if repository is not None:
            self._listeners.append(lambda m: repository.update(m.id, m))

    @classmethod
    def create(
        cls,
        config: FormatConfig,
        teams: list[dict],
        identity: Optional[Identity] = None,
        repository: Optional[MatchRepository] = None,
    ) -> "MatchEngine":
        match = create_match(config, teams, identity)
        if repository is not None:
            match.code = repository.create(match)
        logger.info("Created match %s (%s)", match.id, match.code)
        return cls(match, repository)

    @classmethod
    def load(cls, document: dict, repository: Optional[MatchRepository] = None) -> "MatchEngine":
        """Rebuild a stored match, replaying every innings from its deliveries"""
        config = FormatConfig.from_dict(document["config"])
        match = Match(
            id=document["id"],
            config=config,
            teams=[Team.from_dict(t) for t in document["teams"]],
            status=MatchStatus(document.get("status", MatchStatus.SETUP.value)),
            toss_winner_id=document.get("toss_winner_id"),
            toss_choice=TossChoice(document["toss_choice"]) if document.get("toss_choice") else None,
            winner=document.get("winner"),
            win_margin=document.get("win_margin"),
            winning_team_id=document.get("winning_team_id"),
            abandoned=document.get("abandoned", False),
            code=document.get("code"),
            created_by=document.get("created_by"),
            is_guest=document.get("is_guest", False),
        )
        if document.get("created_at"):
            match.created_at = datetime.fromisoformat(document["created_at"])
        if document.get("updated_at"):
            match.updated_at = datetime.fromisoformat(document["updated_at"])

        engine = cls(match, repository)
        for data in sorted(document.get("innings", []), key=lambda i: i["number"]):
            innings_engine = InningsEngine.rebuild(
                data,
                config,
                match.team(data["batting_team_id"]),
                match.team(data["bowling_team_id"]),
            )
            engine._innings_engines.append(innings_engine)
            match.innings.append(innings_engine.innings)
        return engine

    # Listeners

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self):
        self.match.updated_at = datetime.utcnow()
        for listener in list(self._listeners):
            try:
                listener(self.match)
            except Exception as exc:
                # Storage trouble is advisory; the in-memory match is still right
                logger.warning("State change listener failed for match %s: %s", self.match.id, exc)
                self.last_persist_error = str(exc)

    # Setup

    def record_toss(self, winner_team_id: str, choice: Union[TossChoice, str]):
        match = self.match
        if match.status != MatchStatus.SETUP:
            raise InvalidTransitionError("Toss can only be recorded before the match starts")
        if winner_team_id not in [t.id for t in match.teams]:
            raise ValidationError([{"field": "toss_winner_id", "message": f"Unknown team {winner_team_id}"}])
        try:
            choice = TossChoice(choice)
        except ValueError:
            raise ValidationError([{"field": "toss_choice", "message": f"Toss choice must be bat or bowl, got {choice}"}])

        match.toss_winner_id = winner_team_id
        match.toss_choice = choice
        self._notify()

    def start_match(self, opening_batsmen: list[str], opening_bowler: str) -> Innings:
        """Open the first innings with the chosen openers"""
        match = self.match
        if match.status != MatchStatus.SETUP:
            raise InvalidTransitionError("Match has already started")
        if match.toss_winner_id is None:
            raise InvalidTransitionError("Record the toss before starting the match")

        toss_winner = match.team(match.toss_winner_id)
        if match.toss_choice == TossChoice.BAT:
            batting, bowling = toss_winner, match.other_team(toss_winner.id)
        else:
            batting, bowling = match.other_team(toss_winner.id), toss_winner

        innings_engine = InningsEngine.open(1, match.config, batting, bowling, opening_batsmen, opening_bowler)
        self._innings_engines.append(innings_engine)
        match.innings.append(innings_engine.innings)
        match.status = MatchStatus.ACTIVE
        logger.info("Match %s started, %s batting first", match.id, batting.name)
        self._notify()
        return innings_engine.innings

    # Scoring

    def record_delivery(self, delivery: Delivery) -> Delivery:
        if self.match.status == MatchStatus.COMPLETED and self.match.innings:
            raise IllegalDeliveryError(
                "Match was abandoned" if self.match.abandoned else "Match is already completed"
            )
        innings_engine = self._active_innings_engine()

        recorded = innings_engine.record_delivery(delivery)

        if innings_engine.innings.is_completed:
            self._innings_completed(innings_engine.innings)
        self._notify()
        return recorded

    def change_bowler(self, new_bowler_id: str):
        self._active_innings_engine().change_bowler(new_bowler_id)
        self._notify()

    def change_batsman(self, out_player_id: str, new_player_id: str):
        self._active_innings_engine().change_batsman(out_player_id, new_player_id)
        self._notify()

    def switch_to_single_batting(self, remaining_batsman_id: str):
        self._active_innings_engine().switch_to_single_batting(remaining_batsman_id)
        self._notify()

    def end_innings_early(self):
        innings_engine = self._active_innings_engine()
        innings_engine.end_early()
        self._innings_completed(innings_engine.innings)
        self._notify()

    def is_last_man_standing(self) -> Optional[LastManStanding]:
        innings_engine = self._current_innings_engine()
        if innings_engine is None:
            return None
        return innings_engine.is_last_man_standing()

    def undo_last_ball(self) -> Delivery:
        """Put the current innings back exactly as it was before its latest delivery"""
        match = self.match
        innings_engine = self._current_innings_engine()
        if innings_engine is None:
            raise InvalidTransitionError("No delivery to undo")
        if match.abandoned:
            raise InvalidTransitionError("Match was abandoned")

        rebuilt, undone = innings_engine.without_last_delivery()
        self._innings_engines[-1] = rebuilt
        match.innings[-1] = rebuilt.innings

        if match.status == MatchStatus.COMPLETED:
            # The result stood on the undone ball; the match goes back in play
            ResultResolver.apply(match, MatchResult())
            match.status = MatchStatus.ACTIVE
        logger.info("Undid ball %s.%s in innings %s", undone.over_number, undone.ball_number, rebuilt.innings.number)
        self._notify()
        return undone

    # Innings break and result

    def open_second_innings(self, opening_batsmen: list[str], opening_bowler: str) -> Innings:
        match = self.match
        if match.status != MatchStatus.ACTIVE:
            raise InvalidTransitionError("Match is not in progress")
        if len(match.innings) != 1:
            raise InvalidTransitionError("Second innings has already been opened")

        first = match.innings[0]
        target = ResultResolver.target_for(first)
        innings_engine = InningsEngine.open(
            2,
            match.config,
            match.team(first.bowling_team_id),
            match.team(first.batting_team_id),
            opening_batsmen,
            opening_bowler,
            target=target,
        )
        self._innings_engines.append(innings_engine)
        match.innings.append(innings_engine.innings)
        logger.info("Match %s second innings opened, target %s", match.id, target)
        self._notify()
        return innings_engine.innings

    def finalize_match(self) -> MatchResult:
        stored = ResultResolver.stored(self.match)
        if stored is not None:
            return stored
        result = ResultResolver.resolve(self.match)
        ResultResolver.apply(self.match, result)
        self._notify()
        return result

    def abandon_match(self) -> MatchResult:
        if self.match.status == MatchStatus.COMPLETED:
            raise InvalidTransitionError("Match is already completed")
        result = ResultResolver.abandoned()
        ResultResolver.apply(self.match, result)
        logger.info("Match %s abandoned", self.match.id)
        self._notify()
        return result

    def abandon_if_inactive(self, now: Optional[datetime] = None, timeout_minutes: int = DEFAULT_ABANDON_MINUTES) -> bool:
        """Abandon the match when nothing has happened for timeout_minutes"""
        if self.match.status == MatchStatus.COMPLETED:
            return False
        now = now or datetime.utcnow()
        if not ResultResolver.is_inactive(self.match.updated_at, now, timeout_minutes):
            return False
        self.abandon_match()
        return True

    # Read-only projections

    @property
    def current_innings(self) -> Optional[Innings]:
        return self.match.current_innings

    @property
    def current_over(self) -> Optional[Over]:
        innings = self.current_innings
        return innings.current_over if innings else None

    @property
    def current_batsmen(self) -> Union[BatsmanStats, tuple, None]:
        """Single batsman's stats, or (striker, non-striker) stats"""
        innings_engine = self._current_innings_engine()
        if innings_engine is None:
            return None
        active = innings_engine.innings.active_batsmen
        if isinstance(active, SingleBatsman):
            return innings_engine.batsman_stats(active.player_id)
        return (
            innings_engine.batsman_stats(active.striker_id),
            innings_engine.batsman_stats(active.non_striker_id),
        )

    @property
    def current_bowler(self) -> Optional[BowlerStats]:
        innings_engine = self._current_innings_engine()
        if innings_engine is None or innings_engine.innings.current_bowler_id is None:
            return None
        return innings_engine.bowler_stats(innings_engine.innings.current_bowler_id)

    def batting_stats(self, innings_number: Optional[int] = None) -> list[BatsmanStats]:
        """Everyone who has batted, in order of first ball, plus anyone at the crease yet to face"""
        innings_engine = self._innings_engine(innings_number)
        if innings_engine is None:
            return []
        innings = innings_engine.innings
        stats = list(innings.batting_stats.values())
        for player_id in innings.active_batsmen.ids:
            if player_id not in innings.batting_stats:
                stats.append(BatsmanStats(player_id=player_id))
        return stats

    def bowling_stats(self, innings_number: Optional[int] = None) -> list[BowlerStats]:
        innings_engine = self._innings_engine(innings_number)
        if innings_engine is None:
            return []
        return list(innings_engine.innings.bowling_stats.values())

    def eligible_batsmen(self) -> list[str]:
        innings_engine = self._current_innings_engine()
        return innings_engine.eligible_batsmen() if innings_engine else []

    def eligible_bowlers(self) -> list[str]:
        innings_engine = self._current_innings_engine()
        return innings_engine.eligible_bowlers() if innings_engine else []

    # Internals

    def _current_innings_engine(self) -> Optional[InningsEngine]:
        return self._innings_engines[-1] if self._innings_engines else None

    def _innings_engine(self, innings_number: Optional[int]) -> Optional[InningsEngine]:
        if innings_number is None:
            return self._current_innings_engine()
        for innings_engine in self._innings_engines:
            if innings_engine.innings.number == innings_number:
                return innings_engine
        return None

    def _active_innings_engine(self) -> InningsEngine:
        if self.match.status != MatchStatus.ACTIVE:
            raise InvalidTransitionError(f"Match is {self.match.status.value}, not in progress")
        return self._current_innings_engine()

    def _innings_completed(self, innings: Innings):
        if innings.number == 1:
            return
        result = ResultResolver.resolve(self.match)
        ResultResolver.apply(self.match, result)
        logger.info(
            "Match %s completed: %s %s",
            self.match.id, result.winner, result.win_margin or "",
        )
