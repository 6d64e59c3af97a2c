"""
Innings-break target and match result.
The only place a winner or margin is worked out.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from app.engine.errors import InvalidTransitionError
from app.engine.state import TIED, Innings, Match, MatchStatus


@dataclass(frozen=True)
class MatchResult:
    winner: Optional[str] = None  # team name, "Tied", or None when abandoned
    win_margin: Optional[str] = None
    winning_team_id: Optional[str] = None
    is_tie: bool = False
    is_abandoned: bool = False


def _count(n: int, word: str) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {word}s"


class ResultResolver:
    @staticmethod
    def target_for(first_innings: Innings) -> int:
        """Runs the side batting second needs to win"""
        if not first_innings.is_completed:
            raise InvalidTransitionError("First innings is still in progress")
        return first_innings.total_runs + 1

    @staticmethod
    def resolve(match: Match) -> MatchResult:
        """
        Winner and margin from the two completed innings.

        Chasing side ahead: wins by the wickets it had left.
        Side batting first ahead: wins by the run difference.
        Level: tied, no margin.
        """
        if len(match.innings) < 2 or not match.innings[1].is_completed:
            raise InvalidTransitionError("Second innings is not completed")

        first, second = match.innings[0], match.innings[1]

        if second.total_runs > first.total_runs:
            team = match.team(second.batting_team_id)
            wickets_left = match.config.max_wickets - second.total_wickets
            return MatchResult(
                winner=team.name,
                win_margin=_count(wickets_left, "wicket"),
                winning_team_id=team.id,
            )
        if first.total_runs > second.total_runs:
            team = match.team(first.batting_team_id)
            return MatchResult(
                winner=team.name,
                win_margin=_count(first.total_runs - second.total_runs, "run"),
                winning_team_id=team.id,
            )
        return MatchResult(winner=TIED, is_tie=True)

    @staticmethod
    def apply(match: Match, result: MatchResult):
        match.winner = result.winner
        match.win_margin = result.win_margin
        match.winning_team_id = result.winning_team_id
        match.abandoned = result.is_abandoned
        match.status = MatchStatus.COMPLETED

    @staticmethod
    def stored(match: Match) -> Optional[MatchResult]:
        """Result already written on a completed match"""
        if match.status != MatchStatus.COMPLETED:
            return None
        return MatchResult(
            winner=match.winner,
            win_margin=match.win_margin,
            winning_team_id=match.winning_team_id,
            is_tie=match.winner == TIED,
            is_abandoned=match.abandoned,
        )

    @staticmethod
    def abandoned() -> MatchResult:
        return MatchResult(is_abandoned=True)

    @staticmethod
    def is_inactive(last_activity: datetime, now: datetime, timeout_minutes: int) -> bool:
        return now - last_activity > timedelta(minutes=timeout_minutes)
