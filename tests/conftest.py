"""
Shared builders for scoring tests.

Teams are "A" (players a1..aN) and "B" (players b1..bN) so tests can name
players directly.
"""
import pytest

from app.engine import FormatConfig, MatchEngine
from app.engine.state import Delivery, Extra, ExtraType, TossChoice, Wicket
from app.storage import InMemoryMatchRepository


def make_teams(players_per_team: int) -> list[dict]:
    return [
        {
            "id": team_id,
            "name": name,
            "players": [
                {"id": f"{team_id.lower()}{i}", "name": f"{name} Player {i}"}
                for i in range(1, players_per_team + 1)
            ],
        }
        for team_id, name in (("A", "Tigers"), ("B", "Lions"))
    ]


def make_config(overs: int = 2, players_per_team: int = 3, **kwargs) -> FormatConfig:
    return FormatConfig.create(overs=overs, players_per_team=players_per_team, **kwargs)


def started_match(overs: int = 2, players_per_team: int = 3, repository=None, **kwargs) -> MatchEngine:
    """Team A bats first; a1 (and a2) open, b1 bowls"""
    config = make_config(overs, players_per_team, **kwargs)
    engine = MatchEngine.create(config, make_teams(players_per_team), repository=repository)
    engine.record_toss("A", TossChoice.BAT)
    openers = ["a1"] if config.is_single_side else ["a1", "a2"]
    engine.start_match(openers, "b1")
    return engine


def ball(engine: MatchEngine, runs: int = 0, extra: ExtraType = None, extra_runs: int = 0,
         wicket: bool = False, striker_id: str = None) -> Delivery:
    """Record one delivery from the current bowler"""
    return engine.record_delivery(Delivery(
        bowler_id=engine.current_innings.current_bowler_id,
        runs_off_bat=runs,
        extra=Extra(extra, extra_runs) if extra else None,
        wicket=Wicket() if wicket else None,
        striker_id=striker_id,
    ))


def replace_dismissed(engine: MatchEngine):
    """Send in the next eligible batsman for anyone out at the crease"""
    innings = engine.current_innings
    for player_id in innings.active_batsmen.ids:
        if innings.is_dismissed(player_id):
            eligible = engine.eligible_batsmen()
            if eligible:
                engine.change_batsman(player_id, eligible[0])


def score(engine: MatchEngine, outcomes: list):
    """
    Score a sequence of outcomes: an int is runs off the bat, "W" a wicket.
    Changes the bowler at each new over and replaces dismissed batsmen.
    """
    for outcome in outcomes:
        innings = engine.current_innings
        last = innings.last_completed_over
        if innings.current_over is None and last is not None and innings.current_bowler_id == last.bowler_id:
            engine.change_bowler(engine.eligible_bowlers()[0])

        if outcome == "W":
            ball(engine, wicket=True)
            if not innings.is_completed:
                replace_dismissed(engine)
        else:
            ball(engine, runs=outcome)


@pytest.fixture
def repository():
    return InMemoryMatchRepository()
