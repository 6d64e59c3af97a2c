"""
Match aggregate: players, teams, deliveries, overs, innings and the match itself.
All types serialize to plain dicts for storage.
"""
import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

from app.engine.format_config import BALLS_PER_OVER, FormatConfig

JOKER_PREFIX = "joker@"


class PlayerRole(enum.Enum):
    BATSMAN = "batsman"
    BOWLER = "bowler"
    ALL_ROUNDER = "allrounder"


class ExtraType(enum.Enum):
    WIDE = "wide"
    NO_BALL = "noball"
    BYE = "bye"
    LEG_BYE = "legbye"


class DismissalType(enum.Enum):
    BOWLED = "bowled"
    CAUGHT = "caught"
    LBW = "lbw"
    STUMPED = "stumped"
    RUN_OUT = "runout"
    HIT_WICKET = "hitwicket"


class MatchStatus(enum.Enum):
    SETUP = "setup"
    ACTIVE = "active"
    COMPLETED = "completed"


class TossChoice(enum.Enum):
    BAT = "bat"
    BOWL = "bowl"


TIED = "Tied"


def joker_id(team_id: str) -> str:
    """Player id of the joker while it plays for the given team"""
    return f"{JOKER_PREFIX}{team_id}"


def is_joker_id(player_id: str) -> bool:
    return player_id.startswith(JOKER_PREFIX)


@dataclass(frozen=True)
class Player:
    id: str
    name: str
    role: PlayerRole = PlayerRole.BATSMAN

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "role": self.role.value}

    @classmethod
    def from_dict(cls, d: dict) -> "Player":
        return cls(id=d["id"], name=d["name"], role=PlayerRole(d.get("role", "batsman")))


@dataclass
class Team:
    id: str
    name: str
    players: list[Player] = field(default_factory=list)

    @property
    def player_ids(self) -> list[str]:
        return [p.id for p in self.players]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "players": [p.to_dict() for p in self.players],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Team":
        return cls(
            id=d["id"],
            name=d["name"],
            players=[Player.from_dict(p) for p in d.get("players", [])],
        )


@dataclass(frozen=True)
class Extra:
    type: ExtraType
    runs: int = 0

    @property
    def is_legal(self) -> bool:
        return self.type not in (ExtraType.WIDE, ExtraType.NO_BALL)

    def to_dict(self) -> dict:
        return {"type": self.type.value, "runs": self.runs}

    @classmethod
    def from_dict(cls, d: dict) -> "Extra":
        return cls(type=ExtraType(d["type"]), runs=d.get("runs", 0))


@dataclass(frozen=True)
class Wicket:
    type: DismissalType = DismissalType.BOWLED

    def to_dict(self) -> dict:
        return {"type": self.type.value}

    @classmethod
    def from_dict(cls, d: dict) -> "Wicket":
        return cls(type=DismissalType(d.get("type", "bowled")))


@dataclass(frozen=True)
class Delivery:
    """One ball as entered by the scorer. Over and ball numbers are set when recorded."""
    bowler_id: str
    runs_off_bat: int = 0
    extra: Optional[Extra] = None
    wicket: Optional[Wicket] = None
    striker_id: Optional[str] = None
    non_striker_id: Optional[str] = None  # crease partner when the ball was bowled
    over_number: Optional[int] = None
    ball_number: Optional[int] = None

    @property
    def is_legal(self) -> bool:
        return self.extra is None or self.extra.is_legal

    @property
    def is_wicket(self) -> bool:
        return self.wicket is not None

    def to_dict(self) -> dict:
        return {
            "bowler_id": self.bowler_id,
            "runs_off_bat": self.runs_off_bat,
            "extra": self.extra.to_dict() if self.extra else None,
            "wicket": self.wicket.to_dict() if self.wicket else None,
            "striker_id": self.striker_id,
            "non_striker_id": self.non_striker_id,
            "over_number": self.over_number,
            "ball_number": self.ball_number,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Delivery":
        return cls(
            bowler_id=d["bowler_id"],
            runs_off_bat=d.get("runs_off_bat", 0),
            extra=Extra.from_dict(d["extra"]) if d.get("extra") else None,
            wicket=Wicket.from_dict(d["wicket"]) if d.get("wicket") else None,
            striker_id=d.get("striker_id"),
            non_striker_id=d.get("non_striker_id"),
            over_number=d.get("over_number"),
            ball_number=d.get("ball_number"),
        )


@dataclass
class Over:
    number: int
    bowler_id: str
    deliveries: list[Delivery] = field(default_factory=list)
    runs_conceded: int = 0
    wickets_in_over: int = 0
    completed: bool = False

    @property
    def legal_balls(self) -> int:
        return sum(1 for d in self.deliveries if d.is_legal)

    def to_dict(self) -> dict:
        return {
            "number": self.number,
            "bowler_id": self.bowler_id,
            "deliveries": [d.to_dict() for d in self.deliveries],
            "runs_conceded": self.runs_conceded,
            "wickets_in_over": self.wickets_in_over,
            "completed": self.completed,
        }


@dataclass
class BatsmanStats:
    """Tracks a batsman's innings"""
    player_id: str
    runs: int = 0
    balls: int = 0
    fours: int = 0
    sixes: int = 0
    is_out: bool = False
    dismissal_type: Optional[str] = None

    @property
    def strike_rate(self) -> float:
        if self.balls == 0:
            return 0.0
        return (self.runs / self.balls) * 100

    def to_dict(self) -> dict:
        return {
            "player_id": self.player_id,
            "runs": self.runs,
            "balls": self.balls,
            "fours": self.fours,
            "sixes": self.sixes,
            "strike_rate": round(self.strike_rate, 2),
            "is_out": self.is_out,
            "dismissal_type": self.dismissal_type,
        }


@dataclass
class BowlerStats:
    """Tracks a bowler's spell"""
    player_id: str
    balls: int = 0
    runs: int = 0
    wickets: int = 0
    maidens: int = 0

    @property
    def overs(self) -> int:
        return self.balls // BALLS_PER_OVER

    @property
    def overs_display(self) -> str:
        return f"{self.balls // BALLS_PER_OVER}.{self.balls % BALLS_PER_OVER}"

    @property
    def economy(self) -> float:
        if self.balls == 0:
            return 0.0
        return (self.runs / self.balls) * BALLS_PER_OVER

    def to_dict(self) -> dict:
        return {
            "player_id": self.player_id,
            "overs": self.overs_display,
            "balls": self.balls,
            "runs": self.runs,
            "wickets": self.wickets,
            "maidens": self.maidens,
            "economy": round(self.economy, 2),
        }


@dataclass(frozen=True)
class SingleBatsman:
    """One batsman at the crease, always on strike"""
    player_id: str

    @property
    def ids(self) -> tuple:
        return (self.player_id,)

    @property
    def on_strike(self) -> str:
        return self.player_id


@dataclass(frozen=True)
class BatsmanPair:
    """Two batsmen at the crease; striker faces the next ball"""
    striker_id: str
    non_striker_id: str

    @property
    def ids(self) -> tuple:
        return (self.striker_id, self.non_striker_id)

    @property
    def on_strike(self) -> str:
        return self.striker_id

    def rotated(self) -> "BatsmanPair":
        return BatsmanPair(self.non_striker_id, self.striker_id)


ActiveBatsmen = Union[SingleBatsman, BatsmanPair]


def active_batsmen_from_ids(ids: list) -> ActiveBatsmen:
    if len(ids) == 1:
        return SingleBatsman(ids[0])
    if len(ids) == 2:
        return BatsmanPair(ids[0], ids[1])
    raise ValueError(f"Expected one or two batsmen, got {len(ids)}")


@dataclass
class Innings:
    """Current state of an innings"""
    number: int
    batting_team_id: str
    bowling_team_id: str
    active_batsmen: ActiveBatsmen
    target: Optional[int] = None
    overs: list[Over] = field(default_factory=list)
    total_runs: int = 0
    total_wickets: int = 0
    total_legal_balls: int = 0
    extras: int = 0
    is_completed: bool = False
    current_bowler_id: Optional[str] = None

    batting_stats: dict = field(default_factory=dict)  # player_id -> BatsmanStats
    bowling_stats: dict = field(default_factory=dict)  # player_id -> BowlerStats

    def __setattr__(self, name, value):
        # The chase target is fixed when the innings opens
        if name == "target" and "target" in self.__dict__:
            raise AttributeError("Innings target cannot be changed once set")
        super().__setattr__(name, value)

    @property
    def completed_overs(self) -> int:
        return self.total_legal_balls // BALLS_PER_OVER

    @property
    def legal_balls_in_current_over(self) -> int:
        return self.total_legal_balls % BALLS_PER_OVER

    @property
    def overs_display(self) -> str:
        return f"{self.completed_overs}.{self.legal_balls_in_current_over}"

    @property
    def run_rate(self) -> float:
        if self.total_legal_balls == 0:
            return 0.0
        return (self.total_runs / self.total_legal_balls) * BALLS_PER_OVER

    @property
    def current_over(self) -> Optional[Over]:
        """The over in progress, if any"""
        if self.overs and not self.overs[-1].completed:
            return self.overs[-1]
        return None

    @property
    def last_completed_over(self) -> Optional[Over]:
        for over in reversed(self.overs):
            if over.completed:
                return over
        return None

    @property
    def dismissed_ids(self) -> set:
        return {pid for pid, stats in self.batting_stats.items() if stats.is_out}

    def is_dismissed(self, player_id: str) -> bool:
        stats = self.batting_stats.get(player_id)
        return bool(stats and stats.is_out)

    def to_dict(self) -> dict:
        return {
            "number": self.number,
            "batting_team_id": self.batting_team_id,
            "bowling_team_id": self.bowling_team_id,
            "active_batsman_ids": list(self.active_batsmen.ids),
            "target": self.target,
            "overs": [o.to_dict() for o in self.overs],
            "total_runs": self.total_runs,
            "total_wickets": self.total_wickets,
            "total_legal_balls": self.total_legal_balls,
            "extras": self.extras,
            "is_completed": self.is_completed,
            "current_bowler_id": self.current_bowler_id,
            "batting_stats": [s.to_dict() for s in self.batting_stats.values()],
            "bowling_stats": [s.to_dict() for s in self.bowling_stats.values()],
        }


@dataclass
class Match:
    id: str
    config: FormatConfig
    teams: list[Team]
    innings: list[Innings] = field(default_factory=list)
    status: MatchStatus = MatchStatus.SETUP
    toss_winner_id: Optional[str] = None
    toss_choice: Optional[TossChoice] = None

    # Result
    winner: Optional[str] = None  # team name or "Tied"
    win_margin: Optional[str] = None
    winning_team_id: Optional[str] = None
    abandoned: bool = False

    code: Optional[str] = None
    created_by: Optional[str] = None
    is_guest: bool = False
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def current_innings(self) -> Optional[Innings]:
        return self.innings[-1] if self.innings else None

    def team(self, team_id: str) -> Team:
        for team in self.teams:
            if team.id == team_id:
                return team
        raise KeyError(team_id)

    def other_team(self, team_id: str) -> Team:
        for team in self.teams:
            if team.id != team_id:
                return team
        raise KeyError(team_id)

    def player_name(self, player_id: str) -> str:
        if is_joker_id(player_id):
            return self.config.joker_name or "Joker"
        for team in self.teams:
            for player in team.players:
                if player.id == player_id:
                    return player.name
        return player_id

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "config": self.config.to_dict(),
            "teams": [t.to_dict() for t in self.teams],
            "innings": [i.to_dict() for i in self.innings],
            "status": self.status.value,
            "toss_winner_id": self.toss_winner_id,
            "toss_choice": self.toss_choice.value if self.toss_choice else None,
            "winner": self.winner,
            "win_margin": self.win_margin,
            "winning_team_id": self.winning_team_id,
            "abandoned": self.abandoned,
            "created_by": self.created_by,
            "is_guest": self.is_guest,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    def __repr__(self):
        names = " vs ".join(t.name for t in self.teams)
        return f"<Match {names} ({self.status.value})>"
