"""
Pydantic schemas for API request/response models
"""
from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum


# Enums
class PlayerRoleEnum(str, Enum):
    BATSMAN = "batsman"
    BOWLER = "bowler"
    ALL_ROUNDER = "allrounder"


class ExtraTypeEnum(str, Enum):
    WIDE = "wide"
    NO_BALL = "noball"
    BYE = "bye"
    LEG_BYE = "legbye"


class DismissalTypeEnum(str, Enum):
    BOWLED = "bowled"
    CAUGHT = "caught"
    LBW = "lbw"
    STUMPED = "stumped"
    RUN_OUT = "runout"
    HIT_WICKET = "hitwicket"


class TossChoiceEnum(str, Enum):
    BAT = "bat"
    BOWL = "bowl"


# Match setup
class FormatRequest(BaseModel):
    overs: int
    players_per_team: int
    has_joker: bool = False
    joker_name: Optional[str] = None
    is_single_side: bool = False
    wide_penalty: bool = True
    no_ball_penalty: bool = True


class PlayerInput(BaseModel):
    id: Optional[str] = None
    name: str
    role: PlayerRoleEnum = PlayerRoleEnum.BATSMAN


class TeamInput(BaseModel):
    id: Optional[str] = None
    name: str
    players: list[PlayerInput]


class CreateMatchRequest(BaseModel):
    config: FormatRequest
    teams: list[TeamInput]


class TossRequest(BaseModel):
    winner_team_id: str
    choice: TossChoiceEnum


class OpeningPlayersRequest(BaseModel):
    """Openers for either innings"""
    opening_batsmen: list[str]
    opening_bowler: str


# Scoring
class ExtraInput(BaseModel):
    type: ExtraTypeEnum
    runs: int = Field(default=0, ge=0)


class BallRequest(BaseModel):
    runs_off_bat: int = Field(default=0, ge=0)
    extra: Optional[ExtraInput] = None
    wicket: Optional[DismissalTypeEnum] = None
    striker_id: Optional[str] = None
    bowler_id: Optional[str] = None  # defaults to the current bowler


class BowlerChangeRequest(BaseModel):
    bowler_id: str


class BatsmanChangeRequest(BaseModel):
    out_player_id: str
    new_player_id: str


class SingleBattingRequest(BaseModel):
    remaining_batsman_id: str


# Responses
class BatsmanStateBrief(BaseModel):
    id: str
    name: str
    runs: int
    balls: int
    fours: int
    sixes: int
    strike_rate: float
    is_out: bool
    dismissal_type: Optional[str] = None


class BowlerStateBrief(BaseModel):
    id: str
    name: str
    overs: str
    balls: int
    runs: int
    wickets: int
    maidens: int
    economy: float


class LastManStandingResponse(BaseModel):
    is_last_man: bool
    remaining_batsman_id: Optional[str] = None


class MatchStateResponse(BaseModel):
    id: str
    code: Optional[str] = None
    status: str  # setup, active, completed
    team_names: list[str]

    innings: Optional[int] = None
    runs: int = 0
    wickets: int = 0
    overs: str = "0.0"
    extras: int = 0
    run_rate: float = 0.0
    target: Optional[int] = None
    innings_completed: bool = False

    batting_team_name: str = ""
    bowling_team_name: str = ""
    batsmen: list[BatsmanStateBrief] = []
    bowler: Optional[BowlerStateBrief] = None
    this_over: list[str] = []
    last_man_standing: Optional[LastManStandingResponse] = None

    eligible_batsmen: list[str] = []
    eligible_bowlers: list[str] = []

    winner: Optional[str] = None
    win_margin: Optional[str] = None
    abandoned: bool = False
    last_persist_error: Optional[str] = None


class InningsScorecardResponse(BaseModel):
    number: int
    batting_team_name: str
    bowling_team_name: str
    runs: int
    wickets: int
    overs: str
    extras: int
    target: Optional[int] = None
    batting: list[BatsmanStateBrief]
    bowling: list[BowlerStateBrief]


class ScorecardResponse(BaseModel):
    code: Optional[str] = None
    innings: list[InningsScorecardResponse]
    winner: Optional[str] = None
    win_margin: Optional[str] = None
    abandoned: bool = False


class MatchResultResponse(BaseModel):
    winner: Optional[str] = None
    win_margin: Optional[str] = None
    winning_team_id: Optional[str] = None
    is_tie: bool = False
    is_abandoned: bool = False


class BallResultResponse(BaseModel):
    outcome: str
    runs: int
    is_wicket: bool
    over_number: int
    ball_number: int
    match_state: MatchStateResponse
