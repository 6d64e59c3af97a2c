"""
Match format configuration.
Immutable once the match is created.
"""
from dataclasses import dataclass
from typing import Optional

from app.engine.errors import ValidationError
from app.validators.format_validator import FormatValidator

BALLS_PER_OVER = 6


@dataclass(frozen=True)
class FormatConfig:
    overs: int
    players_per_team: int
    has_joker: bool = False
    joker_name: Optional[str] = None
    is_single_side: bool = False
    wide_penalty: bool = True
    no_ball_penalty: bool = True

    @classmethod
    def create(
        cls,
        overs: int,
        players_per_team: int,
        has_joker: bool = False,
        joker_name: Optional[str] = None,
        is_single_side: bool = False,
        wide_penalty: bool = True,
        no_ball_penalty: bool = True,
    ) -> "FormatConfig":
        """Validate and build a format, raising ValidationError on bad input"""
        result = FormatValidator.validate(overs, players_per_team, has_joker, joker_name)
        if not result["valid"]:
            raise ValidationError(result["errors"])

        return cls(
            overs=overs,
            players_per_team=players_per_team,
            has_joker=has_joker,
            joker_name=joker_name.strip() if has_joker else None,
            is_single_side=is_single_side,
            wide_penalty=wide_penalty,
            no_ball_penalty=no_ball_penalty,
        )

    @property
    def players_available(self) -> int:
        return self.players_per_team + (1 if self.has_joker else 0)

    @property
    def max_wickets(self) -> int:
        # Standard batting needs a partner, so the last player can't bat alone
        return self.players_available - (0 if self.is_single_side else 1)

    @property
    def max_legal_balls(self) -> int:
        return self.overs * BALLS_PER_OVER

    @property
    def batsmen_at_crease(self) -> int:
        return 1 if self.is_single_side else 2

    def to_dict(self) -> dict:
        return {
            "overs": self.overs,
            "players_per_team": self.players_per_team,
            "has_joker": self.has_joker,
            "joker_name": self.joker_name,
            "is_single_side": self.is_single_side,
            "wide_penalty": self.wide_penalty,
            "no_ball_penalty": self.no_ball_penalty,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "FormatConfig":
        return cls.create(
            overs=d["overs"],
            players_per_team=d["players_per_team"],
            has_joker=d.get("has_joker", False),
            joker_name=d.get("joker_name"),
            is_single_side=d.get("is_single_side", False),
            wide_penalty=d.get("wide_penalty", True),
            no_ball_penalty=d.get("no_ball_penalty", True),
        )
