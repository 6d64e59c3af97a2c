"""
Scoring errors.

Every error is raised before the engine mutates anything, so a rejected
operation leaves the match exactly as it was.
"""
from typing import Optional


class ScoringError(Exception):
    """Base class for all errors raised by the scoring engine"""


class ValidationError(ScoringError):
    """Bad format configuration or roster at match setup"""

    def __init__(self, errors: list[dict]):
        self.errors = errors
        summary = "; ".join(f"{e['field']}: {e['message']}" for e in errors)
        super().__init__(summary or "invalid match setup")

    @property
    def fields(self) -> list[str]:
        return [e["field"] for e in self.errors]


class IllegalDeliveryError(ScoringError):
    """A delivery that cannot be applied to the current innings"""


class BatsmanAlreadyOutError(IllegalDeliveryError):
    def __init__(self, player_id: str, message: Optional[str] = None):
        self.player_id = player_id
        super().__init__(message or f"Batsman {player_id} is already out")


class IneligibleBowlerError(ScoringError):
    def __init__(self, player_id: str, message: Optional[str] = None):
        self.player_id = player_id
        super().__init__(message or f"Bowler {player_id} cannot bowl this over")


class IneligibleBatsmanError(ScoringError):
    def __init__(self, player_id: str, message: Optional[str] = None):
        self.player_id = player_id
        super().__init__(message or f"Batsman {player_id} cannot bat now")


class InvalidTransitionError(ScoringError):
    """Operation not allowed in the current match or innings state"""
