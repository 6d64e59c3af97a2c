from app.engine.format_config import FormatConfig
from app.engine.innings_engine import InningsEngine, LastManStanding
from app.engine.match_engine import MatchEngine, create_match
from app.engine.result import MatchResult, ResultResolver

__all__ = [
    "FormatConfig",
    "InningsEngine",
    "LastManStanding",
    "MatchEngine",
    "create_match",
    "MatchResult",
    "ResultResolver",
]
