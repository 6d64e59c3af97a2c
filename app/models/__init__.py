from app.models.match import MatchRecord

__all__ = [
    "MatchRecord",
]
