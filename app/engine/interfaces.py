"""
Collaborators the engine talks to but does not implement:
who is creating the match, and where match documents are stored.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

from app.engine.state import Match


@dataclass(frozen=True)
class Identity:
    user_id: Optional[str] = None
    is_guest: bool = True

    @classmethod
    def guest(cls) -> "Identity":
        return cls(user_id=None, is_guest=True)


class MatchRepository(ABC):
    """Stores match documents and hands out short match codes"""

    @abstractmethod
    def create(self, match: Match) -> str:
        """Store a new match and return its code"""

    @abstractmethod
    def update(self, match_id: str, match: Match) -> None:
        ...

    @abstractmethod
    def get_by_code(self, code: str) -> Optional[dict]:
        """Stored match document, or None"""

    @abstractmethod
    def subscribe(self, match_id: str, on_change: Callable[[dict], None]) -> Callable[[], None]:
        """Register a change callback; returns a function that unsubscribes"""

    @abstractmethod
    def list_active(self) -> list[dict]:
        """Documents of every match that is not completed"""
