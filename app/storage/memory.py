"""
Dict-backed match repository for tests and offline replays.
"""
import copy
from collections import defaultdict
from typing import Callable, Optional

from app.engine.interfaces import MatchRepository
from app.engine.state import Match, MatchStatus
from app.storage.codes import generate_match_code


class InMemoryMatchRepository(MatchRepository):
    def __init__(self, code_length: int = 6):
        self.code_length = code_length
        self._documents: dict = {}  # code -> document
        self._codes: dict = {}  # match id -> code
        self._subscribers = defaultdict(list)  # match id -> callbacks

    def create(self, match: Match) -> str:
        code = generate_match_code(self.code_length)
        while code in self._documents:
            code = generate_match_code(self.code_length)
        match.code = code
        self._codes[match.id] = code
        self._documents[code] = match.to_dict()
        return code

    def update(self, match_id: str, match: Match) -> None:
        code = self._codes.get(match_id)
        if code is None:
            raise KeyError(f"Match {match_id} was never created")
        document = match.to_dict()
        self._documents[code] = document
        for callback in list(self._subscribers[match_id]):
            callback(copy.deepcopy(document))

    def get_by_code(self, code: str) -> Optional[dict]:
        document = self._documents.get(code.upper())
        return copy.deepcopy(document) if document else None

    def subscribe(self, match_id: str, on_change: Callable[[dict], None]) -> Callable[[], None]:
        self._subscribers[match_id].append(on_change)

        def unsubscribe():
            if on_change in self._subscribers[match_id]:
                self._subscribers[match_id].remove(on_change)

        return unsubscribe

    def list_active(self) -> list[dict]:
        return [
            copy.deepcopy(d) for d in self._documents.values()
            if d["status"] != MatchStatus.COMPLETED.value
        ]
