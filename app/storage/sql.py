"""
SQLAlchemy-backed match repository.
Each match is one row holding the JSON document; reads by code go through a TTL cache.
"""
import json
import logging
from collections import defaultdict
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session, sessionmaker

from app.engine.interfaces import MatchRepository
from app.engine.state import Match, MatchStatus
from app.models.match import MatchRecord
from app.storage.cache import MatchCache
from app.storage.codes import generate_match_code

logger = logging.getLogger(__name__)


class SqlMatchRepository(MatchRepository):
    def __init__(self, session_factory: sessionmaker, code_length: int = 6, cache_ttl_seconds: int = 30):
        self.session_factory = session_factory
        self.code_length = code_length
        self.cache = MatchCache(ttl_seconds=cache_ttl_seconds)
        self._subscribers = defaultdict(list)  # match id -> callbacks

    def _unique_code(self, db: Session) -> str:
        code = generate_match_code(self.code_length)
        while db.query(MatchRecord).filter_by(code=code).first() is not None:
            code = generate_match_code(self.code_length)
        return code

    def create(self, match: Match) -> str:
        db = self.session_factory()
        try:
            match.code = self._unique_code(db)
            record = MatchRecord(
                id=match.id,
                code=match.code,
                status=match.status,
                created_by=match.created_by,
                is_guest=match.is_guest,
                document=json.dumps(match.to_dict()),
                created_at=match.created_at,
                updated_at=match.updated_at,
            )
            db.add(record)
            db.commit()
            logger.info("Stored match %s with code %s", match.id, match.code)
            return match.code
        finally:
            db.close()

    def update(self, match_id: str, match: Match) -> None:
        document = match.to_dict()
        db = self.session_factory()
        try:
            record = db.get(MatchRecord, match_id)
            if record is None:
                raise KeyError(f"Match {match_id} was never created")
            record.status = match.status
            record.document = json.dumps(document)
            record.updated_at = datetime.utcnow()
            db.commit()
            self.cache.invalidate(record.code)
        finally:
            db.close()

        for callback in list(self._subscribers[match_id]):
            callback(document)

    def get_by_code(self, code: str) -> Optional[dict]:
        code = code.upper()
        cached = self.cache.get(code)
        if cached is not None:
            return json.loads(cached)

        db = self.session_factory()
        try:
            record = db.query(MatchRecord).filter_by(code=code).first()
            if record is None:
                return None
            self.cache.set(code, record.document)
            return record.data
        finally:
            db.close()

    def subscribe(self, match_id: str, on_change: Callable[[dict], None]) -> Callable[[], None]:
        self._subscribers[match_id].append(on_change)

        def unsubscribe():
            if on_change in self._subscribers[match_id]:
                self._subscribers[match_id].remove(on_change)

        return unsubscribe

    def list_active(self) -> list[dict]:
        db = self.session_factory()
        try:
            records = db.query(MatchRecord).filter(MatchRecord.status != MatchStatus.COMPLETED).all()
            return [r.data for r in records]
        finally:
            db.close()

