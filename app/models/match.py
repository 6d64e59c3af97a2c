from typing import Optional
from sqlalchemy import String, DateTime, Text, Enum
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
import json
from app.database import Base
from app.engine.state import MatchStatus


class MatchRecord(Base):
    """A stored match document plus the columns it is looked up by"""
    __tablename__ = "matches"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    code: Mapped[str] = mapped_column(String(12), unique=True, index=True)

    status: Mapped[MatchStatus] = mapped_column(Enum(MatchStatus), default=MatchStatus.SETUP)

    # Who created it
    created_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    is_guest: Mapped[bool] = mapped_column(default=False)

    # Full match aggregate as JSON
    document: Mapped[str] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    @property
    def data(self) -> dict:
        return json.loads(self.document)

    def __repr__(self):
        return f"<MatchRecord {self.code} ({self.status.value})>"
