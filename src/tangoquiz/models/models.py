"""Database models for the bot."""
from datetime import datetime, UTC

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    String,
    false,
)

from tangoquiz.models.base import Base


class Word(Base):
    """Vocabulary word model.

    ``reading`` and ``meaning`` hold comma-separated alternatives.
    ``deleted_at`` is a tombstone flag; it has only a server default so that
    inserts never name it and keep working against tables created without it.
    """

    __tablename__ = "words"

    id = Column(Integer, primary_key=True, index=True)
    kanji = Column(String, nullable=False)
    reading = Column(String, nullable=False)
    meaning = Column(String, nullable=False)
    owner = Column(String, nullable=True, index=True)
    miss_count = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), index=True)
    deleted_at = Column(Boolean, nullable=False, server_default=false())

    def __repr__(self) -> str:
        return f"<Word {self.id} {self.kanji!r}>"
