"""Word store: durable word records behind an async contract."""
import asyncio
import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, tzinfo, UTC
from functools import cached_property
from typing import Callable, Dict, List, Optional, TypeVar

from sqlalchemy import delete, false, insert, inspect, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from tangoquiz.config import settings
from tangoquiz.errors import NotFoundError, StoreError, ValidationError
from tangoquiz.models import base
from tangoquiz.models.models import Word
from tangoquiz.models.word_models import WordEntry
from tangoquiz.monitoring import store_duration, store_errors
from tangoquiz.services.projector import group_by_day, parse_day

logger = logging.getLogger(__name__)

T = TypeVar("T")


class WordStore(ABC):
    """Contract the quiz and the word list rely on.

    Every operation is a coroutine. Failures surface as ``StoreError`` (or
    ``NotFoundError`` when the target is gone) and are never retried here.
    """

    timezone: tzinfo = UTC

    @property
    @abstractmethod
    def supports_tombstone(self) -> bool:
        """Whether ``remove`` can hide a word instead of deleting it."""

    @abstractmethod
    async def list_active(self, owner: Optional[str] = None) -> List[WordEntry]:
        """Live words, newest first. ``owner=None`` lists all owners."""

    @abstractmethod
    async def list_active_by_day(self, day: str, owner: Optional[str] = None) -> List[WordEntry]:
        """Live words created on ``day`` (YYYY-MM-DD), newest first."""

    async def group_active_by_day(self, owner: Optional[str] = None) -> Dict[str, List[WordEntry]]:
        """Live words grouped by creation day, most recent day first."""
        return group_by_day(await self.list_active(owner), self.timezone)

    @abstractmethod
    async def create(self, kanji: str, reading: str, meaning: str, owner: Optional[str] = None) -> WordEntry:
        """Store a new word; the store assigns ``id`` and ``created_at``."""

    @abstractmethod
    async def get(self, word_id: int) -> WordEntry:
        """A single live word."""

    @abstractmethod
    async def remove(self, word_id: int) -> None:
        """Soft delete when supported, otherwise delete for good."""

    @abstractmethod
    async def increment_miss_count(self, word_id: int) -> None:
        """Add one to a word's miss count."""


class SqlAlchemyWordStore(WordStore):
    """Word store over the ``words`` table.

    Each operation uses its own short-lived session and runs in a worker
    thread so the event loop is never blocked.
    """

    def __init__(self, engine: Optional[Engine] = None, timezone: Optional[tzinfo] = None):
        self.engine = engine or base.engine
        self.session_factory = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
        self.timezone = timezone or settings.quiz.tzinfo

    @cached_property
    def supports_tombstone(self) -> bool:
        try:
            columns = {column["name"] for column in inspect(self.engine).get_columns(Word.__tablename__)}
        except NoSuchTableError:
            # init_db will create the table with the full schema
            return True
        supported = "deleted_at" in columns
        if not supported:
            logger.warning("Table %s has no deleted_at column, removing words deletes them", Word.__tablename__)
        return supported

    @property
    def _columns(self):
        return (
            Word.id,
            Word.kanji,
            Word.reading,
            Word.meaning,
            Word.owner,
            Word.miss_count,
            Word.created_at,
        )

    def _active(self, stmt):
        if self.supports_tombstone:
            stmt = stmt.where(Word.deleted_at == false())
        return stmt

    async def _run(self, operation: str, func: Callable[..., T], *args) -> T:
        started = time.monotonic()
        try:
            return await asyncio.to_thread(func, *args)
        except SQLAlchemyError as e:
            store_errors.labels(operation=operation).inc()
            logger.error(f"Store operation {operation} failed: {e}")
            raise StoreError(str(getattr(e, "orig", None) or e), operation=operation) from e
        finally:
            store_duration.labels(operation=operation).observe(time.monotonic() - started)

    def _select_active(self, owner: Optional[str]):
        stmt = self._active(select(*self._columns))
        if owner is not None:
            stmt = stmt.where(Word.owner == owner)
        return stmt.order_by(Word.created_at.desc(), Word.id.desc())

    def _fetch(self, owner: Optional[str], bounds: Optional[tuple] = None) -> List[WordEntry]:
        stmt = self._select_active(owner)
        if bounds is not None:
            start, end = bounds
            stmt = stmt.where(Word.created_at >= start, Word.created_at < end)
        with self.session_factory() as db:
            return [WordEntry.from_row(row) for row in db.execute(stmt).mappings()]

    async def list_active(self, owner: Optional[str] = None) -> List[WordEntry]:
        words = await self._run("list_active", self._fetch, owner)
        logger.debug(f"Fetched {len(words)} active words for owner {owner!r}")
        return words

    def _day_bounds(self, day: str):
        try:
            parsed = parse_day(day)
        except ValueError:
            raise ValidationError(f"Invalid day {day!r}, expected YYYY-MM-DD")
        start = parsed.replace(tzinfo=self.timezone)
        end = start + timedelta(days=1)
        return start.astimezone(UTC), end.astimezone(UTC)

    async def list_active_by_day(self, day: str, owner: Optional[str] = None) -> List[WordEntry]:
        bounds = self._day_bounds(day)
        words = await self._run("list_active_by_day", self._fetch, owner, bounds)
        logger.debug(f"Fetched {len(words)} active words for {day} and owner {owner!r}")
        return words

    def _create(self, values: dict) -> int:
        with self.session_factory.begin() as db:
            result = db.execute(insert(Word).values(**values))
            return result.inserted_primary_key[0]

    async def create(self, kanji: str, reading: str, meaning: str, owner: Optional[str] = None) -> WordEntry:
        values = {
            "kanji": kanji,
            "reading": reading,
            "meaning": meaning,
            "owner": owner,
            "miss_count": 0,
            "created_at": datetime.now(UTC),
        }
        word_id = await self._run("create", self._create, values)
        logger.info(f"Created word {word_id} {kanji!r} for owner {owner!r}")
        return WordEntry(id=word_id, **values)

    def _get(self, word_id: int) -> WordEntry:
        with self.session_factory() as db:
            row = db.execute(self._active(select(*self._columns)).where(Word.id == word_id)).mappings().first()
        if row is None:
            raise NotFoundError(word_id, operation="get")
        return WordEntry.from_row(row)

    async def get(self, word_id: int) -> WordEntry:
        return await self._run("get", self._get, word_id)

    def _remove(self, word_id: int) -> None:
        with self.session_factory.begin() as db:
            if self.supports_tombstone:
                stmt = update(Word).where(Word.id == word_id, Word.deleted_at == false()).values(deleted_at=True)
            else:
                stmt = delete(Word).where(Word.id == word_id)
            result = db.execute(stmt.execution_options(synchronize_session=False))
            if result.rowcount == 0:
                raise NotFoundError(word_id, operation="remove")

    async def remove(self, word_id: int) -> None:
        await self._run("remove", self._remove, word_id)
        logger.info(f"Removed word {word_id}")

    def _increment_miss_count(self, word_id: int) -> int:
        with self.session_factory.begin() as db:
            current = self._read_miss_count(db, word_id)
            db.execute(
                update(Word)
                .where(Word.id == word_id)
                .values(miss_count=current + 1)
                .execution_options(synchronize_session=False)
            )
            return current + 1

    def _read_miss_count(self, db: Session, word_id: int) -> int:
        row = db.execute(self._active(select(Word.miss_count)).where(Word.id == word_id)).first()
        if row is None:
            raise NotFoundError(word_id, operation="increment_miss_count")
        return row.miss_count or 0

    async def increment_miss_count(self, word_id: int) -> None:
        # Read then write, no compare-and-swap: concurrent sessions can lose an update
        count = await self._run("increment_miss_count", self._increment_miss_count, word_id)
        logger.debug(f"Word {word_id} miss count is now {count}")
