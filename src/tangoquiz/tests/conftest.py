"""Test configuration."""
import os
from datetime import datetime, timedelta, UTC
from typing import Callable, Generator

import pytest

# Set test environment before any imports
os.environ["ENV"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite://")

# Import after environment setup
from faker import Faker
from sqlalchemy.engine import Engine

from tangoquiz.models.base import init_db, make_engine
from tangoquiz.models.word_models import WordEntry
from tangoquiz.services.word_store import SqlAlchemyWordStore

fake = Faker()

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def engine(tmp_path) -> Generator[Engine, None, None]:
    """A fresh file-backed SQLite database per test."""
    engine = make_engine(f"sqlite:///{tmp_path / 'words.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine: Engine) -> SqlAlchemyWordStore:
    """Word store over the test database."""
    return SqlAlchemyWordStore(engine, timezone=UTC)


@pytest.fixture
def make_word() -> Callable[..., WordEntry]:
    """Factory for in-memory word entries."""
    counter = {"id": 0}

    def _make_word(**kwargs) -> WordEntry:
        counter["id"] += 1
        defaults = {
            "id": counter["id"],
            "kanji": fake.unique.lexify("漢??"),
            "reading": "かんじ",
            "meaning": fake.word(),
            "owner": "tester",
            "miss_count": 0,
            "created_at": BASE_TIME + timedelta(hours=counter["id"]),
        }
        defaults.update(kwargs)
        return WordEntry(**defaults)

    return _make_word
