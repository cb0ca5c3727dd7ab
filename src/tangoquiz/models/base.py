"""Base model configuration."""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from tangoquiz.config import settings


def make_engine(url: str, echo: bool = False, **kwargs) -> Engine:
    """Create an engine usable from worker threads."""
    if url.startswith("sqlite"):
        # Store calls run in asyncio.to_thread workers
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        kwargs["connect_args"] = connect_args
    return create_engine(url, echo=echo, **kwargs)


# Create SQLAlchemy engine
engine = make_engine(settings.database.url, echo=settings.database.echo)

# Create declarative base class
Base = declarative_base()


def init_db(bind: Engine = None) -> None:
    """Initialize database."""
    # Import for its side effect of registering the tables
    from tangoquiz.models import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)  # Create tables if they don't exist
