"""SQLAlchemy engine and session helpers backing the key-value store."""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

# ``Base`` is the parent class for every SQLAlchemy model defined in stockroom/models.
Base = declarative_base()


def build_engine(db_url: str) -> Engine:
    # For SQLite, ``check_same_thread=False`` lets a timer thread reuse the
    # connection. Other database engines ignore this argument.
    connect_args = {"check_same_thread": False} if db_url.startswith("sqlite") else {}
    return create_engine(db_url, connect_args=connect_args)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
