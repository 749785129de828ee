"""
Database - Mastery Store I/O Operations

Handles all database operations for the practice item collection and the
learner settings. Uses SQLAlchemy ORM; SQLite by default, any SQLAlchemy URL
via DATABASE_URL.

This module handles ONLY database I/O.
Graduation and pool rules live in the store module.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from vocab_engine import config
from vocab_engine.mastery.models import Base, PracticeItemRow, SettingRow
from vocab_engine.schemas import Item

logger = logging.getLogger(__name__)

# Engines reused across repositories, keyed by URL
_engines: dict[str, Engine] = {}


# ---- Connection Management ----

def _ensure_sqlite_dir(url: str) -> None:
    database = make_url(url).database
    if database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)


def get_engine(database_url: Optional[str] = None) -> Engine:
    """
    Get a SQLAlchemy engine, creating it on first use.

    Args:
        database_url: Explicit URL; defaults to config.get_database_url()

    Returns:
        SQLAlchemy Engine instance
    """
    url = database_url or config.get_database_url()
    if url in _engines:
        return _engines[url]

    if url.startswith("sqlite"):
        _ensure_sqlite_dir(url)
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            echo=False
        )
    else:
        engine = create_engine(
            url,
            pool_size=5,           # Keep 5 connections open
            max_overflow=10,       # Allow up to 10 extra connections
            pool_pre_ping=True,    # Verify connections before use
            echo=False
        )
    _engines[url] = engine
    return engine


def dispose_engines() -> None:
    """Close every cached engine (used between tests)."""
    for engine in _engines.values():
        engine.dispose()
    _engines.clear()


def init_db(engine: Optional[Engine] = None) -> None:
    """
    Initialize database schema if tables don't exist.

    Safe to call multiple times.
    """
    engine = engine or get_engine()
    existing_tables = inspect(engine).get_table_names()
    if (
        PracticeItemRow.__tablename__ not in existing_tables
        or SettingRow.__tablename__ not in existing_tables
    ):
        Base.metadata.create_all(engine)


def reset_db(engine: Optional[Engine] = None) -> None:
    """
    DANGEROUS: Delete all data and recreate tables.

    Every saved item, counter and setting is lost.
    """
    engine = engine or get_engine()
    Base.metadata.drop_all(engine)
    logger.info("Dropped mastery tables")
    init_db(engine)


# ---- Row Conversion ----

def _decode_counters(raw: Optional[str]) -> dict:
    try:
        value = json.loads(raw or "{}")
    except (TypeError, ValueError):
        return {}
    return value if isinstance(value, dict) else {}


def _as_utc(value: datetime) -> datetime:
    """SQLite drops tzinfo; stored timestamps are always UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _row_to_item(row: PracticeItemRow) -> Item:
    return Item(
        term=row.term,
        translation=row.translation,
        example_sentence=row.example_sentence,
        curriculum_item_id=row.curriculum_item_id,
        created_at=_as_utc(row.created_at),
        mastery_counters=_decode_counters(row.mastery_counters),
    )


def _item_to_row(item: Item, position: int) -> PracticeItemRow:
    counters = {kind.value: count for kind, count in item.mastery_counters.items()}
    return PracticeItemRow(
        position=position,
        term=item.term,
        translation=item.translation,
        example_sentence=item.example_sentence,
        curriculum_item_id=item.curriculum_item_id,
        created_at=_as_utc(item.created_at),
        mastery_counters=json.dumps(counters, sort_keys=True),
    )


# ---- Repository ----

class CollectionRepository:
    """
    Persistence provider for the item collection and learner settings.

    Reads never raise: an unreadable collection is reported as None (not
    found). Writes are best-effort and report success as a bool.
    """

    def __init__(self, engine: Optional[Engine] = None, create_tables: bool = True):
        self._engine = engine or get_engine()
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        if create_tables:
            init_db(self._engine)

    @property
    def engine(self) -> Engine:
        return self._engine

    def _session(self) -> Session:
        return self._session_factory()

    def read_collection(self) -> Optional[list[Item]]:
        """
        Read every stored item in collection order.

        Returns:
            List of items, or None when the collection cannot be read
        """
        try:
            with self._session() as session:
                rows = session.query(PracticeItemRow).order_by(PracticeItemRow.position).all()
        except SQLAlchemyError as exc:
            logger.warning("Could not read practice items: %s", exc)
            return None

        items = []
        for row in rows:
            try:
                items.append(_row_to_item(row))
            except ValidationError as exc:
                logger.warning("Skipping unreadable practice item %r: %s", row.term, exc)
        return items

    def write_collection(self, items: list[Item]) -> bool:
        """Replace the stored collection with `items`."""
        try:
            with self._session() as session, session.begin():
                session.query(PracticeItemRow).delete()
                session.add_all(_item_to_row(item, i) for i, item in enumerate(items))
        except SQLAlchemyError as exc:
            logger.warning("Could not write practice items: %s", exc)
            return False
        return True

    def read_setting(self, key: str) -> Optional[str]:
        try:
            with self._session() as session:
                row = session.get(SettingRow, key)
                return row.value if row is not None else None
        except SQLAlchemyError as exc:
            logger.warning("Could not read setting %s: %s", key, exc)
            return None

    def write_setting(self, key: str, value: str) -> bool:
        try:
            with self._session() as session, session.begin():
                session.merge(SettingRow(key=key, value=value))
        except SQLAlchemyError as exc:
            logger.warning("Could not write setting %s: %s", key, exc)
            return False
        return True
