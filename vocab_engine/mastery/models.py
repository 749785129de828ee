"""
SQLAlchemy ORM Models for the mastery store

Defines the practice item collection and the key/value learner settings.
"""

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class PracticeItemRow(Base):
    """
    One saved practice item.

    `position` keeps the collection order; counters are a JSON object keyed by
    practice kind.
    """
    __tablename__ = 'practice_items'

    id = Column(Integer, primary_key=True, autoincrement=True)
    position = Column(Integer, nullable=False)

    term = Column(Text, nullable=False)
    translation = Column(Text, nullable=False)
    example_sentence = Column(Text, nullable=True)
    curriculum_item_id = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False)
    mastery_counters = Column(Text, nullable=False, default="{}")

    def __repr__(self):
        return f"<PracticeItemRow({self.position}, {self.term!r})>"


class SettingRow(Base):
    """Learner setting, stored as a string like the app's key/value storage."""
    __tablename__ = 'settings'

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=True)

    def __repr__(self):
        return f"<SettingRow({self.key}={self.value!r})>"
