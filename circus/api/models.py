"""
SQLAlchemy models for games and the leaderboard slot.
"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text

from .database import Base


class Game(Base):
    __tablename__ = "games"

    id = Column(String(36), primary_key=True)  # uuid
    board_id = Column(String(64), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    status = Column(String(32), nullable=False, default="active")  # active | finished
    game_state = Column(Text, nullable=False)  # JSON string of the full GameSession
    board = Column(Text, nullable=False)  # JSON snapshot of the BoardDefinition the game was created with


class StorageSlot(Base):
    """A named document persisted as a whole (e.g. the "Leaderboard" slot)."""
    __tablename__ = "storage_slots"

    key = Column(String(64), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
