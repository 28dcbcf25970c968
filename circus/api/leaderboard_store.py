"""
Leaderboard persisted in the storage_slots table.
Each save replaces the slot's document inside one transaction.
"""

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from circus.engine.leaderboard import LeaderboardStore, LEADERBOARD_SLOT

from .models import StorageSlot


class SqlLeaderboardStore(LeaderboardStore):
    """Storage errors are re-raised as OSError so callers handle every store alike."""

    def __init__(self, db: Session, slot: str = LEADERBOARD_SLOT):
        super().__init__(slot)
        self.db = db

    def _read(self) -> str | None:
        try:
            row = self.db.get(StorageSlot, self.slot)
        except SQLAlchemyError as e:
            raise OSError(f"Could not read slot {self.slot}: {e}") from e
        return row.value if row else None

    def _write(self, document: str) -> None:
        try:
            row = self.db.get(StorageSlot, self.slot)
            if row is None:
                self.db.add(StorageSlot(key=self.slot, value=document))
            else:
                row.value = document
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise OSError(f"Could not write slot {self.slot}: {e}") from e

    def _delete(self) -> None:
        try:
            row = self.db.get(StorageSlot, self.slot)
            if row is not None:
                self.db.delete(row)
                self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise OSError(f"Could not delete slot {self.slot}: {e}") from e
