"""
Best-score leaderboard.
One entry per player name holding that name's best score, kept sorted by points (highest first).
The whole collection is persisted as one JSON document under a single well-known slot.
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

LEADERBOARD_SLOT = "Leaderboard"
DEFAULT_PLAYER_NAME = "Player"


def normalize_player_name(name: str | None) -> str:
    """Blank names are recorded under the default placeholder."""
    if name is None or not str(name).strip():
        return DEFAULT_PLAYER_NAME
    return str(name)


@dataclass
class LeaderboardEntry:
    player_name: str
    points: int

    def to_dict(self) -> dict[str, Any]:
        return {"player_name": self.player_name, "points": self.points}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LeaderboardEntry":
        if not isinstance(data, dict):
            data = {}
        # Legacy documents used camelCase keys
        name = data.get("player_name", data.get("playerName"))
        try:
            points = int(data.get("points", 0))
        except (TypeError, ValueError, OverflowError):
            points = 0
        return cls(player_name=normalize_player_name(name), points=max(0, points))


@dataclass
class Leaderboard:
    """The full collection of best scores."""
    entries: list[LeaderboardEntry] = field(default_factory=list)

    def add_entry(self, name: str | None, points: int) -> LeaderboardEntry:
        """
        Record a score, keeping only the best score per name.
        Example: add_entry("Alice", 100) then add_entry("Alice", 50) leaves Alice at 100.
        """
        points = int(points)
        if points < 0:
            raise ValueError(f"Leaderboard points must be non-negative, got {points}")
        name = normalize_player_name(name)

        existing = self.get(name)
        if existing is not None:
            if points > existing.points:
                existing.points = points
        else:
            existing = LeaderboardEntry(player_name=name, points=points)
            self.entries.append(existing)

        self._sort()
        return existing

    def get(self, name: str | None) -> LeaderboardEntry | None:
        name = normalize_player_name(name)
        for entry in self.entries:
            if entry.player_name == name:
                return entry
        return None

    def _sort(self) -> None:
        # Stable sort: equal scores keep insertion order
        self.entries.sort(key=lambda e: e.points, reverse=True)

    def format_text(self) -> str:
        """Render for a scrolling leaderboard panel."""
        if not self.entries:
            return "No scores yet."
        lines = ["LEADERBOARD"]
        for rank, entry in enumerate(self.entries, start=1):
            lines.append(f"{rank}. {entry.player_name} - {entry.points} pts")
        return "\n".join(lines)

    def __len__(self) -> int:
        return len(self.entries)

    # ===== Serialization Methods =====

    def to_dict(self) -> dict[str, Any]:
        return {"entries": [e.to_dict() for e in self.entries]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Leaderboard":
        """Build from a stored document, merging duplicate names and re-sorting."""
        raw = data.get("entries") if isinstance(data, dict) else None
        if not isinstance(raw, list):
            raise ValueError("Leaderboard document must contain a list of entries")
        board = cls()
        for item in raw:
            if isinstance(item, dict):
                entry = LeaderboardEntry.from_dict(item)
                board.add_entry(entry.player_name, entry.points)
        return board

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, json_str: str) -> "Leaderboard":
        return cls.from_dict(json.loads(json_str))


class LeaderboardStore:
    """
    Persistence contract for the leaderboard: load, add_entry, save (and clear).
    Subclasses implement _read/_write/_delete for one storage slot.
    """

    def __init__(self, slot: str = LEADERBOARD_SLOT):
        self.slot = slot

    def _read(self) -> str | None:
        raise NotImplementedError

    def _write(self, document: str) -> None:
        raise NotImplementedError

    def _delete(self) -> None:
        raise NotImplementedError

    def load(self) -> Leaderboard:
        """Return the stored leaderboard; an empty one if nothing is stored or it is unreadable."""
        try:
            document = self._read()
        except (OSError, ValueError) as e:
            logger.warning("Failed to read leaderboard slot %s: %s", self.slot, e)
            return Leaderboard()
        if not document:
            return Leaderboard()
        try:
            return Leaderboard.from_json(document)
        except (ValueError, TypeError, OverflowError) as e:
            logger.warning("Failed to load leaderboard: %s", e)
            return Leaderboard()

    def save(self, leaderboard: Leaderboard) -> None:
        """Persist the whole collection in one atomic write."""
        self._write(leaderboard.to_json())

    def add_entry(self, name: str | None, points: int) -> Leaderboard:
        """Load, record the score, save. Returns the updated leaderboard."""
        leaderboard = self.load()
        leaderboard.add_entry(name, points)
        self.save(leaderboard)
        return leaderboard

    def clear(self) -> None:
        self._delete()


class JsonFileLeaderboardStore(LeaderboardStore):
    """
    Leaderboard stored as <directory>/<slot>.json.
    Writes go to a temporary file in the same directory which then replaces the
    slot file, so readers see either the old or the new collection, never a partial one.
    """

    def __init__(self, directory: Path | str, slot: str = LEADERBOARD_SLOT):
        super().__init__(slot)
        self.directory = Path(directory)

    @property
    def path(self) -> Path:
        return self.directory / f"{self.slot}.json"

    def _read(self) -> str | None:
        if not self.path.exists():
            return None
        with open(self.path, "r", encoding="utf-8") as f:
            return f.read()

    def _write(self, document: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=f".{self.slot}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(document)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def _delete(self) -> None:
        if self.path.exists():
            self.path.unlink()


class MemoryLeaderboardStore(LeaderboardStore):
    """Keeps the document in memory. For tests and throwaway games."""

    def __init__(self, slot: str = LEADERBOARD_SLOT, document: str | None = None):
        super().__init__(slot)
        self.document = document

    def _read(self) -> str | None:
        return self.document

    def _write(self, document: str) -> None:
        self.document = document

    def _delete(self) -> None:
        self.document = None
