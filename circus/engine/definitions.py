"""
Static board definitions.
Boards live under data/boards/<board_id>.json: an ordered list of tiles, each with an effect.
The last tile is the finish line.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent.parent / "data"
BOARDS_DIR = DATA_DIR / "boards"


def _default_board_id() -> str:
    """Single place for default: circus.config.DEFAULT_BOARD_ID."""
    from circus.config import DEFAULT_BOARD_ID
    return DEFAULT_BOARD_ID


def _default_steps_per_face() -> int:
    """Used when a board file does not set steps_per_face."""
    from circus.config import STEPS_PER_FACE
    return STEPS_PER_FACE


def _board_path(board_id: str) -> Path:
    return BOARDS_DIR / f"{board_id}.json"


class TileKind(str, Enum):
    NORMAL = "normal"
    FORWARD = "forward"
    BACK = "back"
    LOSE_TURN = "lose_turn"
    GO_TO = "go_to"

    @classmethod
    def parse(cls, value: Any) -> "TileKind":
        """Accept "GoTo", "go_to", "goto", "LOSE_TURN"... Unknown kinds raise ValueError."""
        if isinstance(value, TileKind):
            return value
        key = str(value or "normal").replace("_", "").replace("-", "").replace(" ", "").lower()
        for kind in cls:
            if kind.value.replace("_", "") == key:
                return kind
        raise ValueError(f"Unknown tile kind: {value!r}")


@dataclass(frozen=True)
class TileDefinition:
    """One board position and its effect."""
    index: int
    kind: TileKind = TileKind.NORMAL
    # Forward/Back: number of steps. Only the magnitude is used, direction comes from kind.
    step_modifier: int = 0
    # GoTo: absolute index to teleport to
    go_to_index: int = 0
    display_name: str = "Tile"

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "kind": self.kind.value,
            "step_modifier": self.step_modifier,
            "go_to_index": self.go_to_index,
            "display_name": self.display_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TileDefinition":
        if not isinstance(data, dict) or "index" not in data:
            raise ValueError(f"Tile entry must be an object with an index: {data!r}")
        return cls(
            index=int(data["index"]),
            kind=TileKind.parse(data.get("kind", data.get("tile_type"))),
            step_modifier=int(data.get("step_modifier") or 0),
            go_to_index=int(data.get("go_to_index") or 0),
            display_name=str(data.get("display_name") or "Tile"),
        )


@dataclass(frozen=True)
class BoardDefinition:
    """
    Immutable ordered sequence of tiles.

    Construction validates the tile indices: at least one tile, sorted ascending,
    contiguous from 0, no duplicates. Anything else is a fatal configuration error.
    """
    id: str
    display_name: str
    tiles: tuple[TileDefinition, ...]
    steps_per_face: int = 1
    description: str = ""
    tags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.tiles:
            raise ValueError(f"Board {self.id!r} has no tiles")
        seen: set[int] = set()
        for position, tile in enumerate(self.tiles):
            if tile.index in seen:
                raise ValueError(f"Board {self.id!r} has duplicate tile index {tile.index}")
            seen.add(tile.index)
            if tile.index != position:
                raise ValueError(
                    f"Board {self.id!r} tile indices must be contiguous from 0: "
                    f"expected {position}, found {tile.index}"
                )
        if self.steps_per_face < 1:
            raise ValueError(f"Board {self.id!r} steps_per_face must be at least 1")

    @property
    def finish_index(self) -> int:
        return self.tiles[-1].index

    def __len__(self) -> int:
        return len(self.tiles)

    def clamp(self, index: int) -> int:
        """Clamp a board index to [0, finish_index]."""
        return max(0, min(index, self.finish_index))

    def tile_at(self, index: int) -> TileDefinition:
        return self.tiles[self.clamp(index)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "description": self.description,
            "tags": list(self.tags),
            "steps_per_face": self.steps_per_face,
            "tiles": [t.to_dict() for t in self.tiles],
        }


def board_from_dict(data: dict[str, Any], board_id: str | None = None) -> BoardDefinition:
    """
    Build a board from config (a board file or a snapshot stored with a game).
    Tiles are sorted by index before validation.
    """
    if not isinstance(data, dict):
        raise ValueError("Board config must be an object")
    raw_tiles = data.get("tiles")
    if not isinstance(raw_tiles, list):
        raise ValueError("Board config must contain a list of tiles")
    tiles = sorted((TileDefinition.from_dict(t) for t in raw_tiles), key=lambda t: t.index)
    bid = str(data.get("id") or board_id or "custom")
    spf = data.get("steps_per_face")
    board = BoardDefinition(
        id=bid,
        display_name=str(data.get("display_name") or bid),
        tiles=tuple(tiles),
        steps_per_face=_default_steps_per_face() if spf is None else int(spf),
        description=str(data.get("description") or ""),
        tags=tuple(str(t) for t in data.get("tags") or []),
    )
    for tile in board.tiles:
        if tile.kind == TileKind.GO_TO and not 0 <= tile.go_to_index <= board.finish_index:
            logger.warning(
                "Board %s: tile %d go_to_index %d is outside [0, %d] and will be clamped",
                board.id, tile.index, tile.go_to_index, board.finish_index,
            )
    return board


def load_board(board_id: str | None = None, path: Path | str | None = None) -> BoardDefinition:
    """
    Load a board by id from data/boards/, or from an explicit file path.
    Give neither to load the default board.
    """
    if path is None:
        board_id = board_id or _default_board_id()
        path = _board_path(board_id)
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Board not found: {board_id or path}")
    with open(path, "r") as f:
        data = json.load(f)
    return board_from_dict(data, board_id=board_id or path.stem)


def list_boards() -> list[dict]:
    """Return [{ id, display_name, tile_count }, ...] for every board file in data/boards/."""
    out = []
    if not BOARDS_DIR.exists():
        return out
    for path in sorted(BOARDS_DIR.glob("*.json")):
        try:
            with open(path, "r") as f:
                data = json.load(f)
            out.append({
                "id": data.get("id", path.stem),
                "display_name": data.get("display_name", path.stem),
                "tile_count": len(data.get("tiles") or []),
            })
        except (json.JSONDecodeError, OSError):
            logger.warning("Skipping unreadable board file %s", path)
    return out
