"""
Game session state.
The reducer copies the session before mutating it; callers never see a half-applied turn.
Includes JSON serialization for save/load functionality.
"""

import json
import math
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any

# Phases the session can rest in between actions.
# resolving_effect and advancing_turn happen inside a single reducer step.
WAITING_FOR_ROLL = "waiting_for_roll"
ROLLING = "rolling"
MOVING = "moving"
RESOLVING_EFFECT = "resolving_effect"
ADVANCING_TURN = "advancing_turn"
GAME_OVER = "game_over"

PHASES = (WAITING_FOR_ROLL, ROLLING, MOVING, RESOLVING_EFFECT, ADVANCING_TURN, GAME_OVER)

# Why a movement step was requested
MOVE_REASON_ROLL = "roll"
MOVE_REASON_EFFECT = "effect"


def _int(v: Any, default: int) -> int:
    try:
        return int(v) if v is not None else default
    except (TypeError, ValueError):
        return default


def _opt_int(v: Any) -> int | None:
    if v is None:
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        return None


@dataclass
class PlayerState:
    """One token on the board."""
    player_index: int  # Stable for the session; turn order
    display_name: str
    board_index: int = 0  # Current tile
    skip_next_turn: bool = False  # Set by a lose_turn tile, consumed at their next roll request
    is_ai_controlled: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "player_index": self.player_index,
            "display_name": self.display_name,
            "board_index": self.board_index,
            "skip_next_turn": self.skip_next_turn,
            "is_ai_controlled": self.is_ai_controlled,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlayerState":
        if not isinstance(data, dict):
            data = {}
        return cls(
            player_index=_int(data.get("player_index"), 0),
            display_name=str(data.get("display_name") or "Player"),
            board_index=max(0, _int(data.get("board_index"), 0)),
            skip_next_turn=bool(data.get("skip_next_turn", False)),
            is_ai_controlled=bool(data.get("is_ai_controlled", False)),
        )


@dataclass
class GameSession:
    """Complete state of one game, from start to game over."""
    board_id: str
    players: list[PlayerState]  # Turn order = list order
    current_player_index: int = 0
    phase: str = WAITING_FOR_ROLL
    # Turn guard: True from an accepted roll request until the turn is finalized
    is_processing_turn: bool = False
    is_game_over: bool = False
    total_rolls: int = 0
    elapsed_seconds: float = 0.0
    steps_per_face: int = 1
    last_roll: int | None = None
    # Tile the presentation layer is currently animating to (None when nothing is in flight)
    awaiting_move: int | None = None
    # Tiles still to be requested after awaiting_move is acknowledged
    pending_moves: list[int] = field(default_factory=list)
    move_reason: str | None = None  # "roll" or "effect"
    winner_index: int | None = None
    final_score: int | None = None

    def copy(self) -> "GameSession":
        """Return a deep copy of this session."""
        return deepcopy(self)

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def current_player(self) -> PlayerState:
        return self.players[self.current_player_index]

    # ===== Serialization Methods =====

    def to_dict(self) -> dict[str, Any]:
        """Convert GameSession to a dictionary for JSON serialization."""
        return {
            "board_id": self.board_id,
            "players": [p.to_dict() for p in self.players],
            "current_player_index": self.current_player_index,
            "phase": self.phase,
            "is_processing_turn": self.is_processing_turn,
            "is_game_over": self.is_game_over,
            "total_rolls": self.total_rolls,
            "elapsed_seconds": self.elapsed_seconds,
            "steps_per_face": self.steps_per_face,
            "last_roll": self.last_roll,
            "awaiting_move": self.awaiting_move,
            "pending_moves": list(self.pending_moves),
            "move_reason": self.move_reason,
            "winner_index": self.winner_index,
            "final_score": self.final_score,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameSession":
        """Create GameSession from a dictionary (handles missing/None for backwards compat)."""
        players_raw = data.get("players") or []
        if not isinstance(players_raw, list):
            players_raw = []
        pending = data.get("pending_moves") or []
        if not isinstance(pending, list):
            pending = []
        phase = str(data.get("phase") or WAITING_FOR_ROLL)
        if phase not in PHASES:
            phase = WAITING_FOR_ROLL
        try:
            elapsed = float(data.get("elapsed_seconds") or 0.0)
        except (TypeError, ValueError):
            elapsed = 0.0
        if not math.isfinite(elapsed):
            elapsed = 0.0
        return cls(
            board_id=str(data.get("board_id") or ""),
            players=[PlayerState.from_dict(p) for p in players_raw if isinstance(p, dict)],
            current_player_index=_int(data.get("current_player_index"), 0),
            phase=phase,
            is_processing_turn=bool(data.get("is_processing_turn", False)),
            is_game_over=bool(data.get("is_game_over", False)),
            total_rolls=max(0, _int(data.get("total_rolls"), 0)),
            elapsed_seconds=max(0.0, elapsed),
            steps_per_face=max(1, _int(data.get("steps_per_face"), 1)),
            last_roll=_opt_int(data.get("last_roll")),
            awaiting_move=_opt_int(data.get("awaiting_move")),
            pending_moves=[i for i in (_opt_int(x) for x in pending) if i is not None],
            move_reason=data.get("move_reason"),
            winner_index=_opt_int(data.get("winner_index")),
            final_score=_opt_int(data.get("final_score")),
        )

    def to_json(self, indent: int = 2) -> str:
        """Serialize GameSession to a JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> "GameSession":
        """Deserialize GameSession from a JSON string."""
        return cls.from_dict(json.loads(json_str))
