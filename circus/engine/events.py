"""
Game events for presentation hooks and logging.
Events describe what happened during action processing.
"""

from dataclasses import dataclass
from typing import Any


@dataclass
class GameEvent:
    """Base event class. All events have a type and payload."""
    type: str
    payload: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "payload": self.payload}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameEvent":
        return cls(type=data["type"], payload=data["payload"])


# ===== Event Type Constants =====

# Session events
GAME_STARTED = "game_started"

# Roll events
ROLL_STARTED = "roll_started"
DICE_ROLLED = "dice_rolled"
ROLL_FAILED = "roll_failed"

# Turn events
TURN_SKIPPED = "turn_skipped"
TURN_CHANGED = "turn_changed"

# Movement events
MOVE_REQUESTED = "move_requested"
TILE_EFFECT_APPLIED = "tile_effect_applied"

# Victory events
GAME_WON = "game_won"


# ===== Event Factory Functions =====

def game_started(board_id: str, player_names: list[str], first_player_index: int) -> GameEvent:
    return GameEvent(GAME_STARTED, {
        "board_id": board_id,
        "player_names": player_names,
        "current_player_index": first_player_index,
    })


def roll_started(player_index: int, roll_number: int) -> GameEvent:
    return GameEvent(ROLL_STARTED, {
        "player_index": player_index,
        "roll_number": roll_number,
    })


def dice_rolled(player_index: int, face: int, steps: int, from_index: int, target_index: int) -> GameEvent:
    return GameEvent(DICE_ROLLED, {
        "player_index": player_index,
        "face": face,
        "steps": steps,
        "from_index": from_index,
        "target_index": target_index,
    })


def roll_failed(player_index: int, raw_face: Any) -> GameEvent:
    """Emitted when the dice face could not be read; the turn is forfeited."""
    return GameEvent(ROLL_FAILED, {
        "player_index": player_index,
        "raw_face": raw_face if isinstance(raw_face, (int, str)) or raw_face is None else repr(raw_face),
    })


def turn_skipped(player_index: int) -> GameEvent:
    return GameEvent(TURN_SKIPPED, {"player_index": player_index})


def turn_changed(current_player_index: int) -> GameEvent:
    return GameEvent(TURN_CHANGED, {"current_player_index": current_player_index})


def move_requested(player_index: int, tile_index: int, reason: str) -> GameEvent:
    """
    Ask the presentation layer to move a token one step.
    reason is "roll" for dice movement or "effect" for a tile effect relocation.
    The engine waits for acknowledge_move(tile_index) before issuing the next one.
    """
    return GameEvent(MOVE_REQUESTED, {
        "player_index": player_index,
        "tile_index": tile_index,
        "reason": reason,
    })


def tile_effect_applied(
    player_index: int,
    tile_index: int,
    kind: str,
    result_index: int,
    skip_next_turn: bool,
    tile_name: str,
) -> GameEvent:
    return GameEvent(TILE_EFFECT_APPLIED, {
        "player_index": player_index,
        "tile_index": tile_index,
        "tile_name": tile_name,
        "kind": kind,
        "result_index": result_index,
        "skip_next_turn": skip_next_turn,
    })


def game_won(
    winning_player_index: int,
    elapsed_seconds: float,
    total_rolls: int,
    score: int,
    winner_name: str,
) -> GameEvent:
    """
    Emitted exactly once, when a player reaches or passes the finish tile.

    Args:
        winning_player_index: Index of the winning player
        elapsed_seconds: Game clock at the moment of the win
        total_rolls: Accepted roll requests over the whole game
        score: Final score for the leaderboard
        winner_name: Display name recorded on the leaderboard
    """
    return GameEvent(GAME_WON, {
        "winning_player_index": winning_player_index,
        "winner_name": winner_name,
        "elapsed_seconds": elapsed_seconds,
        "total_rolls": total_rolls,
        "score": score,
    })
