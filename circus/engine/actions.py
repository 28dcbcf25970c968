"""
Action definitions for the game.
Actions are immutable, deterministic instructions fed to the reducer.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Action:
    """Base action class. All actions have a type and payload."""
    type: str  # "request_roll", "submit_dice", "acknowledge_move", "tick"
    payload: dict[str, Any] = field(default_factory=dict)
    # Player the caller believes is acting; None = whoever's turn it is
    player_index: int | None = None


REQUEST_ROLL = "request_roll"
SUBMIT_DICE = "submit_dice"
ACKNOWLEDGE_MOVE = "acknowledge_move"
TICK = "tick"


def request_roll(player_index: int | None = None) -> Action:
    """
    Ask to roll for the current player (the "roll" button).
    Ignored while a turn is in flight or after game over.
    If the player lost this turn to a lose_turn tile, play passes to the next player instead.
    """
    return Action(type=REQUEST_ROLL, player_index=player_index)


def submit_dice(face: int | str, player_index: int | None = None) -> Action:
    """
    Deliver the face the external roller landed on.
    Accepts an int or a string such as "4"; anything outside 1-6 forfeits the turn.
    """
    return Action(type=SUBMIT_DICE, payload={"face": face}, player_index=player_index)


def acknowledge_move(tile_index: int, player_index: int | None = None) -> Action:
    """
    Report that the presentation layer finished animating the token to tile_index.
    Must match the outstanding move request.
    """
    return Action(type=ACKNOWLEDGE_MOVE, payload={"tile_index": tile_index}, player_index=player_index)


def tick(seconds: float) -> Action:
    """Advance the game clock. Example: tick(0.016) once per frame."""
    return Action(type=TICK, payload={"seconds": seconds})
