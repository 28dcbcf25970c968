"""
Query functions for UI integration.
These functions help the presentation layer understand what actions are available
without mutating game state.
"""

import math
from dataclasses import dataclass
from typing import Any

from circus.engine import BASE_SCORE, ROLL_PENALTY
from circus.engine.actions import Action, REQUEST_ROLL, SUBMIT_DICE, ACKNOWLEDGE_MOVE, TICK
from circus.engine.definitions import BoardDefinition
from circus.engine.state import GameSession, WAITING_FOR_ROLL, ROLLING, MOVING, GAME_OVER


# Phase rules: which action types are accepted in which resting phase.
# request_roll is accepted everywhere but is a no-op outside waiting_for_roll.
PHASE_ALLOWED_ACTIONS = {
    WAITING_FOR_ROLL: [REQUEST_ROLL, TICK],
    ROLLING: [REQUEST_ROLL, SUBMIT_DICE, TICK],
    MOVING: [REQUEST_ROLL, ACKNOWLEDGE_MOVE, TICK],
    GAME_OVER: [REQUEST_ROLL, TICK],
}


@dataclass
class ValidationResult:
    """Result of action validation."""
    valid: bool
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "error": self.error}


def calculate_score(elapsed_seconds: float, total_rolls: int) -> int:
    """Score for a win: faster games with fewer rolls score higher. Never negative."""
    return max(0, BASE_SCORE - round(elapsed_seconds) - total_rolls * ROLL_PENALTY)


# ===== Action Validation =====

def validate_action(session: GameSession, action: Action) -> ValidationResult:
    """
    Validate an action without applying it.
    Returns ValidationResult with valid=True or valid=False with error message.
    A roll request that will be ignored is still valid.
    """
    if action.type == REQUEST_ROLL and (session.is_game_over or session.is_processing_turn):
        return ValidationResult(True)

    allowed = PHASE_ALLOWED_ACTIONS.get(session.phase, [])
    if action.type not in allowed:
        return ValidationResult(
            False,
            f"Cannot {action.type} during {session.phase} phase. Allowed: {allowed}"
        )

    if (
        action.player_index is not None
        and action.type != TICK
        and action.player_index != session.current_player_index
    ):
        return ValidationResult(
            False,
            f"Not player {action.player_index}'s turn. Current player: {session.current_player_index}"
        )

    if action.type == ACKNOWLEDGE_MOVE:
        tile_index = action.payload.get("tile_index")
        if session.awaiting_move is None:
            return ValidationResult(False, "No movement is awaiting acknowledgement")
        if tile_index != session.awaiting_move:
            return ValidationResult(
                False,
                f"Acknowledged tile {tile_index} but tile {session.awaiting_move} was requested"
            )

    if action.type == TICK:
        seconds = action.payload.get("seconds")
        if (
            not isinstance(seconds, (int, float))
            or isinstance(seconds, bool)
            or not math.isfinite(seconds)
            or seconds < 0
        ):
            return ValidationResult(False, f"tick seconds must be a finite non-negative number, got {seconds!r}")

    return ValidationResult(True)


# ===== State Queries =====

def can_roll(session: GameSession) -> bool:
    """True if a roll request would be accepted (or consume a pending skip)."""
    return not session.is_game_over and not session.is_processing_turn and session.phase == WAITING_FOR_ROLL


def get_available_action_types(session: GameSession) -> list[str]:
    """Action types that would change state right now."""
    if session.is_game_over:
        return []
    if session.phase == WAITING_FOR_ROLL:
        return [REQUEST_ROLL, TICK]
    if session.phase == ROLLING:
        return [SUBMIT_DICE, TICK]
    if session.phase == MOVING:
        return [ACKNOWLEDGE_MOVE, TICK]
    return []


def get_standings(session: GameSession, board: BoardDefinition) -> list[dict[str, Any]]:
    """Players ordered by progress (furthest first; ties keep turn order)."""
    ordered = sorted(session.players, key=lambda p: (-p.board_index, p.player_index))
    return [
        {
            "player_index": p.player_index,
            "display_name": p.display_name,
            "board_index": p.board_index,
            "tiles_to_finish": max(0, board.finish_index - p.board_index),
            "skip_next_turn": p.skip_next_turn,
        }
        for p in ordered
    ]


def get_session_summary(session: GameSession, board: BoardDefinition) -> dict[str, Any]:
    """Compact summary for UI headers."""
    current = session.current_player if session.players else None
    return {
        "board_id": board.id,
        "board_name": board.display_name,
        "finish_index": board.finish_index,
        "phase": session.phase,
        "current_player_index": session.current_player_index,
        "current_player_name": current.display_name if current else None,
        "total_rolls": session.total_rolls,
        "elapsed_seconds": session.elapsed_seconds,
        "projected_score": calculate_score(session.elapsed_seconds, session.total_rolls),
        "is_game_over": session.is_game_over,
        "winner_index": session.winner_index,
        "final_score": session.final_score,
        "available_actions": get_available_action_types(session),
        "standings": get_standings(session, board),
    }
