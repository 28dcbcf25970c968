"""
Utility functions for the game engine.
"""

import logging
import random
from typing import Any

from circus.engine import DICE_FACES
from circus.engine.definitions import BoardDefinition
from circus.engine.state import GameSession, PlayerState, WAITING_FOR_ROLL

logger = logging.getLogger(__name__)


def _player_spec(spec: Any, index: int) -> tuple[str, bool]:
    """Accept "Alice", {"display_name": "Alice", "is_ai_controlled": True} or a PlayerState."""
    if isinstance(spec, PlayerState):
        return spec.display_name, spec.is_ai_controlled
    if isinstance(spec, str):
        return spec.strip() or f"Player {index + 1}", False
    if isinstance(spec, dict):
        name = str(spec.get("display_name") or spec.get("name") or "").strip()
        return name or f"Player {index + 1}", bool(spec.get("is_ai_controlled", False))
    raise ValueError(f"Invalid player spec at position {index}: {spec!r}")


def initialize_session(
    board: BoardDefinition | None,
    players: list[Any],
    steps_per_face: int | None = None,
    first_player_index: int = 0,
) -> GameSession:
    """
    Create a fresh session with every player on tile 0.

    Args:
        board: Board to play on (required)
        players: Player specs in turn order (names, dicts, or PlayerState)
        steps_per_face: Board steps per dice pip. Defaults to the board's own value.
        first_player_index: Who rolls first

    Raises ValueError when the configuration cannot be played: no board, no
    players, or steps_per_face below 1.
    """
    if board is None or len(board) == 0:
        raise ValueError("Cannot start a game without a board")
    if not players:
        raise ValueError("Cannot start a game without players")
    spf = board.steps_per_face if steps_per_face is None else int(steps_per_face)
    if spf < 1:
        raise ValueError(f"steps_per_face must be at least 1, got {spf}")
    if not 0 <= first_player_index < len(players):
        raise ValueError(f"first_player_index {first_player_index} out of range for {len(players)} players")

    player_states = []
    for i, spec in enumerate(players):
        name, is_ai = _player_spec(spec, i)
        player_states.append(PlayerState(
            player_index=i,
            display_name=name,
            board_index=0,
            skip_next_turn=False,
            is_ai_controlled=is_ai,
        ))

    return GameSession(
        board_id=board.id,
        players=player_states,
        current_player_index=first_player_index,
        phase=WAITING_FOR_ROLL,
        steps_per_face=spf,
    )


def parse_dice_face(raw: Any) -> int | None:
    """
    Parse a face value from the external roller.
    Returns the face (1-6) or None if it is unparsable or out of range.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, float):
        if not raw.is_integer():
            return None
        value = int(raw)
    elif isinstance(raw, str):
        try:
            value = int(raw.strip())
        except ValueError:
            return None
    else:
        return None
    if not 1 <= value <= DICE_FACES:
        return None
    return value


def roll_die(rng: random.Random | None = None) -> int:
    """Roll one fair die."""
    return (rng or random).randint(1, DICE_FACES)


def print_session(session: GameSession, board: BoardDefinition) -> None:
    """Pretty-print the current session."""
    print(f"\n{'='*60}")
    print(
        f"Rolls {session.total_rolls} | Time {session.elapsed_seconds:.1f}s | Phase: {session.phase}")
    print(f"{'='*60}")

    for player in session.players:
        marker = ">" if player.player_index == session.current_player_index else " "
        tile = board.tile_at(player.board_index)
        flags = []
        if player.is_ai_controlled:
            flags.append("AI")
        if player.skip_next_turn:
            flags.append("skips next turn")
        flag_str = f" ({', '.join(flags)})" if flags else ""
        print(f"{marker} {player.display_name}{flag_str}: tile {player.board_index}/{board.finish_index} "
              f"[{tile.display_name}]")

    if session.is_game_over and session.winner_index is not None:
        winner = session.players[session.winner_index]
        print(f"\nWinner: {winner.display_name} with {session.final_score} points")
    print()
