"""
Session creation and save/load.
"""

import pytest

from circus.engine.definitions import load_board
from circus.engine.state import GameSession, MOVING, WAITING_FOR_ROLL
from circus.engine.utils import initialize_session, parse_dice_face


def test_initialize_session_places_everyone_on_start():
    board = load_board("sideshow")
    session = initialize_session(board, ["Alice", {"display_name": "Bot", "is_ai_controlled": True}, "  "])
    assert [p.display_name for p in session.players] == ["Alice", "Bot", "Player 3"]
    assert all(p.board_index == 0 for p in session.players)
    assert session.players[1].is_ai_controlled
    assert session.phase == WAITING_FOR_ROLL
    assert session.current_player_index == 0
    assert session.steps_per_face == board.steps_per_face


def test_initialize_session_rejects_bad_configuration():
    board = load_board("sideshow")
    with pytest.raises(ValueError):
        initialize_session(board, [])
    with pytest.raises(ValueError):
        initialize_session(None, ["Alice"])
    with pytest.raises(ValueError):
        initialize_session(board, ["Alice"], steps_per_face=0)
    with pytest.raises(ValueError):
        initialize_session(board, ["Alice"], first_player_index=1)


def test_session_json_round_trip():
    board = load_board("sideshow")
    session = initialize_session(board, ["Alice", "Bob"], first_player_index=1)
    session.phase = MOVING
    session.is_processing_turn = True
    session.total_rolls = 4
    session.elapsed_seconds = 12.5
    session.awaiting_move = 3
    session.pending_moves = [4, 5]
    session.move_reason = "roll"
    session.players[0].skip_next_turn = True

    restored = GameSession.from_json(session.to_json())
    assert restored == session


def test_from_dict_tolerates_missing_and_bad_fields():
    restored = GameSession.from_dict({
        "board_id": "sideshow",
        "players": [{"display_name": "Alice", "board_index": -3}, "junk"],
        "phase": "dancing",
        "total_rolls": "many",
        "elapsed_seconds": None,
        "pending_moves": [1, "x", "2"],
    })
    assert len(restored.players) == 1
    assert restored.players[0].board_index == 0
    assert restored.phase == WAITING_FOR_ROLL
    assert restored.total_rolls == 0
    assert restored.elapsed_seconds == 0.0
    assert restored.pending_moves == [1, 2]


def test_copy_is_independent():
    board = load_board("sideshow")
    session = initialize_session(board, ["Alice"])
    clone = session.copy()
    clone.players[0].board_index = 5
    assert session.players[0].board_index == 0


@pytest.mark.parametrize("raw, expected", [
    (1, 1),
    (6, 6),
    ("4", 4),
    (" 3 ", 3),
    (2.0, 2),
    (0, None),
    (7, None),
    ("abc", None),
    (2.5, None),
    (True, None),
    (None, None),
])
def test_parse_dice_face(raw, expected):
    assert parse_dice_face(raw) == expected


def test_from_dict_resets_non_finite_clock():
    restored = GameSession.from_dict({"board_id": "sideshow", "elapsed_seconds": float("inf")})
    assert restored.elapsed_seconds == 0.0
