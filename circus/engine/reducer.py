"""
Main game reducer.
Applies actions to a session, enforcing the turn rules and producing a new session.
Returns (new_session, events) where events describe what happened.

Turn flow:
    waiting_for_roll -> rolling -> moving -> resolving_effect -> (moving) -> advancing_turn -> waiting_for_roll
with game_over reachable whenever a move arrives at or beyond the finish tile.
"""

import logging

from circus.engine.actions import Action, REQUEST_ROLL, SUBMIT_DICE, ACKNOWLEDGE_MOVE, TICK
from circus.engine.definitions import BoardDefinition, TileKind
from circus.engine.effects import resolve_tile_effect
from circus.engine.queries import calculate_score, validate_action
from circus.engine.state import (
    GameSession,
    WAITING_FOR_ROLL,
    ROLLING,
    MOVING,
    RESOLVING_EFFECT,
    GAME_OVER,
    MOVE_REASON_ROLL,
    MOVE_REASON_EFFECT,
)
from circus.engine.utils import parse_dice_face
from circus.engine.events import (
    GameEvent,
    roll_started,
    dice_rolled,
    roll_failed,
    turn_skipped,
    turn_changed,
    move_requested,
    tile_effect_applied,
    game_won,
)

logger = logging.getLogger(__name__)


def apply_action(
    session: GameSession,
    action: Action,
    board: BoardDefinition,
) -> tuple[GameSession, list[GameEvent]]:
    """
    Apply a single action to the current session, returning new session and events.

    A roll request while a turn is in flight, or after game over, is ignored:
    the same session comes back with no events. Every other invalid action
    (wrong phase, wrong player, acknowledging a tile that was not requested)
    raises ValueError.

    Args:
        session: Current session
        action: Action to apply
        board: Board the session is played on

    Returns:
        Tuple of (new_session, events) where events describe what happened
    """
    if action.type == REQUEST_ROLL and (session.is_game_over or session.is_processing_turn):
        logger.debug("Roll request ignored (game over or turn in flight)")
        return session, []

    if action.type == TICK and session.is_game_over:
        return session, []

    validation = validate_action(session, action)
    if not validation.valid:
        raise ValueError(validation.error)

    new_session = session.copy()
    events: list[GameEvent] = []

    if action.type == REQUEST_ROLL:
        new_session, evts = _handle_request_roll(new_session)
        events.extend(evts)

    elif action.type == SUBMIT_DICE:
        new_session, evts = _handle_submit_dice(new_session, action, board)
        events.extend(evts)

    elif action.type == ACKNOWLEDGE_MOVE:
        new_session, evts = _handle_acknowledge_move(new_session, action, board)
        events.extend(evts)

    elif action.type == TICK:
        new_session.elapsed_seconds += float(action.payload["seconds"])

    else:
        raise ValueError(f"Unknown action type: {action.type}")

    return new_session, events


def _handle_request_roll(session: GameSession) -> tuple[GameSession, list[GameEvent]]:
    """
    Start the current player's turn.
    A player holding a skip flag loses this turn instead: the flag is cleared
    and play passes on without a roll being counted.
    """
    player = session.current_player
    if player.skip_next_turn:
        logger.info("Player %d (%s) skips this turn", player.player_index, player.display_name)
        player.skip_next_turn = False
        events = [turn_skipped(player.player_index)]
        session, evts = _advance_turn(session)
        events.extend(evts)
        return session, events

    session.is_processing_turn = True
    session.total_rolls += 1
    session.phase = ROLLING
    return session, [roll_started(player.player_index, session.total_rolls)]


def _handle_submit_dice(
    session: GameSession,
    action: Action,
    board: BoardDefinition,
) -> tuple[GameSession, list[GameEvent]]:
    """
    Turn the dice face into movement.
    A malformed face forfeits the turn; play continues with the next player.
    """
    player = session.current_player
    raw_face = action.payload.get("face")
    face = parse_dice_face(raw_face)

    if face is None:
        logger.warning("Invalid dice value %r for player %d; turn forfeited", raw_face, player.player_index)
        events = [roll_failed(player.player_index, raw_face)]
        session, evts = _advance_turn(session)
        events.extend(evts)
        return session, events

    steps = face * session.steps_per_face
    start_index = board.clamp(player.board_index)
    target_index = board.clamp(start_index + steps)
    session.last_roll = face
    logger.info("Player %d rolled %d, moving %d steps to tile %d",
                player.player_index, face, steps, target_index)

    events = [dice_rolled(player.player_index, face, steps, start_index, target_index)]
    path = list(range(start_index + 1, target_index + 1))
    if not path:
        # Already standing on the target; nothing to animate
        session, evts = _arrive(session, board, target_index, MOVE_REASON_ROLL)
        events.extend(evts)
        return session, events

    session.phase = MOVING
    session.move_reason = MOVE_REASON_ROLL
    events.extend(_request_next_step(session, path))
    return session, events


def _request_next_step(session: GameSession, path: list[int]) -> list[GameEvent]:
    """Issue the first step of path; the rest wait for acknowledgements."""
    session.awaiting_move = path[0]
    session.pending_moves = path[1:]
    return [move_requested(session.current_player_index, path[0], session.move_reason or MOVE_REASON_ROLL)]


def _handle_acknowledge_move(
    session: GameSession,
    action: Action,
    board: BoardDefinition,
) -> tuple[GameSession, list[GameEvent]]:
    """Record that the token reached the requested tile and request the next step, if any."""
    player = session.current_player
    tile_index = session.awaiting_move
    player.board_index = board.clamp(tile_index)
    session.awaiting_move = None

    if session.pending_moves:
        return session, _request_next_step(session, session.pending_moves)

    reason = session.move_reason or MOVE_REASON_ROLL
    session.move_reason = None
    return _arrive(session, board, player.board_index, reason)


def _arrive(
    session: GameSession,
    board: BoardDefinition,
    arrival_index: int,
    reason: str,
) -> tuple[GameSession, list[GameEvent]]:
    """
    The token finished moving. Check the finish line, then (after dice movement
    only) resolve the landing tile.
    """
    if arrival_index >= board.finish_index:
        return _handle_win(session)

    if reason == MOVE_REASON_EFFECT:
        return _advance_turn(session)

    session.phase = RESOLVING_EFFECT
    player = session.current_player
    tile = board.tile_at(arrival_index)
    result = resolve_tile_effect(tile, arrival_index)
    events: list[GameEvent] = []

    if tile.kind != TileKind.NORMAL:
        events.append(tile_effect_applied(
            player.player_index,
            arrival_index,
            tile.kind.value,
            result.result_index,
            result.skip_next_turn,
            tile.display_name,
        ))

    if result.skip_next_turn:
        player.skip_next_turn = True

    if result.result_index != arrival_index:
        destination = board.clamp(result.result_index)
        logger.info("Player %d tile effect: move to %d", player.player_index, destination)
        session.phase = MOVING
        session.move_reason = MOVE_REASON_EFFECT
        events.extend(_request_next_step(session, [destination]))
        return session, events

    session, evts = _advance_turn(session)
    events.extend(evts)
    return session, events


def _advance_turn(session: GameSession) -> tuple[GameSession, list[GameEvent]]:
    """Pass play to the next player in turn order and release the turn guard."""
    session.current_player_index = (session.current_player_index + 1) % session.player_count
    session.is_processing_turn = False
    session.awaiting_move = None
    session.pending_moves = []
    session.move_reason = None
    session.phase = WAITING_FOR_ROLL
    logger.info("Next player: %d", session.current_player_index)
    return session, [turn_changed(session.current_player_index)]


def _handle_win(session: GameSession) -> tuple[GameSession, list[GameEvent]]:
    """Terminal transition: compute the score and freeze the session."""
    player = session.current_player
    score = calculate_score(session.elapsed_seconds, session.total_rolls)
    session.phase = GAME_OVER
    session.is_game_over = True
    session.is_processing_turn = False
    session.awaiting_move = None
    session.pending_moves = []
    session.move_reason = None
    session.winner_index = player.player_index
    session.final_score = score
    logger.info("Player %d (%s) wins with %d points", player.player_index, player.display_name, score)
    return session, [game_won(
        player.player_index,
        session.elapsed_seconds,
        session.total_rolls,
        score,
        player.display_name,
    )]


def replay_from_actions(
    initial_session: GameSession,
    actions: list[Action],
    board: BoardDefinition,
) -> tuple[GameSession, list[GameEvent]]:
    """
    Replay a sequence of actions from an initial session.
    Useful for debugging, testing, and reconstructing a game from its log.
    Returns the final session and all events from every action.
    """
    session = initial_session
    all_events: list[GameEvent] = []
    for action in actions:
        session, events = apply_action(session, action, board)
        all_events.extend(events)
    return session, all_events
