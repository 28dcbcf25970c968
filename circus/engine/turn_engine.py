"""
TurnEngine: owns one game session and drives the reducer.

The reducer is pure; this class is where collaborators live:
- a mover that animates one step and returns when the token has arrived,
- a dice roller that produces a face value,
- an optional listener for presentation hooks,
- the leaderboard store that receives the winner's score.

Movement is a request/acknowledge protocol. Each step is awaited before the
next one is requested, so the engine never assumes any animation timing.
"""

import asyncio
import logging
import random
from typing import Any, Callable, Protocol

from circus.config import AI_ROLL_DELAY
from circus.engine.actions import Action, request_roll, submit_dice, acknowledge_move, tick
from circus.engine.definitions import BoardDefinition
from circus.engine.events import (
    GameEvent,
    game_started,
    GAME_WON,
    MOVE_REQUESTED,
    ROLL_STARTED,
    TILE_EFFECT_APPLIED,
    TURN_CHANGED,
    TURN_SKIPPED,
)
from circus.engine.leaderboard import LeaderboardStore
from circus.engine.reducer import apply_action
from circus.engine.state import GameSession, WAITING_FOR_ROLL
from circus.engine.utils import initialize_session, roll_die

logger = logging.getLogger(__name__)


class Mover(Protocol):
    async def move_player(self, player_index: int, tile_index: int) -> None:
        """Animate player's token to tile_index. Returning is the acknowledgement."""


class DiceRoller(Protocol):
    async def roll(self) -> int | str:
        """Throw the die and return the face it landed on."""


class InstantMover:
    """Acknowledges every step immediately (console games, tests)."""

    async def move_player(self, player_index: int, tile_index: int) -> None:
        return None


class RandomDiceRoller:
    """Fair six-sided die."""

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng

    async def roll(self) -> int:
        return roll_die(self._rng)


# Optional listener hooks, keyed by the event type that triggers them.
# Every hook receives the GameEvent; on_event receives every event.
LISTENER_HOOKS = {
    MOVE_REQUESTED: "on_move_requested",
    TURN_CHANGED: "on_turn_changed",
    TURN_SKIPPED: "on_turn_skipped",
    TILE_EFFECT_APPLIED: "on_tile_effect",
    GAME_WON: "on_game_won",
}


def resolve_listener_hooks(listener: Any) -> tuple[Callable | None, dict[str, Callable]]:
    """Look up which hooks a listener implements. Done once, at engine construction."""
    if listener is None:
        return None, {}
    on_event = getattr(listener, "on_event", None)
    if not callable(on_event):
        on_event = None
    hooks = {}
    for event_type, name in LISTENER_HOOKS.items():
        hook = getattr(listener, name, None)
        if callable(hook):
            hooks[event_type] = hook
    return on_event, hooks


class TurnEngine:
    """
    Orchestrates one game at a time on a board.

    Usage:
        engine = TurnEngine(board, ["Alice", {"display_name": "Bot", "is_ai_controlled": True}], store)
        engine.start()
        await engine.play_turn()  # Alice's turn, then the bot's
    """

    def __init__(
        self,
        board: BoardDefinition,
        players: list[Any],
        leaderboard_store: LeaderboardStore,
        mover: Mover | None = None,
        dice_roller: DiceRoller | None = None,
        listener: Any = None,
        steps_per_face: int | None = None,
        ai_roll_delay: float | None = None,
    ):
        self.board = board
        self.players = list(players)
        self.leaderboard_store = leaderboard_store
        self.mover = mover or InstantMover()
        self.dice_roller = dice_roller or RandomDiceRoller()
        self.steps_per_face = steps_per_face
        self.ai_roll_delay = AI_ROLL_DELAY if ai_roll_delay is None else ai_roll_delay
        self._on_event, self._hooks = resolve_listener_hooks(listener)
        self.session: GameSession | None = None

    # ===== Session lifecycle =====

    def start(self, first_player_index: int = 0) -> list[GameEvent]:
        """
        Begin a new game, discarding any previous session.
        Raises ValueError if the board or player configuration cannot be played.
        """
        self.session = initialize_session(
            self.board,
            self.players,
            steps_per_face=self.steps_per_face,
            first_player_index=first_player_index,
        )
        events = [game_started(
            self.board.id,
            [p.display_name for p in self.session.players],
            self.session.current_player_index,
        )]
        logger.info("New game on %s with %d players", self.board.id, self.session.player_count)
        self._notify(events)
        return events

    def resume(self, session: GameSession) -> None:
        """Continue a stored session."""
        if not session.players:
            raise ValueError("Cannot resume a session without players")
        if session.board_id and session.board_id != self.board.id:
            raise ValueError(f"Session was played on board {session.board_id!r}, not {self.board.id!r}")
        self.session = session

    def _require_session(self) -> GameSession:
        if self.session is None:
            raise ValueError("No game in progress. Call start() first.")
        return self.session

    # ===== Synchronous dispatch =====

    def dispatch(self, action: Action) -> list[GameEvent]:
        """Apply one action, record a win on the leaderboard, notify the listener."""
        session = self._require_session()
        self.session, events = apply_action(session, action, self.board)
        for event in events:
            if event.type == GAME_WON:
                self._record_win(event)
        self._notify(events)
        return events

    def request_roll(self) -> list[GameEvent]:
        return self.dispatch(request_roll())

    def submit_dice(self, face: int | str) -> list[GameEvent]:
        return self.dispatch(submit_dice(face))

    def acknowledge_move(self, tile_index: int) -> list[GameEvent]:
        return self.dispatch(acknowledge_move(tile_index))

    def tick(self, seconds: float) -> list[GameEvent]:
        """Advance the game clock; call from the host's frame or timer loop."""
        return self.dispatch(tick(seconds))

    # ===== Asynchronous driving =====

    async def play_turn(self) -> list[GameEvent]:
        """
        Play the current player's turn to completion, then any AI turns that follow.
        Returns [] if a turn is already in flight or the game is over.
        """
        events = await self._play_current_turn()
        if events:
            events.extend(await self.run_ai_turns())
        return events

    async def run_ai_turns(self) -> list[GameEvent]:
        """Let AI-controlled players roll until a human is up or the game ends."""
        events: list[GameEvent] = []
        while True:
            session = self._require_session()
            if session.is_game_over or session.phase != WAITING_FOR_ROLL:
                break
            if not session.current_player.is_ai_controlled:
                break
            if self.ai_roll_delay > 0:
                await asyncio.sleep(self.ai_roll_delay)
            turn_events = await self._play_current_turn()
            if not turn_events:
                break
            events.extend(turn_events)
        return events

    async def _play_current_turn(self) -> list[GameEvent]:
        events = self.dispatch(request_roll())
        # Ignored (turn guard / game over) or the player lost this turn
        if not any(e.type == ROLL_STARTED for e in events):
            return events

        try:
            face = await self.dice_roller.roll()
        except Exception:
            # A broken roller forfeits the turn like an unreadable face
            logger.exception("Dice roller failed for player %d", self.session.current_player_index)
            face = None
        events.extend(self.dispatch(submit_dice(face)))
        events.extend(await self._drive_moves())
        return events

    async def _drive_moves(self) -> list[GameEvent]:
        """Await the mover for each requested step, acknowledging in order."""
        events: list[GameEvent] = []
        while self._require_session().awaiting_move is not None:
            player_index = self.session.current_player_index
            tile_index = self.session.awaiting_move
            await self.mover.move_player(player_index, tile_index)
            events.extend(self.dispatch(acknowledge_move(tile_index)))
        return events

    # ===== Collaborators =====

    def _record_win(self, event: GameEvent) -> None:
        name = event.payload["winner_name"]
        score = event.payload["score"]
        try:
            self.leaderboard_store.add_entry(name, score)
            logger.info("Recorded %s - %d pts on the leaderboard", name, score)
        except Exception:
            # The game result stands even if the score could not be stored
            logger.exception("Could not save leaderboard entry for %s", name)

    def _notify(self, events: list[GameEvent]) -> None:
        for event in events:
            if self._on_event is not None:
                self._on_event(event)
            hook = self._hooks.get(event.type)
            if hook is not None:
                hook(event)
