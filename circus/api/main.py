"""
FastAPI backend for Circus Board.
Exposes the turn state machine to a remote presentation layer: the client asks to
roll, reports the dice face, and acknowledges each movement step it animates.
"""

import json
import logging
import threading
import traceback
import uuid
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from .database import get_db, init_db
from .leaderboard_store import SqlLeaderboardStore
from .models import Game as GameModel

from circus.config import DEFAULT_BOARD_ID, configure_logging
from circus.engine.actions import Action, request_roll, submit_dice, acknowledge_move, tick
from circus.engine.definitions import BoardDefinition, board_from_dict, list_boards, load_board
from circus.engine.queries import get_session_summary, validate_action
from circus.engine.state import GameSession
from circus.engine.turn_engine import TurnEngine

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Circus Board API",
    description="Backend API for Circus Board - a turn-based dice race",
    version="1.0.0",
)

# CORS configuration for frontend
CORS_ORIGINS = ["http://localhost:5173", "http://localhost:3000"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)


@app.middleware("http")
async def log_requests(request, call_next):
    """Log method and path so 500s can be traced to the failing endpoint."""
    method = getattr(request, "method", "?")
    url = getattr(request, "url", None)
    path = url.path if url else "?"
    try:
        response = await call_next(request)
        if response.status_code >= 500:
            logger.error("[500] %s %s", method, path)
        return response
    except Exception:
        logger.error("[500] %s %s (exception)", method, path)
        raise


@app.exception_handler(Exception)
async def unhandled_exception_handler(request, exc):
    """Return 500 with CORS headers so the frontend can read the error."""
    logger.exception("Unhandled error: %s", exc)
    origin = request.headers.get("origin")
    allow_origin = origin if origin in CORS_ORIGINS else CORS_ORIGINS[0]
    return JSONResponse(
        status_code=500,
        content={"detail": str(exc), "traceback": traceback.format_exc()},
        headers={
            "Access-Control-Allow-Origin": allow_origin,
            "Access-Control-Allow-Credentials": "true",
        },
    )


# In-memory cache of loaded sessions (also persisted in DB)
games: dict[str, GameSession] = {}

# Per-game boards (from the snapshot stored with the game); key = game_id
game_boards: dict[str, BoardDefinition] = {}

# One action at a time per game: endpoints run in the threadpool, and two requests
# reading the same row would both see the turn guard clear
_game_locks: dict[str, threading.Lock] = {}
_game_locks_guard = threading.Lock()


def game_lock(game_id: str) -> threading.Lock:
    with _game_locks_guard:
        lock = _game_locks.get(game_id)
        if lock is None:
            lock = _game_locks[game_id] = threading.Lock()
        return lock


# ===== Pydantic Models =====

class PlayerSpec(BaseModel):
    display_name: str = ""
    is_ai_controlled: bool = False


class CreateGameRequest(BaseModel):
    """Board id from GET /boards. Omitted = default from circus.config.DEFAULT_BOARD_ID."""
    board_id: str | None = None
    players: list[PlayerSpec] = Field(default_factory=list)
    steps_per_face: int | None = None
    first_player_index: int = 0


class DiceRequest(BaseModel):
    face: int | str | None = None


class MoveCompleteRequest(BaseModel):
    tile_index: int


class TickRequest(BaseModel):
    seconds: float


# ===== Helper Functions =====

def get_game_board(game_id: str, db: Session) -> BoardDefinition:
    """Return the board snapshot this game was created with."""
    if game_id in game_boards:
        return game_boards[game_id]
    row = db.query(GameModel).filter(GameModel.id == game_id).first()
    if not row:
        raise HTTPException(status_code=404, detail=f"Game {game_id} not found")
    try:
        board = board_from_dict(json.loads(row.board))
    except (TypeError, ValueError):
        logger.warning("Game %s has an unreadable board snapshot; using board %s", game_id, row.board_id)
        board = load_board(row.board_id)
    game_boards[game_id] = board
    return board


def get_game(game_id: str, db: Session) -> GameSession:
    """Get session from DB (always fresh); raise 404 if not found."""
    row = db.query(GameModel).filter(GameModel.id == game_id).first()
    if not row:
        raise HTTPException(status_code=404, detail=f"Game {game_id} not found")
    try:
        raw = json.loads(row.game_state)
        if not isinstance(raw, dict):
            raise ValueError("game_state is not an object")
        session = GameSession.from_dict(raw)
    except (TypeError, ValueError):
        # Corrupt state in DB; treat as not found so client can create a fresh game
        logger.warning("Game %s has unreadable state", game_id)
        raise HTTPException(status_code=404, detail=f"Game {game_id} not found")
    games[game_id] = session
    return session


def save_game(game_id: str, session: GameSession, db: Session) -> None:
    """Persist session to DB and cache."""
    games[game_id] = session
    row = db.query(GameModel).filter(GameModel.id == game_id).first()
    if row:
        row.game_state = json.dumps(session.to_dict())
        row.status = "finished" if session.is_game_over else "active"
        db.commit()


def state_for_response(session: GameSession, board: BoardDefinition) -> dict[str, Any]:
    """Session dict plus a computed summary (standings, available actions) for the UI."""
    out = session.to_dict()
    out["summary"] = get_session_summary(session, board)
    return out


def _apply(game_id: str, action: Action, db: Session) -> dict[str, Any]:
    """Validate and apply one action through a TurnEngine bound to the SQL leaderboard."""
    with game_lock(game_id):
        return _apply_locked(game_id, action, db)


def _apply_locked(game_id: str, action: Action, db: Session) -> dict[str, Any]:
    # Start from committed state so a request that waited on the lock sees the previous write
    db.expire_all()
    session = get_game(game_id, db)
    board = get_game_board(game_id, db)
    validation = validate_action(session, action)
    if not validation.valid:
        raise HTTPException(status_code=400, detail=validation.error)
    engine = TurnEngine(board, session.players, SqlLeaderboardStore(db))
    engine.resume(session)
    try:
        events = engine.dispatch(action)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    save_game(game_id, engine.session, db)
    return {
        "state": state_for_response(engine.session, board),
        "events": [e.to_dict() for e in events],
    }


@app.on_event("startup")
def on_startup():
    configure_logging()
    init_db()


# ===== API Endpoints =====

@app.get("/")
def root():
    return {"message": "Circus Board API", "version": "1.0.0"}


@app.get("/boards")
def get_boards():
    """List available boards (id, display_name, tile_count). Use board_id in POST /games."""
    return {"boards": list_boards()}


@app.post("/games")
def create_game(request: CreateGameRequest, db: Session = Depends(get_db)):
    """Create a new game. Every player starts on tile 0; first_player_index rolls first."""
    board_id = request.board_id or DEFAULT_BOARD_ID
    try:
        board = load_board(board_id)
    except FileNotFoundError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Board {board_id} is invalid: {e}")

    engine = TurnEngine(
        board,
        [p.model_dump() for p in request.players],
        SqlLeaderboardStore(db),
        steps_per_face=request.steps_per_face,
    )
    try:
        events = engine.start(first_player_index=request.first_player_index)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    game_id = str(uuid.uuid4())
    row = GameModel(
        id=game_id,
        board_id=board.id,
        status="active",
        game_state=json.dumps(engine.session.to_dict()),
        board=json.dumps(board.to_dict()),
    )
    db.add(row)
    db.commit()
    games[game_id] = engine.session
    game_boards[game_id] = board
    return {
        "game_id": game_id,
        "state": state_for_response(engine.session, board),
        "events": [e.to_dict() for e in events],
    }


@app.get("/games/{game_id}")
def get_game_state(game_id: str, db: Session = Depends(get_db)):
    """Get current session and the board it is played on."""
    session = get_game(game_id, db)
    board = get_game_board(game_id, db)
    return {
        "game_id": game_id,
        "state": state_for_response(session, board),
        "board": board.to_dict(),
    }


@app.delete("/games/{game_id}")
def delete_game(game_id: str, db: Session = Depends(get_db)):
    """Delete a game from DB and cache."""
    row = db.query(GameModel).filter(GameModel.id == game_id).first()
    if not row:
        raise HTTPException(status_code=404, detail="Game not found")
    db.delete(row)
    db.commit()
    games.pop(game_id, None)
    game_boards.pop(game_id, None)
    with _game_locks_guard:
        _game_locks.pop(game_id, None)
    return {"message": f"Game {game_id} deleted"}


@app.post("/games/{game_id}/roll")
def do_roll(game_id: str, db: Session = Depends(get_db)):
    """Request a roll for the current player. Ignored while a turn is in flight or after game over."""
    return _apply(game_id, request_roll(), db)


@app.post("/games/{game_id}/dice")
def do_dice(game_id: str, request: DiceRequest, db: Session = Depends(get_db)):
    """Report the face the client's die landed on. A bad face forfeits the turn."""
    return _apply(game_id, submit_dice(request.face), db)


@app.post("/games/{game_id}/move-complete")
def do_move_complete(game_id: str, request: MoveCompleteRequest, db: Session = Depends(get_db)):
    """Acknowledge that the token reached the requested tile."""
    return _apply(game_id, acknowledge_move(request.tile_index), db)


@app.post("/games/{game_id}/tick")
def do_tick(game_id: str, request: TickRequest, db: Session = Depends(get_db)):
    """Advance the game clock by the seconds the client measured."""
    return _apply(game_id, tick(request.seconds), db)


# ----- Leaderboard -----

@app.get("/leaderboard")
def get_leaderboard(db: Session = Depends(get_db)):
    """Best score per player, highest first."""
    leaderboard = SqlLeaderboardStore(db).load()
    return {
        "entries": [e.to_dict() for e in leaderboard.entries],
        "text": leaderboard.format_text(),
    }


@app.delete("/leaderboard")
def clear_leaderboard(db: Session = Depends(get_db)):
    try:
        SqlLeaderboardStore(db).clear()
    except OSError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"message": "Leaderboard cleared"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
