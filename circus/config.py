"""
Single place for default game configuration.
Every value can be overridden with an environment variable of the same name.
"""

import logging
import os
from pathlib import Path

# Board id from circus/data/boards/<id>.json. This is the default for new games.
DEFAULT_BOARD_ID = os.environ.get("DEFAULT_BOARD_ID", "circus")

# How many board steps a dice face of 1 is worth.
STEPS_PER_FACE = int(os.environ.get("STEPS_PER_FACE", "1"))

# Seconds an AI player "thinks" before rolling.
AI_ROLL_DELAY = float(os.environ.get("AI_ROLL_DELAY", "0.5"))

# Directory for the JSON leaderboard store (console demo / scripts).
LEADERBOARD_DIR = Path(os.environ.get("LEADERBOARD_DIR", Path.home() / ".circus_board"))

# API database. SQLite next to the package unless DATABASE_URL is set.
DB_PATH = Path(__file__).parent / "api" / "circus.db"
DATABASE_URL = os.environ.get("DATABASE_URL", f"sqlite:///{DB_PATH}")

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Set up root logging for the demo, scripts and API."""
    logging.basicConfig(level=(level or LOG_LEVEL).upper(), format=LOG_FORMAT)
