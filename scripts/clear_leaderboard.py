#!/usr/bin/env python3
"""
Show or clear the leaderboard.
Usage: python scripts/clear_leaderboard.py [--store sql|json] [--yes]
Without --yes the current leaderboard is printed and nothing is deleted.
"""
import argparse
import os
import sys

# Allow running from repo root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from circus.api.database import SessionLocal, init_db
from circus.api.leaderboard_store import SqlLeaderboardStore
from circus.config import LEADERBOARD_DIR
from circus.engine.leaderboard import JsonFileLeaderboardStore


def main() -> None:
    parser = argparse.ArgumentParser(description="Show or clear the leaderboard")
    parser.add_argument("--store", choices=["sql", "json"], default="sql",
                        help="sql = API database (DATABASE_URL), json = console demo file")
    parser.add_argument("--yes", action="store_true", help="Actually delete every entry")
    args = parser.parse_args()

    db = None
    if args.store == "sql":
        init_db()
        db = SessionLocal()
        store = SqlLeaderboardStore(db)
    else:
        store = JsonFileLeaderboardStore(LEADERBOARD_DIR)

    try:
        leaderboard = store.load()
        print(leaderboard.format_text())
        if not args.yes:
            return
        store.clear()
        print(f"Cleared {len(leaderboard)} entries.")
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        if db is not None:
            db.close()


if __name__ == "__main__":
    main()
