"""
Circus Board - turn-based dice race engine with a persisted leaderboard.
"""
