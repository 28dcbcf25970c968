"""
Circus Board Game Engine
Core turn state machine without web framework, database, or UI
"""

DICE_FACES = 6

# Score for a win: BASE_SCORE - round(elapsed seconds) - rolls * ROLL_PENALTY, floored at 0.
BASE_SCORE = 2000
ROLL_PENALTY = 5
