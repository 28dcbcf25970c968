"""
Tile effect resolution.
Effects are pure transforms of the landing index so the reducer can re-check
the finish line after applying one without re-deriving movement.
"""

from dataclasses import dataclass

from circus.engine.definitions import TileDefinition, TileKind


@dataclass(frozen=True)
class EffectResult:
    """Where the player ends up and whether their next turn is lost."""
    result_index: int
    skip_next_turn: bool = False


def resolve_tile_effect(tile: TileDefinition, landing_index: int) -> EffectResult:
    """
    Apply tile's effect to a player who landed on landing_index.

    Results are floored at 0 but deliberately not clamped to the finish index;
    the reducer clamps after movement so an overshoot still counts as a win.
    """
    kind = tile.kind
    if kind == TileKind.FORWARD:
        return EffectResult(max(0, landing_index + abs(tile.step_modifier)))
    if kind == TileKind.BACK:
        return EffectResult(max(0, landing_index - abs(tile.step_modifier)))
    if kind == TileKind.LOSE_TURN:
        return EffectResult(landing_index, skip_next_turn=True)
    if kind == TileKind.GO_TO:
        return EffectResult(max(0, tile.go_to_index))
    return EffectResult(landing_index)
