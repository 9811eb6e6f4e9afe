#!/usr/bin/env python3
"""
tile_table.py - Shared tile alphabet for levelcodec.py, level_ops.py and level_preview.py.

The game runtime rebuilds tiles from the same characters, so keep TILES in
sync with the engine. Reverse maps are derived here and nowhere else.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Tuple


@dataclass(frozen=True)
class TileType:
    tid: int
    char: str
    name: str
    description: str
    color: str          # fill, "#rrggbb"
    border: str         # stroke, "#rrggbb"


TILES: Tuple[TileType, ...] = (
    TileType(0, ".", "Empty", "Walkable air space", "#f9fafb", "#e5e7eb"),
    TileType(1, "G", "Grass", "Standard ground platform", "#4ade80", "#22c55e"),
    TileType(2, "R", "Rock", "Solid stone platform", "#6b7280", "#4b5563"),
    TileType(3, "Y", "Yellow", "Special yellow platform", "#facc15", "#d9ab03"),
    TileType(4, "I", "Ice", "Slippery ice platform", "#38bdf8", "#0284c7"),
    TileType(5, "F", "Fire", "Dangerous fire platform", "#ef4444", "#dc2626"),
    TileType(6, "S", "Spikes", "Hazardous spikes", "#8b5cf6", "#7c3aed"),
    TileType(7, "W", "Water", "Water tiles", "#06b6d4", "#0891b2"),
)

EMPTY_TILE = 0
EMPTY_CHAR = "."
MIN_TILE = 0
MAX_TILE = len(TILES) - 1

TILE_CHARS: Mapping[int, str] = MappingProxyType({t.tid: t.char for t in TILES})
CHAR_TILES: Mapping[str, int] = MappingProxyType({t.char: t.tid for t in TILES})

# Unknown ids in a preview
FALLBACK_COLOR = "#808080"
FALLBACK_BORDER = "#000000"

# Gameplay knobs, in wire order.
PARAM_KEYS: Tuple[str, ...] = ("maxEnemies", "enemySpawnChance", "coinSpawnChance")

# What the game runtime substitutes for an absent knob. Display only.
RUNTIME_DEFAULTS: Mapping[str, float] = MappingProxyType({
    "maxEnemies": 5,
    "enemySpawnChance": 10,
    "coinSpawnChance": 15,
})


def is_tile_id(value) -> bool:
    """True for a plain int in MIN_TILE..MAX_TILE (bools excluded)."""
    return isinstance(value, int) and not isinstance(value, bool) and MIN_TILE <= value <= MAX_TILE


def tile_char(value) -> str:
    # JSON callers may hand us 3.0 for 3.
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if is_tile_id(value):
        return TILE_CHARS[value]
    return EMPTY_CHAR


def char_tile(ch: str) -> int:
    return CHAR_TILES.get(ch, EMPTY_TILE)


def hex_to_rgb(color: str) -> Tuple[int, int, int]:
    s = color.lstrip("#")
    return int(s[0:2], 16), int(s[2:4], 16), int(s[4:6], 16)


def effective_params(params: Mapping[str, float]) -> Dict[str, float]:
    out: Dict[str, float] = dict(RUNTIME_DEFAULTS)
    for key in PARAM_KEYS:
        if key in params:
            out[key] = params[key]
    return out


def tile_reference() -> str:
    lines = [f"{t.tid}: {t.char} = {t.name} - {t.description}" for t in TILES]
    return (
        "Tile Reference:\n"
        + "\n".join(lines)
        + "\n\nUsage Notes:\n"
        "- Tile types are represented by integers 0-7\n"
        "- Use these numbers when editing levels\n"
        "- Empty tiles (0) represent walkable air space\n"
        "- Platform tiles (1-3) are solid ground\n"
        "- Special tiles (4-7) have unique properties"
    )
