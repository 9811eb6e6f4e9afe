#!/usr/bin/env python3
"""
level_ops.py - Level editing operations shared by level_server.py and levelc.py.

Every operation takes plain values (token, row/col, tile lists), decodes,
validates, mutates a copy in memory and re-encodes. Name and description
ride alongside the token; they are not part of it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence
from urllib.parse import quote

from levelcodec import decode, encode, present_params
from tile_table import MAX_TILE, MIN_TILE, PARAM_KEYS, effective_params, is_tile_id

DEFAULT_PLAYER_URL = "http://localhost:3001"


class LevelEditError(ValueError):
    """Request cannot be applied to the level (bounds, tile range, shape)."""


@dataclass
class Level:
    tiles: List[List[int]] = field(default_factory=list)
    name: Optional[str] = None
    description: Optional[str] = None
    params: Dict[str, float] = field(default_factory=dict)
    # Width of a level with no rows ("5x0:"); ignored once tiles has a row.
    empty_width: int = 0

    @property
    def width(self) -> int:
        return len(self.tiles[0]) if self.tiles else self.empty_width

    @property
    def height(self) -> int:
        return len(self.tiles)

    @property
    def encoded_level(self) -> str:
        return encode(self.tiles, self.params, width=self.empty_width)

    def to_dict(self) -> dict:
        out = {
            "tiles": [list(row) for row in self.tiles],
            "width": self.width,
            "height": self.height,
            "name": self.name,
            "description": self.description,
            "encoded_level": self.encoded_level,
        }
        for key in PARAM_KEYS:
            out[key] = self.params.get(key)
        return out


# ----------------------------
# Helpers
# ----------------------------


def player_base_url() -> str:
    return os.environ.get("VIBE_TIDE_PLAYER_URL", DEFAULT_PLAYER_URL).rstrip("/")


def play_url(token: str, base_url: Optional[str] = None) -> str:
    base = base_url if base_url is not None else player_base_url()
    return f"{base}?level={quote(token, safe='')}"


def merge_params(base: Dict[str, float], **updates: Optional[float]) -> Dict[str, float]:
    """Overlay the non-None updates on base; keys are wire names."""
    merged = dict(base)
    for key, value in updates.items():
        if key not in PARAM_KEYS:
            raise LevelEditError(f"Unknown gameplay parameter: {key}")
        if value is not None:
            merged[key] = value
    return present_params(merged)


def _require_token(encoded_level: str) -> str:
    if not encoded_level:
        raise LevelEditError("encoded_level is required.")
    return encoded_level


def _check_tile(value) -> int:
    if not is_tile_id(value):
        raise LevelEditError(f"Invalid tile type {value}. Valid types are {MIN_TILE}-{MAX_TILE}.")
    return value


def validate_tiles(tiles: Sequence[Sequence[int]]) -> List[List[int]]:
    """Copy of tiles, or LevelEditError naming the first bad row/cell."""
    if not tiles:
        raise LevelEditError("Level must have at least one row of tiles.")
    width = len(tiles[0])
    out: List[List[int]] = []
    for y, row in enumerate(tiles):
        if len(row) != width:
            raise LevelEditError(f"Row {y} has {len(row)} tiles, expected {width}.")
        for x, tile in enumerate(row):
            if not is_tile_id(tile):
                raise LevelEditError(
                    f"Invalid tile type {tile} at row {y}, col {x}. Valid types are {MIN_TILE}-{MAX_TILE}."
                )
        out.append(list(row))
    return out


# ----------------------------
# Operations
# ----------------------------


def decode_level(encoded_level: str) -> Level:
    decoded = decode(_require_token(encoded_level))
    return Level(tiles=decoded.tiles, params=decoded.params, empty_width=decoded.width)


def edit_tile(encoded_level: str, row: int, col: int, new_tile_type: int) -> Level:
    level = decode_level(encoded_level)
    if not level.tiles:
        raise LevelEditError("Invalid tiles array after decoding.")
    if row < 0 or row >= level.height:
        raise LevelEditError(f"Invalid row {row}. Level has {level.height} rows (0-{level.height - 1}).")
    if col < 0 or col >= level.width:
        raise LevelEditError(f"Invalid column {col}. Level has {level.width} columns (0-{level.width - 1}).")
    level.tiles[row][col] = _check_tile(new_tile_type)
    return level


def edit_row(encoded_level: str, row: int, new_row_tiles: Sequence[int]) -> Level:
    level = decode_level(encoded_level)
    if not level.tiles:
        raise LevelEditError("Invalid tiles array after decoding.")
    if row < 0 or row >= level.height:
        raise LevelEditError(f"Invalid row {row}. Level has {level.height} rows (0-{level.height - 1}).")
    if len(new_row_tiles) != level.width:
        raise LevelEditError(
            f"Row length mismatch. Expected {level.width} tiles, got {len(new_row_tiles)}."
        )
    level.tiles[row] = [_check_tile(t) for t in new_row_tiles]
    return level


def replace_level(
    new_tiles: Sequence[Sequence[int]],
    name: Optional[str] = None,
    description: Optional[str] = None,
    max_enemies: Optional[float] = None,
    enemy_spawn_chance: Optional[float] = None,
    coin_spawn_chance: Optional[float] = None,
) -> Level:
    tiles = validate_tiles(new_tiles)
    params = merge_params(
        {},
        maxEnemies=max_enemies,
        enemySpawnChance=enemy_spawn_chance,
        coinSpawnChance=coin_spawn_chance,
    )
    return Level(tiles=tiles, name=name, description=description, params=params)


def edit_metadata(
    encoded_level: str,
    name: Optional[str] = None,
    description: Optional[str] = None,
    max_enemies: Optional[float] = None,
    enemy_spawn_chance: Optional[float] = None,
    coin_spawn_chance: Optional[float] = None,
) -> Level:
    level = decode_level(encoded_level)
    params = merge_params(
        level.params,
        maxEnemies=max_enemies,
        enemySpawnChance=enemy_spawn_chance,
        coinSpawnChance=coin_spawn_chance,
    )
    return replace(level, name=name, description=description, params=params)


def create_level(
    level_name: str,
    description: str,
    tiles: Sequence[Sequence[int]],
    width: Optional[int] = None,
    height: Optional[int] = None,
    params: Optional[Dict[str, float]] = None,
) -> Level:
    """New level from an explicit tile layout.

    width/height, when given, must agree with the layout.
    """
    checked = validate_tiles(tiles)
    level = Level(tiles=checked, name=level_name, description=description, params=present_params(params))
    if width is not None and width != level.width:
        raise LevelEditError(f"width={width} does not match layout width {level.width}.")
    if height is not None and height != level.height:
        raise LevelEditError(f"height={height} does not match layout height {level.height}.")
    return level


def describe_params(level: Level) -> str:
    eff = effective_params(level.params)
    parts = []
    for key in PARAM_KEYS:
        suffix = "" if key in level.params else " (default)"
        parts.append(f"{key}={eff[key]}{suffix}")
    return ", ".join(parts)
