"""
VibeTide MCP Server

Exposes the level operations in level_ops.py as MCP tools. Levels travel
between calls as encoded tokens; the server keeps no state of its own.
"""

import argparse
import io
import logging
import os
from typing import List, Optional

from mcp.server.fastmcp import FastMCP, Image

from level_ops import (
    Level,
    LevelEditError,
    create_level as create_level_op,
    decode_level,
    describe_params,
    edit_metadata,
    edit_row,
    edit_tile,
    play_url,
    replace_level,
)
from level_preview import render_png, render_svg
from levelcodec import LevelDecodeError
from tile_table import tile_reference

# Suppress verbose MCP logging
logging.getLogger("mcp").setLevel(logging.ERROR)

logger = logging.getLogger("vibe_tide")

DEFAULT_PORT = 3000

mcp = FastMCP("Vibe Tide MCP App")


def _result(level: Level, message: str) -> dict:
    token = level.encoded_level
    out = level.to_dict()
    out["message"] = f"{message}\nEncoded: {token}"
    out["play_url"] = play_url(token)
    return out


def _error(prefix: str, e: Exception) -> dict:
    logger.warning("%s: %s", prefix, e)
    return {"error": f"Error: {e}" if not prefix else f"Error {prefix}: {e}"}


# =============================================================================
# Tools
# =============================================================================

@mcp.tool()
def decode_level_from_url(encoded_level: str) -> dict:
    """
    Decode an encoded level string to tiles and metadata.

    Args:
        encoded_level: The level token (the ?level= value of a play URL)

    Returns:
        Tiles, size, gameplay parameters and the normalized token
    """
    try:
        level = decode_level(encoded_level)
    except LevelEditError as e:
        return _error("", e)
    except LevelDecodeError as e:
        return _error("decoding level", e)
    return _result(level, f"Decoded level: {level.width}x{level.height} ({describe_params(level)})")


@mcp.tool()
def edit_level_tile(encoded_level: str, row: int, col: int, new_tile_type: int) -> dict:
    """
    Edit a single tile in a Vibe Tide level.

    Args:
        encoded_level: The level token to edit
        row: Row index, 0 at the top
        col: Column index, 0 at the left
        new_tile_type: Tile id 0-7 (see get_tile_reference)
    """
    try:
        level = edit_tile(encoded_level, row, col, new_tile_type)
    except LevelEditError as e:
        return _error("", e)
    except LevelDecodeError as e:
        return _error("processing level", e)
    return _result(level, f"Tile updated at row {row}, col {col} to type {new_tile_type}.")


@mcp.tool()
def edit_level_row(encoded_level: str, row: int, new_row_tiles: List[int]) -> dict:
    """
    Replace a full row in a Vibe Tide level.

    Args:
        encoded_level: The level token to edit
        row: Row index, 0 at the top
        new_row_tiles: Exactly `width` tile ids, each 0-7
    """
    try:
        level = edit_row(encoded_level, row, new_row_tiles)
    except LevelEditError as e:
        return _error("", e)
    except LevelDecodeError as e:
        return _error("processing level", e)
    return _result(level, f"Row {row} updated.")


@mcp.tool()
def edit_entire_level(
    new_tiles: List[List[int]],
    new_name: Optional[str] = None,
    new_description: Optional[str] = None,
    max_enemies: Optional[float] = None,
    enemy_spawn_chance: Optional[float] = None,
    coin_spawn_chance: Optional[float] = None,
) -> dict:
    """
    Replace the full tile layout and optional metadata.
    """
    try:
        level = replace_level(
            new_tiles,
            name=new_name,
            description=new_description,
            max_enemies=max_enemies,
            enemy_spawn_chance=enemy_spawn_chance,
            coin_spawn_chance=coin_spawn_chance,
        )
    except LevelEditError as e:
        return _error("", e)
    return _result(level, f"Level updated ({level.width}x{level.height}).")


@mcp.tool()
def edit_level_metadata(
    encoded_level: str,
    new_name: Optional[str] = None,
    new_description: Optional[str] = None,
    max_enemies: Optional[float] = None,
    enemy_spawn_chance: Optional[float] = None,
    coin_spawn_chance: Optional[float] = None,
) -> dict:
    """
    Update name/description and gameplay parameters. Parameters left out keep
    the value already stored in the token.
    """
    try:
        level = edit_metadata(
            encoded_level,
            name=new_name,
            description=new_description,
            max_enemies=max_enemies,
            enemy_spawn_chance=enemy_spawn_chance,
            coin_spawn_chance=coin_spawn_chance,
        )
    except LevelEditError as e:
        return _error("", e)
    except LevelDecodeError as e:
        return _error("processing level", e)
    return _result(level, "Metadata updated.")


@mcp.tool()
def create_level(
    level_name: str,
    description: str,
    tiles: List[List[int]],
    width: Optional[int] = None,
    height: Optional[int] = None,
    maxEnemies: Optional[float] = None,
    enemySpawnChance: Optional[float] = None,
    coinSpawnChance: Optional[float] = None,
) -> dict:
    """
    Create a complete Vibe Tide level from an explicit tile layout.

    Design rules: left-to-right platformer, leave jump space above the start,
    max 3-4 tile gaps, platforms in the bottom half, top half mostly empty.
    """
    params = {
        "maxEnemies": maxEnemies,
        "enemySpawnChance": enemySpawnChance,
        "coinSpawnChance": coinSpawnChance,
    }
    try:
        level = create_level_op(level_name, description, tiles, width=width, height=height, params=params)
    except LevelEditError as e:
        return _error("", e)
    return _result(level, f"Created level '{level.name or 'Untitled'}' ({level.width}x{level.height}).")


@mcp.tool()
def get_tile_reference() -> str:
    """
    Get the tile type legend and usage notes for creating levels.
    """
    return tile_reference()


@mcp.tool()
def render_level_preview(encoded_level: str, format: str = "svg", scale: int = 16):
    """
    Render a level token as an SVG (default) or PNG preview.

    Args:
        encoded_level: The level token to render
        format: "svg" for SVG markup, "png" for an image
        scale: Pixels per tile for PNG (1-32)
    """
    if format not in ("svg", "png"):
        return {"error": f"Error: Unknown preview format {format!r}. Use 'svg' or 'png'."}
    try:
        level = decode_level(encoded_level)
    except (LevelEditError, LevelDecodeError) as e:
        return _error("rendering level", e)
    if format == "svg":
        return render_svg(level.tiles)
    buf = io.BytesIO()
    render_png(level.tiles, max(1, min(32, scale))).save(buf, format="PNG")
    return Image(data=buf.getvalue(), format="png")


# =============================================================================
# Entry Point
# =============================================================================

def main():
    """Run the MCP server."""
    ap = argparse.ArgumentParser()
    ap.add_argument("--stdio", action="store_true", help="Serve over stdio instead of streamable HTTP")
    ap.add_argument("--port", type=int, default=int(os.environ.get("PORT", DEFAULT_PORT)), help="HTTP port")
    ap.add_argument("--host", default="0.0.0.0", help="HTTP bind address")
    args = ap.parse_args()

    logging.basicConfig(level=logging.INFO, format="[Vibe Tide] %(levelname)s %(message)s")

    if args.stdio:
        mcp.run(transport="stdio")
        return

    mcp.settings.host = args.host
    mcp.settings.port = args.port
    logger.info("MCP server listening on http://localhost:%d/mcp", args.port)
    mcp.run(transport="streamable-http")


if __name__ == "__main__":
    main()
