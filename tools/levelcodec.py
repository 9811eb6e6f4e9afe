#!/usr/bin/env python3
"""
levelcodec.py - Tile grid + gameplay params <-> URL-safe level token.

Token layout (before the outer base64url):
  "{w}x{h}:{tiles}"                       no params
  "{w}x{h}:{tiles}|{base64url(json)}"     any param present

  tiles   Row-major tile chars from tile_table.TILES. Runs of 3+ '.' are
          written as '.' + decimal count ("G....R" -> "G.4R"). Nothing
          else is run-length compressed.
  json    Compact object with only the finite params, in the order
          maxEnemies, enemySpawnChance, coinSpawnChance. Numbers are
          written the way the game runtime prints them (5, not 5.0).

base64url is RFC 4648 section 5 with padding stripped.

The game runtime decodes tokens independently, so decode stays lenient:
unknown chars and short bodies become Empty, a broken param block is
dropped. Only a missing ':' or bad "{w}x{h}" raises LevelDecodeError.
"""

from __future__ import annotations

import base64
import binascii
import json
import math
import re
from decimal import Decimal
from typing import Dict, List, Mapping, NamedTuple, Optional, Sequence

from tile_table import EMPTY_CHAR, PARAM_KEYS, char_tile, tile_char


class LevelDecodeError(ValueError):
    """Token does not carry a usable "{w}x{h}:" shape."""

    def __init__(self, message: str, payload: str = ""):
        super().__init__(message)
        self.message = message
        self.payload = payload


class DecodedLevel(NamedTuple):
    tiles: List[List[int]]
    width: int
    height: int
    params: Dict[str, float]


PARAM_SEP = "|"
SHAPE_SEP = ":"

EMPTY_RUN = re.compile(r"\.{3,}")
EMPTY_RUN_COUNT = re.compile(r"\.([0-9]+)")
DIMENSIONS = re.compile(r"([0-9]+)x([0-9]+)")
B64URL_JUNK = re.compile(r"[^A-Za-z0-9_-]")

# Longer counts are always past any grid that fits in memory.
MAX_RUN_DIGITS = 18


# ----------------------------
# base64url
# ----------------------------


def b64url_encode(text: str) -> str:
    raw = base64.urlsafe_b64encode(text.encode("utf-8"))
    return raw.decode("ascii").rstrip("=")


def b64url_decode(token: str) -> str:
    # Same leniency as the runtime's decoder: skip foreign chars, ignore a
    # dangling sextet, replace invalid UTF-8.
    s = B64URL_JUNK.sub("", token)
    if len(s) % 4 == 1:
        s = s[:-1]
    s += "=" * (-len(s) % 4)
    return base64.urlsafe_b64decode(s).decode("utf-8", errors="replace")


# ----------------------------
# Empty-run compression
# ----------------------------


def rle_encode(tiles: str) -> str:
    return EMPTY_RUN.sub(lambda m: f"{EMPTY_CHAR}{len(m.group(0))}", tiles)


def rle_decode(data: str, limit: Optional[int] = None) -> str:
    """Expand '.N' runs. With limit, no single run grows past limit chars;
    anything past width*height is never read, so the result is unchanged."""

    def expand(m: re.Match) -> str:
        # Clamp on the digit string; int() refuses very long digit runs.
        digits = m.group(1).lstrip("0") or "0"
        if limit is not None and len(digits) > MAX_RUN_DIGITS:
            return EMPTY_CHAR * limit
        count = int(digits)
        if limit is not None:
            count = min(count, limit)
        return EMPTY_CHAR * count

    return EMPTY_RUN_COUNT.sub(expand, data)


# ----------------------------
# Params block
# ----------------------------


def _is_finite_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def present_params(params: Optional[Mapping[str, object]]) -> Dict[str, float]:
    out: Dict[str, float] = {}
    if not params:
        return out
    for key in PARAM_KEYS:
        value = params.get(key)
        if _is_finite_number(value):
            out[key] = value
    return out


def format_number(value: float) -> str:
    """Number -> text exactly as JSON.stringify would write it."""
    if isinstance(value, int):
        return str(value)
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    dec = Decimal(repr(abs(value))).normalize()
    _, digit_tuple, exp = dec.as_tuple()
    digits = "".join(str(d) for d in digit_tuple)
    k = len(digits)
    n = exp + k
    if k <= n <= 21:
        body = digits + "0" * (n - k)
    elif 0 < n <= 21:
        body = digits[:n] + "." + digits[n:]
    elif -6 < n <= 0:
        body = "0." + "0" * (-n) + digits
    else:
        e = n - 1
        mantissa = digits[0] + ("." + digits[1:] if k > 1 else "")
        body = f"{mantissa}e{'+' if e >= 0 else '-'}{abs(e)}"
    return sign + body


def pack_params(params: Mapping[str, float]) -> str:
    fields = [f'"{key}":{format_number(params[key])}' for key in PARAM_KEYS if key in params]
    return "{" + ",".join(fields) + "}"


def unpack_params(block: str) -> Dict[str, float]:
    try:
        parsed = json.loads(b64url_decode(block))
    except (ValueError, binascii.Error):
        return {}
    if not isinstance(parsed, dict):
        return {}
    return present_params(parsed)


# ----------------------------
# Codec
# ----------------------------


def flatten_tiles(grid: Sequence[Sequence[object]]) -> str:
    return "".join(tile_char(tile) for row in grid for tile in row)


def encode(
    grid: Sequence[Sequence[object]],
    params: Optional[Mapping[str, object]] = None,
    width: Optional[int] = None,
) -> str:
    """Encode a row-major tile grid (and optional gameplay params) into a token.

    Never fails on bad tile values; they are written as Empty. Params that
    are missing, None or non-finite are left out of the token. width only
    matters for a grid with no rows ("5x0:"), where it cannot be read off
    the grid.
    """
    height = len(grid)
    if height:
        width = len(grid[0])
    elif width is None:
        width = 0
    payload = f"{width}x{height}{SHAPE_SEP}{rle_encode(flatten_tiles(grid))}"
    present = present_params(params)
    if present:
        payload += PARAM_SEP + b64url_encode(pack_params(present))
    return b64url_encode(payload)


def parse_dimensions(dims: str, payload: str = "") -> tuple:
    m = DIMENSIONS.fullmatch(dims)
    if not m:
        raise LevelDecodeError(f"Invalid level dimensions: {dims!r}", payload)
    try:
        return int(m.group(1)), int(m.group(2))
    except ValueError as e:
        raise LevelDecodeError(f"Invalid level dimensions: {e}", payload) from e


def decode(token: str) -> DecodedLevel:
    """Decode a token back into (tiles, width, height, params).

    Raises LevelDecodeError if the "{w}x{h}:" shape cannot be read.
    """
    try:
        payload = b64url_decode(token)
    except binascii.Error as e:
        raise LevelDecodeError(f"Token is not base64url: {e}") from e

    # Split on the first separator; the runtime ignores anything after a
    # second one, so cut there too.
    core, sep, param_block = payload.partition(PARAM_SEP)
    params = unpack_params(param_block.partition(PARAM_SEP)[0]) if sep else {}

    dims, sep, tile_data = core.partition(SHAPE_SEP)
    if not sep:
        raise LevelDecodeError("Missing ':' between dimensions and tile data", payload)
    tile_data = tile_data.partition(SHAPE_SEP)[0]
    width, height = parse_dimensions(dims, payload)

    total = width * height
    tile_string = rle_decode(tile_data, limit=total)
    tile_string = tile_string[:total].ljust(total, EMPTY_CHAR)
    tiles = [
        [char_tile(ch) for ch in tile_string[y * width:(y + 1) * width]]
        for y in range(height)
    ]
    return DecodedLevel(tiles, width, height, params)


def core_payload(token: str) -> str:
    """The decoded "{w}x{h}:{tiles}" part of a token, for diagnostics."""
    return b64url_decode(token).partition(PARAM_SEP)[0]
