#!/usr/bin/env python3
"""
lvl_parser.py - Shared .lvl layout parser for levelc.py and watch_levels.py.

Format:
  ; comments start with ';'
  LEVEL name="Sky Run" description="..." maxEnemies=5 enemySpawnChance=10 coinSpawnChance=15
  MAP
    ....................
    GGGG....RRRR....WWWW
  END

MAP rows use the tile chars from tile_table.TILES and must all be the same
width. Params are optional; when given they must be finite numbers.
"""

from __future__ import annotations

import math
import os
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from tile_table import CHAR_TILES, PARAM_KEYS, tile_char


class LevelParseError(Exception):
    def __init__(self, path: str, line: int, col: int, message: str):
        super().__init__(message)
        self.path = path
        self.line = line
        self.col = col
        self.message = message

    def __str__(self) -> str:
        return f"{self.path}:{self.line}:{self.col}: error: {self.message}"


TOKEN_KV = re.compile(r'(\w+)=(".*?"|\S+)')


@dataclass
class LevelLayout:
    name: str
    description: str = ""
    params: Dict[str, float] = field(default_factory=dict)
    tiles: List[List[int]] = field(default_factory=list)

    @property
    def width(self) -> int:
        return len(self.tiles[0]) if self.tiles else 0

    @property
    def height(self) -> int:
        return len(self.tiles)


def strip_comment(line: str) -> str:
    if ";" in line:
        return line.split(";", 1)[0].rstrip()
    return line.rstrip()


def unquote(s: str) -> str:
    s = s.strip()
    if len(s) >= 2 and s[0] == '"' and s[-1] == '"':
        return s[1:-1]
    return s


def parse_kv(line: str) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for m in TOKEN_KV.finditer(line):
        out[m.group(1)] = unquote(m.group(2))
    return out


def parse_param(s: str) -> float:
    s = s.strip()
    try:
        return int(s, 10)
    except ValueError:
        pass
    value = float(s)
    if not math.isfinite(value):
        raise ValueError(f"not a finite number: {s}")
    return value


def _col_for_token(line: str, token: str) -> int:
    if not token:
        return 1
    idx = line.find(token)
    return idx + 1 if idx >= 0 else 1


def _col_for_kv_value(line: str, key: str) -> int:
    if not key:
        return 1
    m = re.search(rf'(?<!\w){re.escape(key)}\s*=\s*(".*?"|\S+)', line)
    if not m:
        return _col_for_token(line, key)
    return m.start(1) + 1


def _quote(s: str) -> str:
    return '"' + s.replace('"', "'") + '"'


def parse_lvl_text(
    text: str,
    path: str = "<string>",
    error_cb: Optional[Callable[[str, int, int], None]] = None,
) -> Optional[LevelLayout]:
    lines: List[Tuple[int, str, str]] = []
    for idx, ln in enumerate(text.splitlines(), 1):
        raw_line = strip_comment(ln)
        s = raw_line.strip()
        if s:
            lines.append((idx, raw_line, s))

    def err(message: str, line_no: int = 1, col: int = 1) -> None:
        if error_cb:
            error_cb(message, line_no, col)
            return
        raise LevelParseError(path, line_no, col, message)

    layout: Optional[LevelLayout] = None
    mode: Optional[str] = None
    map_seen = False
    map_width = -1

    for line_no, raw_line, line in lines:
        if line == "END":
            if mode is None:
                err("END without MAP", line_no, _col_for_token(raw_line, "END"))
            mode = None
            continue

        if mode == "MAP":
            row: List[int] = []
            for offset, ch in enumerate(line):
                if ch not in CHAR_TILES:
                    col = raw_line.find(line) + offset + 1
                    err(f"Unknown tile char '{ch}'", line_no, col)
                    row.append(0)
                    continue
                row.append(CHAR_TILES[ch])
            if map_width < 0:
                map_width = len(row)
            elif len(row) != map_width:
                err(
                    f"MAP row is {len(row)} tiles wide, expected {map_width}",
                    line_no,
                    _col_for_token(raw_line, line),
                )
            if layout is not None:
                layout.tiles.append(row)
            continue

        head = line.split()[0]

        if head == "LEVEL":
            if layout is not None:
                err("Duplicate LEVEL header", line_no, _col_for_token(raw_line, "LEVEL"))
                continue
            kv = parse_kv(line)
            layout = LevelLayout(
                name=kv.get("name", os.path.splitext(os.path.basename(path))[0]),
                description=kv.get("description", ""),
            )
            for key in PARAM_KEYS:
                if key not in kv:
                    continue
                try:
                    layout.params[key] = parse_param(kv[key])
                except ValueError:
                    err(f"Invalid {key} value: {kv[key]}", line_no, _col_for_kv_value(raw_line, key))
            for key in kv:
                if key not in PARAM_KEYS and key not in ("name", "description"):
                    err(f"Unknown LEVEL key: {key}", line_no, _col_for_token(raw_line, key + "="))
            continue

        if layout is None:
            err("File must start with LEVEL ...", line_no)
            continue

        if head == "MAP":
            if map_seen:
                err("Duplicate MAP block", line_no, _col_for_token(raw_line, "MAP"))
            map_seen = True
            mode = "MAP"
            continue

        err(f"Unexpected line: {line}", line_no, 1)

    if mode == "MAP":
        err("MAP block not closed with END", lines[-1][0] if lines else 1)
    if layout is None:
        err("No LEVEL header found", 1)
        return None
    if not map_seen:
        err("No MAP block found", 1)
    return layout


def parse_lvl(path: str, error_cb: Optional[Callable[[str, int, int], None]] = None) -> Optional[LevelLayout]:
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    return parse_lvl_text(text, path, error_cb)


def format_lvl(
    tiles: List[List[int]],
    name: str = "",
    description: str = "",
    params: Optional[Dict[str, float]] = None,
) -> str:
    """Render a level back to .lvl text (tiles outside the alphabet become '.')."""
    header = ["LEVEL", f"name={_quote(name or 'UNNAMED')}"]
    if description:
        header.append(f"description={_quote(description)}")
    for key in PARAM_KEYS:
        if params and key in params:
            header.append(f"{key}={params[key]}")
    out = [" ".join(header), "MAP"]
    for row in tiles:
        out.append("  " + "".join(tile_char(t) for t in row))
    out.append("END")
    return "\n".join(out) + "\n"
