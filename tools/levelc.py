#!/usr/bin/env python3
"""
levelc.py - LVLTEXT -> level token + debug JSON + preview PNG.

Outputs:
  - .token   The URL-safe level token (one line)
  - .json    Debug dump: name, size, params, payload, play URL
  - .png     Preview render (skip with --no-png)

Usage:
  python tools/levelc.py levels/level1.lvl
  python tools/levelc.py --decode TOKEN -o levels/restored.lvl

By default outputs go to build/levels, using the LEVEL name as the base
filename (sanitized to a safe identifier).

Notes:
- Comments start with ';'.
- MAP rows must all be the same width and use only tile chars (. G R Y I F S W).
- --decode writes the token back out as LVLTEXT; name/description are not
  part of a token, so pass --name to label it.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import List, Optional, Tuple

from level_ops import Level, describe_params, play_url
from level_preview import render_png
from levelcodec import LevelDecodeError, core_payload, decode
from lvl_parser import format_lvl, parse_lvl


# ----------------------------
# Error collection
# ----------------------------

class ErrorCollector:
    """Collects errors during parsing instead of stopping at the first one."""

    def __init__(self, path: str = ""):
        self.path = path
        self.errors: List[str] = []

    def add_error(self, error: str):
        """Add an error to the collection."""
        self.errors.append(error)

    def add_located(self, message: str, line: int, col: int):
        """error_cb for lvl_parser: keeps the compiler-style location."""
        self.errors.append(f"{self.path}:{line}:{col}: error: {message}")

    def has_errors(self) -> bool:
        """Check if any errors have been collected."""
        return len(self.errors) > 0

    def report_and_exit(self, prefix: str = ""):
        """Report all collected errors and exit if any exist."""
        if not self.has_errors():
            return

        print(f"\n{prefix}Found {len(self.errors)} error(s):", file=sys.stderr)
        for i, error in enumerate(self.errors, 1):
            print(f"  {i}. {error}", file=sys.stderr)
        print("", file=sys.stderr)
        sys.exit(1)


# ----------------------------
# Compile
# ----------------------------


def sanitize_level_name(name: str) -> str:
    base = "".join(ch if ch.isalnum() else "_" for ch in name.strip())
    base = base.strip("_").lower()
    return base if base else "level"


def load_level(path: str, errors: ErrorCollector) -> Optional[Level]:
    try:
        layout = parse_lvl(path, errors.add_located)
    except FileNotFoundError:
        errors.add_error(f"Input file not found: {path}")
        return None
    except PermissionError:
        errors.add_error(f"Permission denied reading file: {path}")
        return None
    except UnicodeDecodeError as e:
        errors.add_error(f"File encoding error: {e}")
        return None
    if layout is None:
        return None
    return Level(
        tiles=layout.tiles,
        name=layout.name,
        description=layout.description,
        params=dict(layout.params),
    )


def compile_level(level: Level, base_url: Optional[str] = None) -> Tuple[str, dict]:
    token = level.encoded_level
    debug = {
        "name": level.name,
        "description": level.description,
        "width": level.width,
        "height": level.height,
        "params": level.params,
        "effective_params": describe_params(level),
        "payload": core_payload(token),
        "token_length": len(token),
        "play_url": play_url(token, base_url),
    }
    return token, debug


def output_paths(base_name: str, out_dir: str) -> dict:
    return {
        "token": os.path.join(out_dir, f"{base_name}.token"),
        "json": os.path.join(out_dir, f"{base_name}.json"),
        "png": os.path.join(out_dir, f"{base_name}.png"),
    }


# ----------------------------
# CLI
# ----------------------------


def run_decode(args) -> None:
    try:
        decoded = decode(args.decode)
    except LevelDecodeError as e:
        print(f"Invalid level token: {e}", file=sys.stderr)
        sys.exit(1)

    text = format_lvl(decoded.tiles, name=args.name, params=decoded.params)
    if not args.output:
        sys.stdout.write(text)
        return
    try:
        os.makedirs(os.path.dirname(args.output) or ".", exist_ok=True)
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(text)
        print(f"Wrote {args.output} ({decoded.width}x{decoded.height})")
    except OSError as e:
        print(f"Error writing level file {args.output}: {e}", file=sys.stderr)
        sys.exit(1)


def main(argv: Optional[List[str]] = None):
    ap = argparse.ArgumentParser()
    ap.add_argument("input", nargs="?", default="", help="Input LVLTEXT file (.lvl)")
    ap.add_argument("-o", "--output", default="", help="Output token file (.token), or .lvl with --decode")
    ap.add_argument(
        "--out-dir",
        default="build/levels",
        help="Output directory for .token, .json and .png",
    )
    ap.add_argument("--json", default="", help="Output debug JSON (.json)")
    ap.add_argument("--png", default="", help="Output preview image (.png)")
    ap.add_argument("--no-png", action="store_true", help="Skip the preview image")
    ap.add_argument("--scale", type=int, default=16, help="Preview pixels per tile")
    ap.add_argument("--player-url", default=None, help="Base URL for the play link")
    ap.add_argument("--decode", default="", metavar="TOKEN", help="Decode TOKEN back to LVLTEXT")
    ap.add_argument("--name", default="", help="LEVEL name to write with --decode")

    args = ap.parse_args(argv)

    if args.decode:
        run_decode(args)
        return
    if not args.input:
        ap.error("input is required unless --decode is given")

    errors = ErrorCollector(args.input)
    level = load_level(args.input, errors)
    if level is None:
        errors.report_and_exit("Parsing failed completely: ")
    errors.report_and_exit("Found errors: ")

    token, debug = compile_level(level, args.player_url)

    base_name = sanitize_level_name(level.name or "")
    defaults = output_paths(base_name, args.out_dir)
    if not args.output:
        args.output = defaults["token"]
    if not args.json:
        args.json = defaults["json"]
    if not args.png:
        args.png = defaults["png"]

    for path in (args.output, args.json, args.png):
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)

    # .token
    try:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(token + "\n")
        print(f"Wrote {args.output} ({len(token)} chars)")
    except OSError as e:
        print(f"Error writing token file {args.output}: {e}", file=sys.stderr)
        sys.exit(1)

    # debug JSON
    try:
        with open(args.json, "w", encoding="utf-8") as f:
            json.dump(debug, f, indent=2)
        print(f"Wrote {args.json}")
    except OSError as e:
        print(f"Error writing JSON file {args.json}: {e}", file=sys.stderr)
        sys.exit(1)

    # preview
    if not args.no_png:
        try:
            render_png(level.tiles, max(1, args.scale)).save(args.png)
            print(f"Wrote {args.png}")
        except OSError as e:
            print(f"Error writing preview {args.png}: {e}", file=sys.stderr)
            sys.exit(1)


if __name__ == "__main__":
    main()
