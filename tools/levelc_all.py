#!/usr/bin/env python3
"""
levelc_all.py - Compile all .lvl files and emit a depfile + stamp.

Usage:
  python tools/levelc_all.py --levels levels --stamp build/levels/levels.stamp --depfile build/levels/levels.d
"""

from __future__ import annotations

import argparse
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

LEVELC = Path(__file__).resolve().parent / "levelc.py"


def run(cmd: list[str]) -> None:
    proc = subprocess.run(cmd)
    if proc.returncode != 0:
        sys.exit(proc.returncode)


def find_levels(levels_dir: Path) -> list[Path]:
    return sorted(levels_dir.glob("*.lvl"))


def write_stamp(stamp_path: Path, depfile_path: Path, lvl_files: list[Path]) -> None:
    stamp_path.parent.mkdir(parents=True, exist_ok=True)
    stamp_path.write_text("ok\n", encoding="utf-8")

    depfile_path.parent.mkdir(parents=True, exist_ok=True)
    deps = " ".join(str(p) for p in lvl_files)
    depfile_path.write_text(f"{stamp_path}: {deps}\n", encoding="utf-8")


def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--levels", default="levels", help="Directory containing .lvl files")
    ap.add_argument("--out-dir", default="build/levels", help="Output directory for compiled levels")
    ap.add_argument("--stamp", required=True, help="Stamp file path")
    ap.add_argument("--depfile", required=True, help="Depfile path")
    args = ap.parse_args(argv)

    levels_dir = Path(args.levels).resolve()
    if not levels_dir.is_dir():
        print(f"Levels dir not found: {levels_dir}", file=sys.stderr)
        sys.exit(1)

    lvl_files = find_levels(levels_dir)
    if not lvl_files:
        print(f"No .lvl files found in {levels_dir}", file=sys.stderr)
        sys.exit(1)

    for lvl in lvl_files:
        run([sys.executable, str(LEVELC), str(lvl), "--out-dir", args.out_dir])

    write_stamp(Path(args.stamp), Path(args.depfile), lvl_files)


if __name__ == "__main__":
    main()
