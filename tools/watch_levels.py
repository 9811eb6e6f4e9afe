#!/usr/bin/env python3
"""
watch_levels.py - Recompile levels when .lvl inputs or their outputs change.

Usage:
  python tools/watch_levels.py --levels levels
  python tools/watch_levels.py --once
  python tools/watch_levels.py /path/to/project
"""

from __future__ import annotations

import argparse
import json
import subprocess
import sys
import time
from pathlib import Path
from typing import List, Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from levelc import output_paths, sanitize_level_name

LEVELC = Path(__file__).resolve().parent / "levelc.py"


def parse_level_name(path: Path) -> str:
    # Cheap header scan; full parsing is levelc's job.
    try:
        for ln in path.read_text(encoding="utf-8").splitlines():
            s = ln.split(";", 1)[0].strip()
            if not s.startswith("LEVEL"):
                continue
            if 'name="' in s:
                return s.split('name="', 1)[1].split('"', 1)[0]
            for part in s.split():
                if part.startswith("name="):
                    return part.split("=", 1)[1].strip('"')
    except (OSError, UnicodeDecodeError):
        pass
    return path.stem


def file_mtime(path: Path) -> float:
    try:
        return path.stat().st_mtime
    except FileNotFoundError:
        return 0.0


def run(cmd: list[str]) -> bool:
    proc = subprocess.run(cmd)
    return proc.returncode == 0


def load_cache(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}


def save_cache(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def should_run(input_path: Path, outputs: list[Path], cache: dict) -> bool:
    in_key = str(input_path)
    input_m = file_mtime(input_path)
    if input_m == 0.0:
        return False
    cached = cache.get(in_key, {})
    if cached.get("input_mtime") != input_m:
        return True
    for out in outputs:
        if file_mtime(out) == 0.0:
            return True
    cached_out = cached.get("outputs", {})
    for out in outputs:
        if cached_out.get(str(out)) != file_mtime(out):
            return True
    return False


def update_cache_entry(input_path: Path, outputs: list[Path], cache: dict) -> None:
    cache[str(input_path)] = {
        "input_mtime": file_mtime(input_path),
        "outputs": {str(out): file_mtime(out) for out in outputs},
    }


def level_outputs(lvl: Path, out_dir: Path) -> list[Path]:
    base = sanitize_level_name(parse_level_name(lvl))
    return [Path(p) for p in output_paths(base, str(out_dir)).values()]


def run_once(levels_dir: Path, out_dir: Path, cache_path: Path, changed_path: Optional[str] = None) -> bool:
    ok = True
    cache = load_cache(cache_path)
    for lvl in sorted(levels_dir.glob("*.lvl")):
        if changed_path and str(lvl) != changed_path:
            continue
        outputs = level_outputs(lvl, out_dir)
        if should_run(lvl, outputs, cache):
            if run([sys.executable, str(LEVELC), str(lvl), "--out-dir", str(out_dir)]):
                update_cache_entry(lvl, outputs, cache)
            else:
                ok = False
    save_cache(cache_path, cache)
    return ok


class LevelsHandler(FileSystemEventHandler):
    def __init__(self, levels_dir: Path, out_dir: Path, cache_path: Path):
        super().__init__()
        self.levels_dir = levels_dir
        self.out_dir = out_dir
        self.cache_path = cache_path

    def _rebuild(self, event) -> None:
        if event.is_directory or not str(event.src_path).endswith(".lvl"):
            return
        print("LEVELGEN START")
        run_once(self.levels_dir, self.out_dir, self.cache_path, changed_path=str(event.src_path))
        print("LEVELGEN END")

    def on_modified(self, event):
        self._rebuild(event)

    def on_created(self, event):
        self._rebuild(event)


def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("root", nargs="?", default=".", help="Project root (default: .)")
    ap.add_argument("--levels", default="levels", help="Directory containing .lvl files")
    ap.add_argument("--out-dir", default="build/levels", help="Output directory for compiled levels")
    ap.add_argument("--interval", type=float, default=0.5, help="Polling interval in seconds")
    ap.add_argument("--once", action="store_true", help="Run a single pass and exit")
    args = ap.parse_args(argv)

    root = Path(args.root).resolve()
    levels_dir = (root / args.levels).resolve()
    out_dir = (root / args.out_dir).resolve()
    cache_path = root / "build" / ".level_cache.json"

    if not levels_dir.is_dir():
        print(f"{levels_dir}:1:1: error: Levels dir not found", file=sys.stderr)
        sys.exit(1)

    if args.once:
        if not run_once(levels_dir, out_dir, cache_path):
            sys.exit(1)
        return

    observer = Observer()
    observer.schedule(LevelsHandler(levels_dir, out_dir, cache_path), str(levels_dir), recursive=False)
    observer.start()

    print("LEVELGEN START")
    run_once(levels_dir, out_dir, cache_path)
    print("LEVELGEN END")

    try:
        while True:
            time.sleep(args.interval)
    except KeyboardInterrupt:
        observer.stop()
    observer.join()


if __name__ == "__main__":
    main()
