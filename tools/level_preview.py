#!/usr/bin/env python3
"""
level_preview.py - Render a tile grid as a PNG (Pillow) or an SVG string.

Usage:
  python tools/level_preview.py TOKEN out.png --scale 16
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Sequence

import numpy as np
from PIL import Image, ImageDraw

from levelcodec import LevelDecodeError, decode
from tile_table import FALLBACK_BORDER, FALLBACK_COLOR, TILES, hex_to_rgb

# Index len(TILES) is the fallback for ids outside the table.
PAL = np.array([hex_to_rgb(t.color) for t in TILES] + [hex_to_rgb(FALLBACK_COLOR)], dtype=np.uint8)
BORDER_PAL = np.array([hex_to_rgb(t.border) for t in TILES] + [hex_to_rgb(FALLBACK_BORDER)], dtype=np.uint8)

EMPTY_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="200" height="100">'
    '<rect width="100%" height="100%" fill="#ffffff"/>'
    '<text x="10" y="50" fill="#111">Empty Level</text></svg>'
)


def tiles_to_index(tiles: Sequence[Sequence[int]]) -> np.ndarray:
    """Grid -> uint8 palette indices; unknown ids map to the fallback slot."""
    height = len(tiles)
    width = len(tiles[0]) if height else 0
    idx = np.full((height, width), len(TILES), dtype=np.uint8)
    for y, row in enumerate(tiles):
        for x, tile in enumerate(row[:width]):
            if isinstance(tile, int) and 0 <= tile < len(TILES):
                idx[y, x] = tile
    return idx


def render_png(tiles: Sequence[Sequence[int]], scale: int = 16, borders: bool = True) -> Image.Image:
    idx = tiles_to_index(tiles)
    if idx.size == 0:
        return Image.new("RGB", (200, 100), (255, 255, 255))
    img = Image.fromarray(PAL[idx])
    if scale != 1:
        img = img.resize((idx.shape[1] * scale, idx.shape[0] * scale), resample=Image.NEAREST)
    if borders and scale >= 4:
        draw = ImageDraw.Draw(img)
        for y in range(idx.shape[0]):
            for x in range(idx.shape[1]):
                stroke = tuple(int(c) for c in BORDER_PAL[idx[y, x]])
                left = x * scale
                top = y * scale
                draw.rectangle((left, top, left + scale - 1, top + scale - 1), outline=stroke)
    return img


def svg_tile_size(width: int, tile_size: int = 16, max_width: int = 1200) -> int:
    return max(4, min(tile_size, max_width // width))


def render_svg(tiles: Sequence[Sequence[int]], tile_size: int = 16, max_width: int = 1200) -> str:
    if not tiles:
        return EMPTY_SVG
    height = len(tiles)
    width = len(tiles[0])
    if width == 0:
        return EMPTY_SVG
    size = svg_tile_size(width, tile_size, max_width)
    svg_w = width * size
    svg_h = height * size
    rects: List[str] = []
    for y in range(height):
        for x in range(width):
            tile = tiles[y][x]
            if isinstance(tile, int) and 0 <= tile < len(TILES):
                fill, stroke = TILES[tile].color, TILES[tile].border
            else:
                fill, stroke = FALLBACK_COLOR, FALLBACK_BORDER
            rects.append(
                f'<rect x="{x * size}" y="{y * size}" width="{size}" height="{size}" '
                f'fill="{fill}" stroke="{stroke}" stroke-width="1"/>'
            )
    return (
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{svg_w}" height="{svg_h}" '
        f'viewBox="0 0 {svg_w} {svg_h}">' + "".join(rects) + "</svg>"
    )


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("token", help="Encoded level token")
    ap.add_argument("out", help="Output .png or .svg path")
    ap.add_argument("--scale", type=int, default=16, help="Pixels per tile")
    ap.add_argument("--no-borders", action="store_true", help="Skip tile outlines")
    args = ap.parse_args()

    try:
        level = decode(args.token)
    except LevelDecodeError as e:
        raise SystemExit(f"Invalid level token: {e}")

    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    if out_path.suffix.lower() == ".svg":
        out_path.write_text(render_svg(level.tiles, tile_size=args.scale), encoding="utf-8")
    else:
        render_png(level.tiles, max(1, args.scale), borders=not args.no_borders).save(out_path)
    print(f"Wrote {out_path}")


if __name__ == "__main__":
    main()
