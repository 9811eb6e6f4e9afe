"""
Tests for the MCP tool functions (called directly, no transport).
"""

from mcp.server.fastmcp import Image

from level_server import (
    create_level,
    decode_level_from_url,
    edit_entire_level,
    edit_level_metadata,
    edit_level_row,
    edit_level_tile,
    get_tile_reference,
    render_level_preview,
)
from levelcodec import b64url_encode, decode, encode


class TestTools:
    def setup_method(self):
        self.token = encode([[0, 0, 0], [1, 1, 1]], {"maxEnemies": 2})

    def test_decode(self):
        result = decode_level_from_url(self.token)
        assert result["width"] == 3 and result["height"] == 2
        assert result["maxEnemies"] == 2
        assert result["encoded_level"] == self.token
        assert result["message"].startswith("Decoded level: 3x2")
        assert "?level=" in result["play_url"]

    def test_decode_structural_error(self):
        result = decode_level_from_url(b64url_encode("not-a-level"))
        assert result["error"].startswith("Error decoding level:")

    def test_decode_missing_token(self):
        assert decode_level_from_url("")["error"] == "Error: encoded_level is required."

    def test_edit_tile(self):
        result = edit_level_tile(self.token, 0, 1, 6)
        assert decode(result["encoded_level"]).tiles[0] == [0, 6, 0]

    def test_edit_tile_out_of_range(self):
        result = edit_level_tile(self.token, 5, 0, 1)
        assert result["error"] == "Error: Invalid row 5. Level has 2 rows (0-1)."

    def test_edit_row(self):
        result = edit_level_row(self.token, 1, [7, 7, 7])
        assert result["tiles"][1] == [7, 7, 7]
        assert result["maxEnemies"] == 2

    def test_edit_entire_level(self):
        result = edit_entire_level([[2, 2], [0, 0]], new_name="Two", coin_spawn_chance=8)
        assert result["name"] == "Two"
        assert decode(result["encoded_level"]).params == {"coinSpawnChance": 8}

    def test_edit_entire_level_rejects_bad_tile(self):
        assert "error" in edit_entire_level([[2, 8]])

    def test_edit_metadata(self):
        result = edit_level_metadata(self.token, new_description="Flat", enemy_spawn_chance=3)
        assert result["description"] == "Flat"
        assert decode(result["encoded_level"]).params == {"maxEnemies": 2, "enemySpawnChance": 3}

    def test_create_level(self):
        result = create_level("Start", "Intro", [[0, 0], [1, 1]], maxEnemies=1)
        assert result["message"].startswith("Created level 'Start' (2x2).")
        assert decode(result["encoded_level"]).params == {"maxEnemies": 1}

    def test_tile_reference(self):
        text = get_tile_reference()
        assert "0: . = Empty" in text
        assert "7: W = Water" in text

    def test_render_preview_defaults_to_svg(self):
        svg = render_level_preview(self.token)
        assert isinstance(svg, str)
        assert svg.startswith("<svg")
        assert svg.count("<rect") == 6

    def test_render_preview_png(self):
        image = render_level_preview(self.token, format="png", scale=4)
        assert isinstance(image, Image)
        assert image.data.startswith(b"\x89PNG")

    def test_render_preview_unknown_format(self):
        assert "error" in render_level_preview(self.token, format="gif")

    def test_render_preview_bad_token(self):
        assert "error" in render_level_preview(b64url_encode("3x2"))

    def test_oversized_dimensions_return_error(self):
        result = decode_level_from_url(b64url_encode("9" * 5000 + "x1:G"))
        assert result["error"].startswith("Error decoding level:")
