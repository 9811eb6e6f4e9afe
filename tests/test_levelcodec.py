"""
Tests for the level token codec: empty-run compression, params block,
base64url framing and the lenient/strict decode split.
"""

import base64
import math
import random

import pytest

from levelcodec import (
    LevelDecodeError,
    b64url_decode,
    b64url_encode,
    decode,
    encode,
    format_number,
    rle_decode,
    rle_encode,
)


def token_for(payload: str) -> str:
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii").rstrip("=")


def payload_of(token: str) -> str:
    return b64url_decode(token)


class TestEmptyRuns:
    def test_two_empties_stay_literal(self):
        assert payload_of(encode([[0, 0]])) == "2x1:.."

    def test_three_empties_compress(self):
        assert payload_of(encode([[0, 0, 0]])) == "3x1:.3"

    def test_threshold_round_trip(self):
        for n in (1, 2, 3, 4, 10, 123):
            assert decode(encode([[0] * n])).tiles == [[0] * n]

    def test_short_runs_between_symbols_unchanged(self):
        assert rle_encode("GG..RR") == "GG..RR"

    def test_run_between_symbols_compresses(self):
        assert rle_encode("G....R") == "G.4R"

    def test_other_symbols_never_compressed(self):
        assert rle_encode("GGGGGG") == "GGGGGG"

    def test_runs_not_merged_across_symbols(self):
        assert rle_encode("...G...") == ".3G.3"

    def test_decode_multi_digit_count(self):
        assert rle_decode("G.12R") == "G" + "." * 12 + "R"

    def test_isolated_dot_copied(self):
        assert rle_decode(".G.") == ".G."


class TestEncode:
    def test_end_to_end_example(self):
        tiles = [[1, 0, 0], [0, 0, 2]]
        token = encode(tiles)
        assert payload_of(token) == "3x2:G.4R"
        assert token == token_for("3x2:G.4R")
        decoded = decode(token)
        assert decoded.tiles == tiles
        assert (decoded.width, decoded.height) == (3, 2)
        assert decoded.params == {}

    def test_token_is_url_safe(self):
        tiles = [[7, 6, 5, 4, 3, 2, 1, 0] * 4 for _ in range(6)]
        token = encode(tiles, {"maxEnemies": 3})
        assert "=" not in token
        assert "+" not in token and "/" not in token

    def test_out_of_range_tiles_become_empty(self):
        assert payload_of(encode([[1, 9, -1, None, "G"]])) == "5x1:G.4"

    def test_integral_float_tile(self):
        assert payload_of(encode([[2.0, 1]])) == "2x1:RG"

    def test_empty_grid(self):
        assert payload_of(encode([])) == "0x0:"
        decoded = decode(encode([]))
        assert decoded.tiles == []
        assert (decoded.width, decoded.height) == (0, 0)

    def test_width_only_used_without_rows(self):
        assert payload_of(encode([], width=5)) == "5x0:"
        assert payload_of(encode([[1, 1]], width=5)) == "2x1:GG"

    def test_deterministic(self):
        tiles = [[0, 1, 2], [3, 4, 5]]
        params = {"coinSpawnChance": 0.25, "maxEnemies": 4}
        assert encode(tiles, params) == encode([list(r) for r in tiles], dict(params))


class TestParams:
    def test_no_params_no_separator(self):
        token = encode([[1, 1]], {"maxEnemies": None, "coinSpawnChance": float("nan")})
        assert "|" not in payload_of(token)
        assert decode(token).params == {}

    def test_params_block_layout(self):
        token = encode([[1]], {"coinSpawnChance": 15, "maxEnemies": 5})
        core, block = payload_of(token).split("|")
        assert core == "1x1:G"
        assert b64url_decode(block) == '{"maxEnemies":5,"coinSpawnChance":15}'

    def test_integral_floats_written_like_integers(self):
        token = encode([[1]], {"maxEnemies": 5.0, "enemySpawnChance": 0.5})
        block = payload_of(token).split("|")[1]
        assert b64url_decode(block) == '{"maxEnemies":5,"enemySpawnChance":0.5}'

    def test_infinite_and_bool_dropped(self):
        token = encode([[1]], {"maxEnemies": math.inf, "enemySpawnChance": True, "coinSpawnChance": 2})
        assert decode(token).params == {"coinSpawnChance": 2}

    def test_unknown_keys_ignored(self):
        assert decode(encode([[1]], {"gravity": 9.8})).params == {}

    def test_corrupt_params_block_dropped(self):
        decoded = decode(token_for("2x1:GR|!!!not-json"))
        assert decoded.tiles == [[1, 2]]
        assert decoded.params == {}

    def test_non_object_params_dropped(self):
        decoded = decode(token_for("1x1:G|" + b64url_encode("[1, 2, 3]")))
        assert decoded.params == {}

    def test_non_numeric_param_values_dropped(self):
        block = b64url_encode('{"maxEnemies":"5","coinSpawnChance":0.2}')
        assert decode(token_for("1x1:G|" + block)).params == {"coinSpawnChance": 0.2}

    @pytest.mark.parametrize(
        "value,text",
        [
            (5, "5"),
            (5.0, "5"),
            (-2.5, "-2.5"),
            (0.15, "0.15"),
            (0.0, "0"),
            (100.0, "100"),
            (0.00001, "0.00001"),
            (1e-7, "1e-7"),
            (1e21, "1e+21"),
            (1.5e300, "1.5e+300"),
            (123456789012345680000.0, "123456789012345680000"),
        ],
    )
    def test_format_number(self, value, text):
        assert format_number(value) == text


class TestLenientDecode:
    def test_short_body_padded(self):
        assert decode(token_for("3x2:G")).tiles == [[1, 0, 0], [0, 0, 0]]

    def test_missing_body_padded(self):
        assert decode(token_for("2x2:")).tiles == [[0, 0], [0, 0]]

    def test_long_body_truncated(self):
        assert decode(token_for("2x1:GRYW")).tiles == [[1, 2]]

    def test_unknown_chars_become_empty(self):
        assert decode(token_for("4x1:GxZR")).tiles == [[1, 0, 0, 2]]

    def test_negative_count_is_literal(self):
        # '.', '-', '2' all read as Empty; no run expansion
        assert decode(token_for("4x1:.-2G")).tiles == [[0, 0, 0, 1]]

    def test_non_ascii_digit_is_not_a_count(self):
        assert decode(token_for("3x1:.٣G")).tiles == [[0, 0, 1]]

    def test_zero_count_expands_to_nothing(self):
        assert decode(token_for("2x1:G.0R")).tiles == [[1, 2]]

    def test_huge_count_is_capped(self):
        assert decode(token_for("2x1:.99999999999999")).tiles == [[0, 0]]
        assert decode(token_for("2x1:." + "9" * 5000)).tiles == [[0, 0]]
        assert decode(token_for("3x1:." + "0" * 5000 + "2G")).tiles == [[0, 0, 1]]

    def test_tiles_end_at_second_colon(self):
        assert decode(token_for("3x1:G:R")).tiles == [[1, 0, 0]]

    def test_invalid_utf8_replaced(self):
        raw = base64.urlsafe_b64encode(b"2x1:G\xff").decode("ascii").rstrip("=")
        assert decode(raw).tiles == [[1, 0]]

    def test_padding_tolerated(self):
        token = encode([[1, 0, 2]])
        padded = token + "=" * (-len(token) % 4)
        assert decode(padded).tiles == [[1, 0, 2]]

    def test_params_split_on_first_pipe(self):
        decoded = decode(token_for("1x1:G|" + b64url_encode('{"maxEnemies":3}')))
        assert decoded.params == {"maxEnemies": 3}

    def test_params_end_at_second_pipe(self):
        block = b64url_encode('{"maxEnemies":3}')
        decoded = decode(token_for("1x1:G|" + block + "|zz"))
        assert decoded.tiles == [[1]]
        assert decoded.params == {"maxEnemies": 3}


class TestStructuralFailure:
    @pytest.mark.parametrize(
        "payload",
        [
            "not-a-level",
            "3x2",
            "3x2G.4R",
            "axb:GGG",
            "3:GGG",
            "-1x2:GG",
            "3x2x1:GGGGGG",
            " 3x2:GGGGGG",
            "",
            "9" * 5000 + "x1:G",
            "1x" + "9" * 5000 + ":G",
        ],
    )
    def test_bad_shape_raises(self, payload):
        with pytest.raises(LevelDecodeError):
            decode(token_for(payload))

    def test_error_is_value_error(self):
        with pytest.raises(ValueError):
            decode(token_for("not-a-level"))

    def test_error_carries_payload(self):
        with pytest.raises(LevelDecodeError) as info:
            decode(token_for("not-a-level"))
        assert info.value.payload == "not-a-level"


class TestRoundTrip:
    PARAM_SETS = [
        {},
        {"maxEnemies": 7},
        {"enemySpawnChance": 12.5},
        {"coinSpawnChance": 0.15},
        {"maxEnemies": 1, "coinSpawnChance": 33.3},
        {"maxEnemies": 2, "enemySpawnChance": 0.001, "coinSpawnChance": 99},
    ]

    def test_random_grids(self):
        rng = random.Random(1234)
        for i in range(60):
            width = rng.randint(1, 200)
            height = rng.randint(1, 40)
            empty_bias = rng.random()
            tiles = [
                [0 if rng.random() < empty_bias else rng.randint(0, 7) for _ in range(width)]
                for _ in range(height)
            ]
            params = self.PARAM_SETS[i % len(self.PARAM_SETS)]
            decoded = decode(encode(tiles, params))
            assert decoded.tiles == tiles
            assert decoded.width == width
            assert decoded.height == height
            assert decoded.params == params

    def test_max_size_grid(self):
        tiles = [[(x * y) % 8 for x in range(200)] for y in range(200)]
        assert decode(encode(tiles)).tiles == tiles

    def test_all_empty_grid(self):
        tiles = [[0] * 50 for _ in range(20)]
        assert payload_of(encode(tiles)) == "50x20:.1000"
        assert decode(encode(tiles)).tiles == tiles

    def test_decoded_unpacks_as_tuple(self):
        tiles, width, height, params = decode(encode([[5, 6]], {"maxEnemies": 2}))
        assert tiles == [[5, 6]]
        assert (width, height) == (2, 1)
        assert params == {"maxEnemies": 2}
