"""
layercache - Value Codec Tests

Tests the tagged string encoding used by string-oriented backends.
"""

import base64
import pickle
from collections import OrderedDict
from typing import Any

import pytest

from layercache.cache.codec import JSON_TAG, PICKLE_TAG, decode, encode
from layercache.errors import BackendFault, ValueEncodingError


class TestEncode:
    """Tests for format selection on encode."""

    @pytest.mark.parametrize(
        "value",
        [
            {"a": 1, "b": [True, False, None, "x"]},
            42,
            3.14159,
            False,
            "",
            "Hello 世界",
            None,
            [1, [2, [3]]],
        ],
    )
    def test_plain_data_uses_json(self, value: Any) -> None:
        """Test that plain data is stored as tagged JSON."""
        encoded = encode(value)
        assert encoded.startswith(JSON_TAG)

    def test_json_is_compact_and_unescaped(self) -> None:
        """Test the exact JSON payload for a small dict."""
        assert encode({"a": 1, "s": "世界"}) == 'json:{"a":1,"s":"世界"}'

    @pytest.mark.parametrize(
        "value",
        [
            (1, 2, 3),
            {1, 2, 3},
            {1: "int key"},
            OrderedDict(a=1),
            float("nan"),
            b"raw bytes",
        ],
    )
    def test_non_json_values_use_pickle(self, value: Any) -> None:
        """Test that values JSON cannot represent exactly are pickled."""
        encoded = encode(value)
        assert encoded.startswith(PICKLE_TAG)

    def test_unpicklable_value_raises(self, tmp_path: Any) -> None:
        """Test that an open file handle cannot be encoded."""
        with open(tmp_path / "handle.txt", "w") as handle:
            with pytest.raises(ValueEncodingError) as exc_info:
                encode(handle)

        assert isinstance(exc_info.value, BackendFault)
        assert exc_info.value.details["value_type"] == "TextIOWrapper"


class TestRoundTrip:
    """Tests that decode(encode(v)) reproduces v."""

    @pytest.mark.parametrize(
        "value",
        [
            {"a": 1, "b": [True, False, None, "x"]},
            42,
            3.14159,
            False,
            True,
            None,
            "",
            "Hello 世界",
            "42",
            "3.5",
            "true",
            "null",
        ],
    )
    def test_scalars_and_plain_data(self, value: Any) -> None:
        """Test exact round trips including types."""
        decoded = decode(encode(value))
        assert decoded == value
        assert type(decoded) is type(value)

    def test_numeric_strings_stay_strings(self) -> None:
        """Test that a stored "42" does not come back as an int."""
        assert decode(encode("42")) == "42"
        assert decode(encode("42")) != 42

    def test_tuple_and_set(self) -> None:
        """Test that containers outside JSON keep their types."""
        assert decode(encode((1, "two", None))) == (1, "two", None)
        assert decode(encode({"a", "b"})) == {"a", "b"}

    def test_int_beyond_str_digit_limit(self) -> None:
        """Test that an int too long for JSON text falls back to pickle."""
        value = 10**5000

        encoded = encode(value)

        assert encoded.startswith(PICKLE_TAG)
        assert decode(encoded) == value

    def test_cyclic_structure(self) -> None:
        """Test that a self-referencing list survives encoding."""
        value: list[Any] = [1, 2]
        value.append(value)

        decoded = decode(encode(value))

        assert decoded[:2] == [1, 2]
        assert decoded[2] is decoded


class TestDecode:
    """Tests for forgiving decode behavior."""

    @pytest.mark.parametrize("data", ["plain text", "42", "", "unknown:payload"])
    def test_untagged_input_returned_unchanged(self, data: str) -> None:
        """Test that untagged strings and unknown tags come back as-is."""
        assert decode(data) == data

    def test_corrupt_json_returned_unchanged(self) -> None:
        """Test that a broken JSON payload is not raised."""
        assert decode("json:{not json") == "json:{not json"

    def test_corrupt_pickle_returned_unchanged(self) -> None:
        """Test that invalid base64 and invalid pickle data are not raised."""
        assert decode("pickle:!!!not-base64!!!") == "pickle:!!!not-base64!!!"

        garbage = PICKLE_TAG + base64.b64encode(b"not a pickle").decode("ascii")
        assert decode(garbage) == garbage

    def test_bytes_input(self) -> None:
        """Test that bytes from a raw client are decoded first."""
        assert decode(b'json:{"a":1}') == {"a": 1}

    def test_non_string_input(self) -> None:
        """Test that non-string input is returned unchanged."""
        assert decode(42) == 42
        assert decode(None) is None

    def test_pickle_payload_decoded(self) -> None:
        """Test decoding a hand-built pickle payload."""
        data = PICKLE_TAG + base64.b64encode(pickle.dumps((1, 2))).decode("ascii")
        assert decode(data) == (1, 2)

    def test_pickle_payload_raising_type_error(self) -> None:
        """Test that a pickle whose REDUCE fails with TypeError is returned unchanged."""
        # BININT1 1, EMPTY_TUPLE, REDUCE: calls the int 1 with no arguments
        data = PICKLE_TAG + base64.b64encode(b"K\x01)R.").decode("ascii")
        assert decode(data) == data

    def test_deeply_nested_json_returned_unchanged(self) -> None:
        """Test that nesting past the recursion limit is not raised."""
        data = JSON_TAG + "[" * 200000 + "]" * 200000
        assert decode(data) == data
