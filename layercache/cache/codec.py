"""
layercache - Value Codec

Converts values to and from the string form stored by string-oriented
backends (Redis, database). Every encoded string carries an explicit format
tag, so decoding never has to guess:

    json:<compact JSON>          plain data (None, bool, int, float, str,
                                 list, dict with str keys), lossless
    pickle:<base64 pickle>       everything else, including tuples, sets,
                                 non-str dict keys and cyclic structures

Decoding is forgiving: untagged strings, unknown tags and corrupt payloads
come back unchanged instead of raising.
"""

import base64
import binascii
import json
import logging
import math
import pickle
from typing import Any

from ..errors import ValueEncodingError

logger = logging.getLogger(__name__)

JSON_TAG = "json:"
PICKLE_TAG = "pickle:"


def _is_plain_data(value: Any, _path: set[int] | None = None) -> bool:
    """
    Check whether JSON represents a value without loss.

    Exact types are required: subclasses (IntEnum, OrderedDict, str
    subclasses) would come back as their base type.
    """
    value_type = type(value)

    if value is None or value_type in (bool, int, str):
        return True
    if value_type is float:
        return math.isfinite(value)
    if value_type not in (list, dict):
        return False

    path = _path if _path is not None else set()
    if id(value) in path:
        # Reference cycle
        return False
    path.add(id(value))
    try:
        if value_type is dict:
            return all(type(k) is str and _is_plain_data(v, path) for k, v in value.items())
        return all(_is_plain_data(item, path) for item in value)
    finally:
        path.discard(id(value))


def encode(value: Any) -> str:
    """
    Encode a value into a tagged string.

    Args:
        value: Any value

    Returns:
        Tagged string representation

    Raises:
        ValueEncodingError: If the value is neither plain data nor picklable
            (open files, sockets, locks)
    """
    if _is_plain_data(value):
        try:
            return JSON_TAG + json.dumps(value, ensure_ascii=False, separators=(",", ":"))
        except ValueError:
            # Ints beyond the interpreter's str conversion limit; pickle keeps them exact
            pass

    try:
        payload = pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL)
    except (pickle.PicklingError, TypeError, AttributeError, RecursionError) as e:
        raise ValueEncodingError(type(value).__name__, str(e)) from e

    return PICKLE_TAG + base64.b64encode(payload).decode("ascii")


def decode(data: Any) -> Any:
    """
    Decode a tagged string produced by encode().

    Args:
        data: Stored representation (str, or bytes from a raw client)

    Returns:
        The decoded value, or the input unchanged when it is not a valid
        tagged payload
    """
    if isinstance(data, bytes | bytearray):
        try:
            data = bytes(data).decode("utf-8")
        except UnicodeDecodeError:
            return data

    if not isinstance(data, str):
        return data

    if data.startswith(JSON_TAG):
        try:
            return json.loads(data[len(JSON_TAG) :])
        except (ValueError, RecursionError) as e:
            logger.warning(
                "Failed to decode JSON payload from cache, returning raw data: %s",
                e,
                extra={"data_preview": data[:100], "error": str(e)},
            )
            return data
        except Exception as e:
            logger.error(f"Unexpected error decoding cache payload, returning raw data: {e}", exc_info=True)
            return data

    if data.startswith(PICKLE_TAG):
        try:
            raw = base64.b64decode(data[len(PICKLE_TAG) :], validate=True)
            return pickle.loads(raw)
        except (binascii.Error, ValueError, pickle.UnpicklingError, EOFError, AttributeError, ImportError) as e:
            logger.warning(
                "Failed to decode pickle payload from cache, returning raw data: %s",
                e,
                extra={"data_preview": data[:100], "error": str(e)},
            )
            return data
        except Exception as e:
            logger.error(f"Unexpected error decoding cache payload, returning raw data: {e}", exc_info=True)
            return data

    return data
