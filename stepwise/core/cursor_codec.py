# stepwise/core/cursor_codec.py

"""
JSON cursor codec.

The queues carry payloads as JSON produced by ``json.dumps(..., default=str)``.
That encoder never refuses a value it does not understand, it stringifies
it: a ``datetime`` cursor is stored as ``"2024-01-01 00:00:00"`` and comes
back as a plain string. Validation therefore compares the decoded value with
the original node by node, types included, instead of trusting that encoding
succeeded.
"""

import json
import logging
from typing import Any

from ..interfaces.cursor_codec import CursorCodecInterface
from ..errors import CursorError

logger = logging.getLogger(__name__)

CURSOR_TYPES_HINT = (
    "Cursor must be composed of values the transport encodes losslessly: "
    "str, int, float, bool, None, lists and dicts with str keys"
)


def values_match(original: Any, decoded: Any) -> bool:
    """Strict structural equality: same types, same key order, same values."""
    if type(original) is not type(decoded):
        return False
    if isinstance(original, dict):
        if list(original.keys()) != list(decoded.keys()):
            return False
        return all(values_match(original[key], decoded[key]) for key in original)
    if isinstance(original, list):
        if len(original) != len(decoded):
            return False
        return all(values_match(a, b) for a, b in zip(original, decoded))
    return original == decoded


class JsonCursorCodec(CursorCodecInterface):
    """Codec shared by the queues and the runner's checkpoint validation."""

    def encode(self, value: Any) -> str:
        return json.dumps(value, default=str)

    def decode(self, data: str) -> Any:
        return json.loads(data)

    def validate(self, cursor: Any) -> None:
        try:
            decoded = self.decode(self.encode(cursor))
        except (TypeError, ValueError) as e:
            # circular structures and the like
            raise CursorError(
                f"{CURSOR_TYPES_HINT}. Could not encode {type(cursor).__name__}: {e}",
                cursor=cursor,
            ) from e

        if not values_match(cursor, decoded):
            logger.debug(f"Cursor round trip mismatch: {cursor!r} -> {decoded!r}")
            raise CursorError(
                f"{CURSOR_TYPES_HINT}. Got {type(cursor).__name__} {cursor!r}, "
                f"which decodes as {type(decoded).__name__} {decoded!r}",
                cursor=cursor,
                decoded=decoded,
            )
