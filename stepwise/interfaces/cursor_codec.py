# stepwise/interfaces/cursor_codec.py

from typing import Any

class CursorCodecInterface:
    """
    Encoding shared by cursor validation and the queue transports.

    A codec must use exactly the encoding the transport uses to carry job
    payloads between runs; otherwise validation proves nothing.
    """

    def encode(self, value: Any) -> str:
        """Encode a value the way the transport would."""
        raise NotImplementedError("Subclasses must implement encode")

    def decode(self, data: str) -> Any:
        """Decode a value previously produced by ``encode``."""
        raise NotImplementedError("Subclasses must implement decode")

    def validate(self, cursor: Any) -> None:
        """
        Check that ``cursor`` survives an encode/decode round trip unchanged.

        Raises:
            CursorError: If the decoded value differs in structure, order or type.
        """
        raise NotImplementedError("Subclasses must implement validate")
