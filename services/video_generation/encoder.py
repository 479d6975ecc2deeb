"""Turns raw video bytes into a self-contained data URL and back."""

import base64
import binascii


class ResultEncoder:
    """
    Encodes video payloads as base64 data URLs.

    Usage:
        encoder = ResultEncoder()
        url = encoder.encode(video_bytes)       # "data:video/mp4;base64,..."
        assert encoder.decode(url) == video_bytes
    """

    def __init__(self, mime_type: str = "video/mp4"):
        self.mime_type = mime_type
        self._prefix = f"data:{mime_type};base64,"

    def encode(self, payload: bytes) -> str:
        return self._prefix + base64.b64encode(payload).decode("ascii")

    def decode(self, reference: str) -> bytes:
        """
        Recover the original bytes from a data URL produced by encode().

        Raises:
            ValueError: If the reference is not a base64 data URL
        """
        if not reference.startswith("data:"):
            raise ValueError("Not a data URL")
        header, sep, data = reference.partition(",")
        if not sep or not header.endswith(";base64"):
            raise ValueError("Data URL is not base64-encoded")
        try:
            return base64.b64decode(data, validate=True)
        except binascii.Error as e:
            raise ValueError(f"Invalid base64 payload: {e}") from e
