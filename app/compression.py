from __future__ import annotations

import base64
import binascii
import gzip
import zlib


class CompressionError(ValueError):
    pass


class InvalidBase64Error(CompressionError):
    pass


class InvalidGzipError(CompressionError):
    pass


def compress(text: str) -> str:
    """Gzip ``text`` (UTF-8) and return the result as standard Base64."""
    if text is None:
        raise ValueError("Input string cannot be null")
    if text == "":
        return ""
    return base64.b64encode(gzip.compress(text.encode("utf-8"))).decode("ascii")


def decompress(data: str) -> str:
    if data is None:
        raise ValueError("Compressed input cannot be null")
    if data == "":
        return ""
    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidBase64Error(f"Invalid Base64 format: {exc}") from exc
    try:
        return gzip.decompress(raw).decode("utf-8")
    except (OSError, EOFError, zlib.error) as exc:
        raise InvalidGzipError(f"Invalid GZIP payload: {exc}") from exc


def compression_ratio(original: str, compressed: str) -> float:
    if original is None or compressed is None:
        raise ValueError("Parameters cannot be null")
    if original == "" or compressed == "":
        return 0.0
    return 100.0 * len(compressed.encode("utf-8")) / len(original.encode("utf-8"))
