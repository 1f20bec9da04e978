"""Hex and base58 helpers for byte fields and 32-byte addresses."""

from __future__ import annotations

import base58

from .constants import ADDRESS_LEN
from .errors import ParseError
from .util import is_hex, strip_hex_prefix


def hex_decode(text: str) -> bytes:
    if len(text) % 2 != 0:
        raise ParseError(f"Hex string has odd length: {len(text)}", raw=text)
    for idx in range(0, len(text), 2):
        pair = text[idx : idx + 2]
        if not is_hex(pair):
            raise ParseError(f"Invalid hex at position {idx}: '{pair}'", raw=text)
    return bytes.fromhex(text)


def base58_encode(data: bytes) -> str:
    return base58.b58encode(data).decode("ascii")


def _decode_hex_address(text: str) -> bytes:
    data = hex_decode(strip_hex_prefix(text))
    if len(data) != ADDRESS_LEN:
        raise ParseError(
            f"Expected {ADDRESS_LEN} bytes, got {len(data)} (provide base58 or 64 hex chars)",
            raw=text,
        )
    return data


def decode_address(text: str) -> bytes:
    """Decode a 32-byte address given as hex (optionally 0x-prefixed) or base58.

    Hex is tried first whenever the text has the hex shape, so a 64-character
    hex string is never misread as base58.
    """
    if text.startswith("0x") or text.startswith("0X"):
        return _decode_hex_address(text)
    if len(text) == ADDRESS_LEN * 2 and is_hex(text):
        return _decode_hex_address(text)
    try:
        data = base58.b58decode(text)
    except ValueError:
        if is_hex(text):
            return _decode_hex_address(text)
        raise ParseError(
            f"Invalid address '{text}': expected base58 or {ADDRESS_LEN * 2} hex chars",
            raw=text,
        ) from None
    if len(data) != ADDRESS_LEN:
        raise ParseError(f"Base58 decoded to {len(data)} bytes, expected {ADDRESS_LEN}", raw=text)
    return data
