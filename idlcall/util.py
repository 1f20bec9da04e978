"""Utility helpers for idlcall."""

import re
from typing import Iterable, List

from .constants import WORD_MAX


_DECIMAL_RE = re.compile(r"[0-9]+")
_HEX_RE = re.compile(r"[0-9a-fA-F]*")


def snake_to_kebab(value: str) -> str:
    return value.replace("_", "-")


def kebab_to_snake(value: str) -> str:
    return value.replace("-", "_")


def to_pascal_case(value: str) -> str:
    return "".join(word[:1].upper() + word[1:] for word in value.split("_"))


def is_decimal(value: str) -> bool:
    return bool(_DECIMAL_RE.fullmatch(value))


def is_hex(value: str) -> bool:
    return bool(_HEX_RE.fullmatch(value))


def strip_hex_prefix(value: str) -> str:
    if value.startswith("0x") or value.startswith("0X"):
        return value[2:]
    return value


def words_to_bytes(words: Iterable[int]) -> bytes:
    out = bytearray()
    for word in words:
        out.extend(word.to_bytes(4, "little"))
    return bytes(out)


def bytes_to_words(data: bytes) -> List[int]:
    if len(data) % 4 != 0:
        raise ValueError(f"byte length {len(data)} is not a multiple of 4")
    return [int.from_bytes(data[i : i + 4], "little") for i in range(0, len(data), 4)]


def ensure_word(value: int) -> int:
    if not isinstance(value, int) or value < 0 or value > WORD_MAX:
        raise ValueError(f"{value!r} does not fit in a 32-bit word")
    return value
