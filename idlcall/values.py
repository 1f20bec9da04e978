"""Typed values produced by the parser."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union


@dataclass(frozen=True)
class Bool:
    value: bool


@dataclass(frozen=True)
class U8:
    value: int


@dataclass(frozen=True)
class U32:
    value: int


@dataclass(frozen=True)
class U64:
    value: int


@dataclass(frozen=True)
class U128:
    value: int


@dataclass(frozen=True)
class Str:
    value: str


@dataclass(frozen=True)
class FixedBytes:
    value: bytes


@dataclass(frozen=True)
class FixedU32s:
    """``[u32; N]`` and ``program_id`` words."""

    value: Tuple[int, ...]


@dataclass(frozen=True)
class BytesList:
    value: Tuple[bytes, ...]


@dataclass(frozen=True)
class Absent:
    pass


@dataclass(frozen=True)
class Present:
    value: "Value"


@dataclass(frozen=True)
class Opaque:
    tag: str
    raw: str


Value = Union[Bool, U8, U32, U64, U128, Str, FixedBytes, FixedU32s, BytesList, Absent, Present, Opaque]


def _printable(data: bytes) -> str | None:
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        return None
    trimmed = text.rstrip("\0")
    if all(ch == " " or (ch.isascii() and ch.isprintable()) for ch in trimmed):
        return trimmed
    return None


def format_value(value: Value) -> str:
    if isinstance(value, Bool):
        return "true" if value.value else "false"
    if isinstance(value, (U8, U32, U64, U128)):
        return str(value.value)
    if isinstance(value, Str):
        return f'"{value.value}"'
    if isinstance(value, FixedBytes):
        text = _printable(value.value)
        if text is not None and text:
            return f'"{text}" (hex: {value.value.hex()})'
        return f"0x{value.value.hex()}"
    if isinstance(value, FixedU32s):
        return "[" + ", ".join(str(v) for v in value.value) + "]"
    if isinstance(value, BytesList):
        return "[" + ", ".join(f"0x{item.hex()}" for item in value.value) + "]"
    if isinstance(value, Absent):
        return "None"
    if isinstance(value, Present):
        return f"Some({format_value(value.value)})"
    return f"{value.tag}({value.raw})"
