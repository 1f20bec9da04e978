"""Word-stream serialization of typed values.

Output matches the 32-bit word serde format used by the target VM: every
scalar occupies at least one word, byte arrays are promoted one byte per
word, and variable-length data is prefixed with a length word.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

from .errors import EncodeError, IdlCallError, UnsupportedTypeError, with_context
from .types import FixedArray, ListType, Named, OptionalType, Primitive, TypeNode, is_byte_array, is_word_array, type_display
from .util import ensure_word
from .values import (
    Absent,
    Bool,
    BytesList,
    FixedBytes,
    FixedU32s,
    Opaque,
    Present,
    Str,
    U8,
    U32,
    U64,
    U128,
    Value,
)


def encode_instruction(selector: int, args: Sequence[Tuple[str, TypeNode, Value]]) -> List[int]:
    """Selector word followed by each ``(name, type, value)`` argument in declared order."""
    out = [ensure_word(selector)]
    for name, ty, value in args:
        try:
            encode_value(value, ty, out)
        except IdlCallError as exc:
            raise with_context(exc, f"argument '{name}'")
    return out


def encode_value(value: Value, ty: TypeNode, out: List[int]) -> None:
    if isinstance(value, Opaque) or isinstance(ty, Named):
        raise UnsupportedTypeError(
            f"Cannot serialize {type_display(ty)} value '{getattr(value, 'raw', value)}': "
            "opaque types need caller-provided encoding"
        )
    if isinstance(ty, Primitive):
        _encode_primitive(value, ty.name, out)
    elif isinstance(ty, FixedArray):
        _encode_array(value, ty, out)
    elif isinstance(ty, ListType):
        _encode_list(value, ty, out)
    elif isinstance(ty, OptionalType):
        if isinstance(value, Absent):
            out.append(0)
        elif isinstance(value, Present):
            out.append(1)
            encode_value(value.value, ty.inner, out)
        else:
            _mismatch(ty, value)
    else:
        raise EncodeError(f"not a type node: {ty!r}")


def encode_bytes_padded(data: bytes, out: List[int]) -> None:
    for idx in range(0, len(data), 4):
        out.append(int.from_bytes(data[idx : idx + 4].ljust(4, b"\0"), "little"))


def _mismatch(ty: TypeNode, value: Value) -> None:
    raise EncodeError(f"Type mismatch in serialization: type={type_display(ty)}, value={value!r}")


def _encode_primitive(value: Value, name: str, out: List[int]) -> None:
    if name == "bool" and isinstance(value, Bool):
        out.append(1 if value.value else 0)
    elif name == "u8" and isinstance(value, U8):
        out.append(value.value)
    elif name == "u32" and isinstance(value, U32):
        out.append(value.value)
    elif name == "u64" and isinstance(value, U64):
        out.append(value.value & 0xFFFF_FFFF)
        out.append(value.value >> 32)
    elif name == "u128" and isinstance(value, U128):
        encode_bytes_padded(value.value.to_bytes(16, "little"), out)
    elif name == "program_id" and isinstance(value, FixedU32s) and len(value.value) == 8:
        out.extend(value.value)
    elif name == "string" and isinstance(value, Str):
        try:
            data = value.value.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise EncodeError(f"String value is not valid UTF-8 at position {exc.start}") from None
        out.append(len(data))
        encode_bytes_padded(data, out)
    else:
        _mismatch(Primitive(name), value)


def _encode_array(value: Value, ty: FixedArray, out: List[int]) -> None:
    if is_byte_array(ty) and isinstance(value, FixedBytes) and len(value.value) == ty.length:
        out.extend(value.value)
    elif is_word_array(ty) and isinstance(value, FixedU32s) and len(value.value) == ty.length:
        out.extend(value.value)
    else:
        _mismatch(ty, value)


def _encode_list(value: Value, ty: ListType, out: List[int]) -> None:
    if not (is_byte_array(ty.element) and isinstance(value, BytesList)):
        _mismatch(ty, value)
        return
    out.append(len(value.value))
    for item in value.value:
        out.extend(item)


def format_words(words: Sequence[int]) -> str:
    return "[" + ", ".join(f"{w:08x}" for w in words) + "]"
