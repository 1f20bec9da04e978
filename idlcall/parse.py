"""Type-directed parsing of CLI strings into typed values."""

from __future__ import annotations

from typing import List, Optional

from .constants import ADDRESS_LEN, BOOL_FALSE, BOOL_TRUE, OPTION_NONE, PROGRAM_ID_WORDS, UINT_MAX
from .encoding import decode_address, hex_decode
from .errors import ParseError
from .types import FixedArray, ListType, Named, OptionalType, Primitive, TypeNode, is_byte_array, type_display
from .util import bytes_to_words, is_decimal, is_hex, strip_hex_prefix
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

_UINT_VALUES = {"u8": U8, "u32": U32, "u64": U64, "u128": U128}


def parse_value(raw: str, ty: TypeNode, field: Optional[str] = None) -> Value:
    """Parse ``raw`` according to ``ty``.

    Raises ParseError carrying the raw text; when ``field`` is given the
    error is re-labelled with it so it can be shown to the user as-is.
    """
    try:
        return _parse(raw, ty)
    except ParseError as exc:
        if field:
            raise exc.for_field(field) from None
        raise


def parse_address(raw: str, field: Optional[str] = None) -> bytes:
    try:
        return decode_address(raw)
    except ParseError as exc:
        if field:
            raise exc.for_field(field) from None
        raise


def parse_address_list(raw: str, field: Optional[str] = None) -> List[bytes]:
    if not raw.strip():
        return []
    out: List[bytes] = []
    for idx, part in enumerate(raw.split(",")):
        try:
            out.append(decode_address(part.strip()))
        except ParseError as exc:
            err = ParseError(f"Element [{idx}]: {exc.message}", raw=raw)
            raise (err.for_field(field) if field else err) from None
    return out


def _parse(raw: str, ty: TypeNode) -> Value:
    if isinstance(ty, Primitive):
        return _parse_primitive(raw, ty.name)
    if isinstance(ty, FixedArray):
        return _parse_array(raw, ty)
    if isinstance(ty, ListType):
        return _parse_list(raw, ty)
    if isinstance(ty, OptionalType):
        if raw in OPTION_NONE:
            return Absent()
        return Present(_parse(raw, ty.inner))
    if isinstance(ty, Named):
        return Opaque(ty.identifier, raw)
    raise TypeError(f"not a type node: {ty!r}")


def _too_many_digits(digits: str, limit: int) -> bool:
    return len(digits.lstrip("0")) > len(str(limit))


def _utf8(raw: str) -> bytes:
    try:
        return raw.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise ParseError(f"Invalid UTF-8 text at position {exc.start}", raw=raw) from None


def _parse_uint(raw: str, name: str) -> int:
    if not is_decimal(raw):
        raise ParseError(f"Invalid {name} '{raw}': expected a base-10 integer", raw=raw)
    if _too_many_digits(raw, UINT_MAX[name]):
        raise ParseError(
            f"Invalid {name}: {len(raw)}-digit value out of range (max {UINT_MAX[name]})",
            raw=raw,
        )
    value = int(raw.lstrip("0") or "0", 10)
    if value > UINT_MAX[name]:
        raise ParseError(f"Invalid {name} '{raw}': out of range (max {UINT_MAX[name]})", raw=raw)
    return value


def _parse_primitive(raw: str, name: str) -> Value:
    if name in _UINT_VALUES:
        return _UINT_VALUES[name](_parse_uint(raw, name))
    if name == "bool":
        if raw in BOOL_TRUE:
            return Bool(True)
        if raw in BOOL_FALSE:
            return Bool(False)
        raise ParseError(f"Invalid bool '{raw}': expected true/false", raw=raw)
    if name == "string":
        _utf8(raw)
        return Str(raw)
    if name == "program_id":
        return _parse_program_id(raw)
    raise ParseError(f"Unsupported primitive '{name}'", raw=raw)


def _parse_program_id_word(part: str, idx: int) -> int:
    if part[:2] in ("0x", "0X"):
        digits = part[2:]
        if digits and is_hex(digits) and int(digits, 16) <= UINT_MAX["u32"]:
            return int(digits, 16)
    elif is_decimal(part) and not _too_many_digits(part, UINT_MAX["u32"]):
        value = int(part.lstrip("0") or "0", 10)
        if value <= UINT_MAX["u32"]:
            return value
    raise ParseError(f"ProgramId[{idx}] invalid u32 '{part}'", raw=part)


def _parse_program_id(raw: str) -> FixedU32s:
    if "," in raw:
        parts = [p.strip() for p in raw.split(",")]
        if len(parts) != PROGRAM_ID_WORDS:
            raise ParseError(
                f"ProgramId needs {PROGRAM_ID_WORDS} u32 values, got {len(parts)}",
                raw=raw,
            )
        return FixedU32s(tuple(_parse_program_id_word(p, i) for i, p in enumerate(parts)))
    if len(raw) == PROGRAM_ID_WORDS * 8 and is_hex(raw):
        return FixedU32s(tuple(bytes_to_words(hex_decode(raw))))
    raise ParseError(
        f"Invalid ProgramId '{raw}': expected {PROGRAM_ID_WORDS} comma-separated u32 values "
        f"or {PROGRAM_ID_WORDS * 8} hex chars",
        raw=raw,
    )


def _parse_array(raw: str, ty: FixedArray) -> Value:
    size = ty.length
    if is_byte_array(ty):
        if len(raw) == size * 2 and is_hex(raw):
            return FixedBytes(hex_decode(raw))
        if raw.startswith("0x") or raw.startswith("0X"):
            data = hex_decode(raw[2:])
            if len(data) != size:
                raise ParseError(f"Expected {size} bytes from hex, got {len(data)}", raw=raw)
            return FixedBytes(data)
        encoded = _utf8(raw)
        if len(encoded) > size:
            raise ParseError(
                f"String '{raw}' is {len(encoded)} bytes, max {size} for [u8; {size}]",
                raw=raw,
            )
        return FixedBytes(encoded.ljust(size, b"\0"))
    if isinstance(ty.element, Primitive) and ty.element.name == "u32":
        parts = [p.strip() for p in raw.split(",")] if raw.strip() else []
        if len(parts) != size:
            raise ParseError(f"Expected {size} u32 values, got {len(parts)}", raw=raw)
        return FixedU32s(tuple(_parse_uint(p, "u32") for p in parts))
    return Opaque(type_display(ty), raw)


def _parse_list(raw: str, ty: ListType) -> Value:
    if not is_byte_array(ty.element):
        return Opaque(type_display(ty), raw)
    size = ty.element.length
    if raw == "":
        return BytesList(())
    items: List[bytes] = []
    for idx, part in enumerate(p.strip() for p in raw.split(",")):
        try:
            if size == ADDRESS_LEN:
                data = decode_address(part)
            else:
                data = hex_decode(strip_hex_prefix(part))
        except ParseError as exc:
            raise ParseError(f"Element [{idx}]: {exc.message}", raw=raw) from None
        if len(data) != size:
            raise ParseError(
                f"Element [{idx}]: expected {size} bytes, got {len(data)} from '{part}'",
                raw=raw,
            )
        items.append(data)
    return BytesList(tuple(items))
