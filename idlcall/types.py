"""Type model for IDL arguments.

A type node is one of five frozen shapes. Parsing and encoding dispatch on
the shape with a closed ``isinstance`` chain, so adding a kind means touching
``parse.py`` and ``serialize.py`` and nothing else.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from .constants import PRIMITIVE_ALIASES, PRIMITIVES


@dataclass(frozen=True)
class Primitive:
    name: str


@dataclass(frozen=True)
class FixedArray:
    element: "TypeNode"
    length: int


@dataclass(frozen=True)
class ListType:
    element: "TypeNode"


@dataclass(frozen=True)
class OptionalType:
    inner: "TypeNode"


@dataclass(frozen=True)
class Named:
    identifier: str


TypeNode = Union[Primitive, FixedArray, ListType, OptionalType, Named]


def is_primitive(ty: TypeNode, name: str) -> bool:
    return isinstance(ty, Primitive) and ty.name == name


def is_byte_array(ty: TypeNode) -> bool:
    return isinstance(ty, FixedArray) and is_primitive(ty.element, "u8")


def is_word_array(ty: TypeNode) -> bool:
    return isinstance(ty, FixedArray) and is_primitive(ty.element, "u32")


def type_from_json(raw: Any) -> TypeNode:
    """Build a type node from its IDL JSON form.

    Unknown primitive names (``"i32"``, ``"u16"``...) become ``Named`` so the
    rest of the pipeline treats them as opaque instead of failing at load.
    """
    if isinstance(raw, str):
        name = PRIMITIVE_ALIASES.get(raw, raw)
        if name in PRIMITIVES:
            return Primitive(name)
        return Named(raw)
    if isinstance(raw, dict) and len(raw) == 1:
        key, value = next(iter(raw.items()))
        if key == "vec":
            return ListType(type_from_json(value))
        if key == "option":
            return OptionalType(type_from_json(value))
        if key == "defined":
            if not isinstance(value, str) or not value:
                raise ValueError("defined type must name a type")
            return Named(value)
        if key == "array":
            if not isinstance(value, list) or len(value) != 2:
                raise ValueError("array type must be [element, length]")
            element, length = value
            if not isinstance(length, int) or isinstance(length, bool) or length < 0:
                raise ValueError(f"array length must be a non-negative integer, got {length!r}")
            return FixedArray(type_from_json(element), length)
    raise ValueError(f"Unsupported IDL type: {raw!r}")


def type_to_json(ty: TypeNode) -> Any:
    if isinstance(ty, Primitive):
        return ty.name
    if isinstance(ty, FixedArray):
        return {"array": [type_to_json(ty.element), ty.length]}
    if isinstance(ty, ListType):
        return {"vec": type_to_json(ty.element)}
    if isinstance(ty, OptionalType):
        return {"option": type_to_json(ty.inner)}
    return {"defined": ty.identifier}


def type_display(ty: TypeNode) -> str:
    if isinstance(ty, Primitive):
        return ty.name
    if isinstance(ty, FixedArray):
        return f"[{type_display(ty.element)}; {ty.length}]"
    if isinstance(ty, ListType):
        return f"Vec<{type_display(ty.element)}>"
    if isinstance(ty, OptionalType):
        return f"Option<{type_display(ty.inner)}>"
    return ty.identifier


def type_hint(ty: TypeNode) -> str:
    """Short input-format hint used in CLI help."""
    if isinstance(ty, Primitive):
        if ty.name in {"u8", "u32", "u64", "u128"}:
            return "NUMBER"
        if ty.name == "program_id":
            return "u32,u32,...(x8)|HEX64"
        if ty.name == "bool":
            return "true|false"
        return ty.name.upper()
    if isinstance(ty, FixedArray):
        if is_byte_array(ty):
            return f"HEX{ty.length * 2}|STR<={ty.length}"
        return f"[_; {ty.length}]"
    if isinstance(ty, ListType):
        if is_byte_array(ty.element):
            if ty.element.length == 32:
                return "ADDR,..."
            return f"HEX{ty.element.length * 2},..."
        return "LIST"
    if isinstance(ty, OptionalType):
        return f"OPT<{type_hint(ty.inner)}>"
    return ty.identifier
