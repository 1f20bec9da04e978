"""PDA (program derived address) computation from IDL seed recipes."""

from __future__ import annotations

import hashlib
from typing import Callable, Mapping, Optional, Sequence

from .constants import ADDRESS_LEN, PDA_DOMAIN
from .errors import CollaboratorError, IdlCallError, UnresolvedDependencyError, UnsupportedTypeError
from .idl import AccountSeed, ArgSeed, ConstSeed, Seed
from .util import words_to_bytes
from .values import FixedBytes, Str, U64, U128, Value

DeriveFn = Callable[[Sequence[int], bytes], bytes]


def default_derive(program_id: Sequence[int], seed: bytes) -> bytes:
    """SHA-256 over the domain tag, the program id bytes, and the seed."""
    hasher = hashlib.sha256()
    hasher.update(PDA_DOMAIN.ljust(ADDRESS_LEN, b"\0"))
    hasher.update(words_to_bytes(program_id))
    hasher.update(seed)
    return hasher.digest()


def _left_aligned(data: bytes, label: str) -> bytes:
    if len(data) > ADDRESS_LEN:
        raise IdlCallError(f"{label} is {len(data)} bytes, exceeds {ADDRESS_LEN}")
    return data.ljust(ADDRESS_LEN, b"\0")


def _right_aligned(value: int, width: int) -> bytes:
    return value.to_bytes(width, "big").rjust(ADDRESS_LEN, b"\0")


def arg_seed_bytes(name: str, value: Value) -> bytes:
    if isinstance(value, FixedBytes) and len(value.value) == ADDRESS_LEN:
        return value.value
    if isinstance(value, U64):
        return _right_aligned(value.value, 8)
    if isinstance(value, U128):
        return _right_aligned(value.value, 16)
    if isinstance(value, Str):
        return _left_aligned(value.value.encode("utf-8"), f"Arg seed '{name}'")
    raise UnsupportedTypeError(
        f"Arg seed '{name}' has unsupported seed type {type(value).__name__} "
        f"(expected [u8; {ADDRESS_LEN}], u64, u128, or string)"
    )


def seed_bytes(
    seed: Seed,
    resolved_accounts: Mapping[str, bytes],
    parsed_args: Mapping[str, Value],
) -> bytes:
    if isinstance(seed, ConstSeed):
        return _left_aligned(seed.value.encode("utf-8"), f"Const seed '{seed.value}'")
    if isinstance(seed, AccountSeed):
        address = resolved_accounts.get(seed.path)
        if address is None:
            raise UnresolvedDependencyError(
                seed.path,
                f"PDA seed references account '{seed.path}' which hasn't been resolved yet",
            )
        return address
    if isinstance(seed, ArgSeed):
        if seed.path not in parsed_args:
            raise UnresolvedDependencyError(
                seed.path,
                f"PDA seed references argument '{seed.path}' which was not provided",
            )
        return arg_seed_bytes(seed.path, parsed_args[seed.path])
    raise TypeError(f"not a seed: {seed!r}")


def xor_fold(values: Sequence[bytes]) -> bytes:
    out = bytearray(ADDRESS_LEN)
    for value in values:
        for idx, byte in enumerate(value):
            out[idx] ^= byte
    return bytes(out)


def derive_pda(
    seeds: Sequence[Seed],
    program_id: Optional[Sequence[int]],
    resolved_accounts: Mapping[str, bytes],
    parsed_args: Mapping[str, Value],
    derive: DeriveFn = default_derive,
) -> bytes:
    """Resolve every seed, combine them, and derive the account address.

    One seed is used as-is; several are folded with byte-wise XOR, which is
    order-independent.
    """
    if not seeds:
        raise IdlCallError("PDA requires at least one seed")
    if program_id is None:
        raise UnresolvedDependencyError(
            "program",
            "PDA derivation needs the program id; provide --program or --program-id",
        )
    parts = [seed_bytes(seed, resolved_accounts, parsed_args) for seed in seeds]
    combined = parts[0] if len(parts) == 1 else xor_fold(parts)
    try:
        address = derive(program_id, combined)
    except IdlCallError:
        raise
    except Exception as exc:
        raise CollaboratorError("address derivation", str(exc)) from exc
    if len(address) != ADDRESS_LEN:
        raise CollaboratorError(
            "address derivation", f"returned {len(address)} bytes, expected {ADDRESS_LEN}"
        )
    return bytes(address)
