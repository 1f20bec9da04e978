"""IDL document loading and validation."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from .constants import ACCOUNT_FLAG_SUFFIX, ADDRESS_LEN, ALLOWED_SEED_KINDS, SEED_ACCOUNT, SEED_ARG, SEED_CONST
from .errors import IdlValidationError
from .types import TypeNode, type_from_json, type_to_json
from .util import kebab_to_snake, snake_to_kebab


@dataclass(frozen=True)
class ConstSeed:
    value: str


@dataclass(frozen=True)
class AccountSeed:
    path: str


@dataclass(frozen=True)
class ArgSeed:
    path: str


Seed = Union[ConstSeed, AccountSeed, ArgSeed]


@dataclass(frozen=True)
class AccountItem:
    name: str
    writable: bool = False
    signer: bool = False
    init: bool = False
    owner: Optional[str] = None
    seeds: Optional[Tuple[Seed, ...]] = None
    rest: bool = False

    @property
    def is_pda(self) -> bool:
        return self.seeds is not None

    @property
    def flag(self) -> str:
        return snake_to_kebab(self.name) + ACCOUNT_FLAG_SUFFIX


@dataclass(frozen=True)
class Arg:
    name: str
    type: TypeNode

    @property
    def flag(self) -> str:
        return snake_to_kebab(self.name)


@dataclass(frozen=True)
class Instruction:
    name: str
    accounts: Tuple[AccountItem, ...]
    args: Tuple[Arg, ...]

    @property
    def command(self) -> str:
        return snake_to_kebab(self.name)

    def account(self, name: str) -> Optional[AccountItem]:
        for acc in self.accounts:
            if acc.name == name:
                return acc
        return None

    def arg(self, name: str) -> Optional[Arg]:
        for arg in self.args:
            if arg.name == name:
                return arg
        return None


@dataclass
class Idl:
    name: str
    version: str
    instructions: List[Instruction]
    accounts: List[Any] = field(default_factory=list)
    types: List[Any] = field(default_factory=list)
    errors: List[Any] = field(default_factory=list)

    def find_instruction(self, name: str) -> Optional[Instruction]:
        wanted = kebab_to_snake(name)
        for ix in self.instructions:
            if ix.name == wanted:
                return ix
        return None

    def selector(self, instruction: Instruction) -> int:
        for idx, ix in enumerate(self.instructions):
            if ix.name == instruction.name:
                return idx
        raise ValueError(f"Instruction '{instruction.name}' is not part of IDL '{self.name}'")


def _parse_seed(raw: Any, where: str, err) -> Optional[Seed]:
    if not isinstance(raw, dict):
        err(f"{where}: seed must be a table")
        return None
    kind = raw.get("kind")
    if kind == SEED_CONST:
        value = raw.get("value")
        if not isinstance(value, str):
            err(f"{where}: const seed requires a string value")
            return None
        return ConstSeed(value)
    if kind in (SEED_ACCOUNT, SEED_ARG):
        path = raw.get("path")
        if not isinstance(path, str) or not path:
            err(f"{where}: {kind} seed requires a path")
            return None
        return AccountSeed(path) if kind == SEED_ACCOUNT else ArgSeed(path)
    err(f"{where}: unknown seed kind {kind!r} (expected one of {sorted(ALLOWED_SEED_KINDS)})")
    return None


def _parse_account(raw: Any, where: str, err) -> Optional[AccountItem]:
    if not isinstance(raw, dict):
        err(f"{where}: account must be a table")
        return None
    name = raw.get("name")
    if not isinstance(name, str) or not name:
        err(f"{where}: account name missing")
        return None
    where = f"{where} ({name})"
    for key in ("writable", "signer", "init", "rest"):
        if key in raw and not isinstance(raw[key], bool):
            err(f"{where}: {key} must be a boolean")
    seeds: Optional[Tuple[Seed, ...]] = None
    pda = raw.get("pda")
    if pda is not None:
        raw_seeds = pda.get("seeds") if isinstance(pda, dict) else None
        if not isinstance(raw_seeds, list):
            err(f"{where}: pda.seeds must be a list")
        else:
            parsed = [_parse_seed(s, f"{where} seed {i}", err) for i, s in enumerate(raw_seeds)]
            seeds = tuple(s for s in parsed if s is not None)
    owner = raw.get("owner")
    return AccountItem(
        name=name,
        writable=raw.get("writable") is True,
        signer=raw.get("signer") is True,
        init=raw.get("init") is True,
        owner=owner if isinstance(owner, str) else None,
        seeds=seeds,
        rest=raw.get("rest") is True,
    )


def _parse_arg(raw: Any, where: str, err) -> Optional[Arg]:
    if not isinstance(raw, dict):
        err(f"{where}: arg must be a table")
        return None
    name = raw.get("name")
    if not isinstance(name, str) or not name:
        err(f"{where}: arg name missing")
        return None
    try:
        ty = type_from_json(raw.get("type"))
    except ValueError as exc:
        err(f"{where} ({name}): {exc}")
        return None
    return Arg(name=name, type=ty)


def parse_idl(data: Dict[str, Any]) -> Idl:
    errors: List[str] = []

    def err(msg: str) -> None:
        errors.append(msg)

    if not isinstance(data, dict):
        raise IdlValidationError("IDL must be a JSON object")
    name = data.get("name")
    version = data.get("version")
    if not isinstance(name, str) or not name:
        err("IDL name missing")
    if not isinstance(version, str) or not version:
        err("IDL version missing")
    raw_instructions = data.get("instructions")
    instructions: List[Instruction] = []
    if not isinstance(raw_instructions, list):
        err("IDL instructions must be a list")
        raw_instructions = []
    for idx, raw_ix in enumerate(raw_instructions):
        if not isinstance(raw_ix, dict) or not isinstance(raw_ix.get("name"), str):
            err(f"instruction {idx}: name missing")
            continue
        ix_name = raw_ix["name"]
        raw_accounts = raw_ix.get("accounts", [])
        raw_args = raw_ix.get("args", [])
        if not isinstance(raw_accounts, list):
            err(f"instruction {ix_name}: accounts must be a list")
            raw_accounts = []
        if not isinstance(raw_args, list):
            err(f"instruction {ix_name}: args must be a list")
            raw_args = []
        accounts = [
            _parse_account(a, f"instruction {ix_name} account {i}", err) for i, a in enumerate(raw_accounts)
        ]
        args = [_parse_arg(a, f"instruction {ix_name} arg {i}", err) for i, a in enumerate(raw_args)]
        instructions.append(
            Instruction(
                name=ix_name,
                accounts=tuple(a for a in accounts if a is not None),
                args=tuple(a for a in args if a is not None),
            )
        )
    raise_on_errors(errors)

    def _table(key: str) -> List[Any]:
        value = data.get(key)
        return value if isinstance(value, list) else []

    idl = Idl(
        name=name,
        version=version,
        instructions=instructions,
        accounts=_table("accounts"),
        types=_table("types"),
        errors=_table("errors"),
    )
    raise_on_errors(validate_idl(idl))
    return idl


def validate_idl(idl: Idl) -> List[str]:
    errors: List[str] = []

    def err(msg: str) -> None:
        errors.append(msg)

    seen_ix: set[str] = set()
    for ix in idl.instructions:
        if ix.name in seen_ix:
            err(f"Duplicate instruction: {ix.name}")
        seen_ix.add(ix.name)

        flags: set[str] = set()
        for acc in ix.accounts:
            if acc.flag in flags:
                err(f"{ix.name}: duplicate account {acc.name}")
            flags.add(acc.flag)
        for arg in ix.args:
            if arg.flag in flags:
                err(f"{ix.name}: duplicate argument {arg.name}")
            flags.add(arg.flag)

        rest_accounts = [acc for acc in ix.accounts if acc.rest]
        for acc in rest_accounts:
            if acc.is_pda:
                err(f"{ix.name}: rest account {acc.name} cannot be a PDA")
        if len(rest_accounts) > 1:
            err(f"{ix.name}: at most one rest account is allowed")

        for acc in ix.accounts:
            if acc.seeds is None:
                continue
            if not acc.seeds:
                err(f"{ix.name}: PDA account {acc.name} has no seeds")
            for seed in acc.seeds:
                if isinstance(seed, ConstSeed) and len(seed.value.encode("utf-8")) > ADDRESS_LEN:
                    err(f"{ix.name}: const seed '{seed.value}' of {acc.name} exceeds {ADDRESS_LEN} bytes")
                elif isinstance(seed, ArgSeed) and ix.arg(seed.path) is None:
                    err(f"{ix.name}: seed of {acc.name} references unknown argument '{seed.path}'")
                elif isinstance(seed, AccountSeed) and seed.path == acc.name:
                    err(f"{ix.name}: PDA account {acc.name} cannot seed itself")
                elif isinstance(seed, AccountSeed) and any(r.name == seed.path for r in rest_accounts):
                    err(f"{ix.name}: seed of {acc.name} references rest account '{seed.path}'")
    return errors


def raise_on_errors(errors: List[str]) -> None:
    if errors:
        raise IdlValidationError("\n".join(errors))


def load_idl(path: Union[str, Path]) -> Idl:
    idl_path = Path(path)
    if not idl_path.exists():
        raise FileNotFoundError(f"IDL not found: {idl_path}")
    try:
        data = json.loads(idl_path.read_text())
    except json.JSONDecodeError as exc:
        raise IdlValidationError(f"IDL {idl_path} is not valid JSON: {exc}") from exc
    return parse_idl(data)


def instruction_to_json(ix: Instruction) -> Dict[str, Any]:
    accounts: List[Dict[str, Any]] = []
    for acc in ix.accounts:
        entry: Dict[str, Any] = {
            "name": acc.name,
            "writable": acc.writable,
            "signer": acc.signer,
            "init": acc.init,
        }
        if acc.owner:
            entry["owner"] = acc.owner
        if acc.seeds is not None:
            seeds: List[Dict[str, str]] = []
            for seed in acc.seeds:
                if isinstance(seed, ConstSeed):
                    seeds.append({"kind": SEED_CONST, "value": seed.value})
                elif isinstance(seed, AccountSeed):
                    seeds.append({"kind": SEED_ACCOUNT, "path": seed.path})
                else:
                    seeds.append({"kind": SEED_ARG, "path": seed.path})
            entry["pda"] = {"seeds": seeds}
        if acc.rest:
            entry["rest"] = True
        accounts.append(entry)
    return {
        "name": ix.name,
        "accounts": accounts,
        "args": [{"name": arg.name, "type": type_to_json(arg.type)} for arg in ix.args],
    }
