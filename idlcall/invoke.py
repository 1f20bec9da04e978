"""Instruction invocation: parse raw args, resolve accounts, build the payload."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .constants import ACCOUNT_FLAG_SUFFIX, PROGRAM_ID_ARG_SUFFIX
from .errors import (
    CollaboratorError,
    IdlCallError,
    InvocationError,
    MissingFieldsError,
    ParseError,
    UnresolvedDependencyError,
    with_context,
)
from .idl import AccountItem, AccountSeed, Idl, Instruction
from .parse import parse_address, parse_address_list, parse_value
from .pda import DeriveFn, default_derive, derive_pda
from .program import ProgramId, extract_program_id
from .serialize import encode_instruction, format_words
from .types import TypeNode, is_primitive
from .util import snake_to_kebab, to_pascal_case
from .values import Value, format_value

ExtractFn = Callable[[str], ProgramId]


@dataclass(frozen=True)
class ResolvedAccount:
    name: str
    addresses: Tuple[bytes, ...]
    writable: bool = False
    signer: bool = False
    init: bool = False
    pda: bool = False
    rest: bool = False

    def flags(self) -> List[str]:
        out = []
        if self.writable:
            out.append("mut")
        if self.signer:
            out.append("signer")
        if self.init:
            out.append("init")
        return out


@dataclass(frozen=True)
class ParsedArg:
    name: str
    type: TypeNode
    value: Value


@dataclass(frozen=True)
class AssembledInstruction:
    """Everything the signing/submission collaborator needs."""

    program_id: Optional[ProgramId]
    account_ids: Tuple[bytes, ...]
    signers: Tuple[bytes, ...]
    data: Tuple[int, ...]


@dataclass
class Preview:
    instruction: str
    selector: int
    program_id: Optional[ProgramId]
    accounts: List[ResolvedAccount]
    args: List[ParsedArg]
    words: List[int]
    notes: List[str] = field(default_factory=list)

    def lines(self) -> List[str]:
        out = [f"Instruction: {self.instruction}", ""]
        for note in self.notes:
            out.append(f"  info: {note}")
        if self.notes:
            out.append("")
        out.append("Accounts:")
        for acc in self.accounts:
            flags = acc.flags()
            label = acc.name + (f" [{', '.join(flags)}]" if flags else "")
            if acc.pda:
                label += " (PDA)"
            if acc.rest:
                joined = ", ".join(f"0x{addr.hex()}" for addr in acc.addresses)
                out.append(f"  {label} -> [{joined}]")
            else:
                out.append(f"  {label} -> 0x{acc.addresses[0].hex()}")
        out.append("")
        out.append("Arguments (parsed):")
        for arg in self.args:
            out.append(f"  {arg.name} = {format_value(arg.value)}")
        out.append("")
        out.append("Transaction:")
        if self.program_id is None:
            out.append("  program id: <not resolved>")
        else:
            out.append(f"  program id: {','.join(str(w) for w in self.program_id)}")
        out.append(f"  instruction index: {self.selector}")
        out.append(f"  instruction: {to_pascal_case(self.instruction)} {{")
        for arg in self.args:
            out.append(f"    {arg.name}: {format_value(arg.value)},")
        out.append("  }")
        out.append("")
        out.append(f"  Serialized instruction data ({len(self.words)} u32 words):")
        out.append(f"    {format_words(self.words)}")
        return out


@dataclass
class Invocation:
    instruction: Instruction
    assembled: AssembledInstruction
    preview: Preview


def fill_program_ids(
    instruction: Instruction,
    raw_args: Dict[str, str],
    extra_binaries: Mapping[str, str],
    extract: ExtractFn = extract_program_id,
) -> List[str]:
    """Fill missing ``program_id`` args from companion binaries, in place.

    ``--bin-token`` fills ``--token-program-id`` (or ``--token`` when that is
    itself a program_id arg). Binaries that cannot be read are skipped.
    """
    notes: List[str] = []
    for key, path in extra_binaries.items():
        target = None
        for candidate in (key, key + PROGRAM_ID_ARG_SUFFIX):
            arg = next((a for a in instruction.args if a.flag == candidate), None)
            if arg is not None and is_primitive(arg.type, "program_id"):
                target = arg
                break
        if target is None or target.flag in raw_args:
            continue
        try:
            words = extract(path)
        except (IdlCallError, OSError):
            continue
        raw_args[target.flag] = ",".join(str(w) for w in words)
        notes.append(f"Auto-filled --{target.flag} from {path}")
    return notes


def missing_fields(instruction: Instruction, raw_args: Mapping[str, str]) -> List[str]:
    missing = [f"--{arg.flag}" for arg in instruction.args if arg.flag not in raw_args]
    for acc in instruction.accounts:
        if not acc.is_pda and acc.flag not in raw_args:
            missing.append(f"--{acc.flag}")
    return missing


def _insert(resolved: Dict[str, bytes], name: str, address: bytes) -> None:
    if name in resolved:
        raise IdlCallError(f"Account '{name}' resolved twice")
    resolved[name] = address


def _resolve_seed_accounts(
    instruction: Instruction,
    acc: AccountItem,
    raw_args: Mapping[str, str],
    resolved: Dict[str, bytes],
    notes: List[str],
) -> None:
    for seed in acc.seeds or ():
        if not isinstance(seed, AccountSeed) or seed.path in resolved:
            continue
        target = instruction.account(seed.path)
        if target is not None and target.is_pda:
            raise UnresolvedDependencyError(
                seed.path,
                f"PDA '{acc.name}' references PDA '{seed.path}' which is declared after it",
            )
        flag = snake_to_kebab(seed.path) + ACCOUNT_FLAG_SUFFIX
        raw = raw_args.get(flag)
        if raw is None:
            raise UnresolvedDependencyError(
                seed.path,
                f"PDA '{acc.name}' requires account '{seed.path}'; provide --{flag}",
            )
        _insert(resolved, seed.path, parse_address(raw, field=flag))
        notes.append(f"Using --{flag} for PDA seed '{seed.path}'")


def prepare_invocation(
    idl: Idl,
    instruction: Instruction,
    raw_args: Mapping[str, str],
    program_id: Optional[ProgramId] = None,
    extra_binaries: Optional[Mapping[str, str]] = None,
    derive: DeriveFn = default_derive,
    extract: ExtractFn = extract_program_id,
) -> Invocation:
    """Run one invocation up to (not including) dispatch.

    ``raw_args`` is keyed by kebab-case flag name without dashes: argument
    names, and ``<account>-account`` for accounts. All missing fields are
    reported together, as are all parse errors; later steps fail fast.
    """
    raw = dict(raw_args)
    notes = fill_program_ids(instruction, raw, extra_binaries or {}, extract)

    missing = missing_fields(instruction, raw)
    if missing:
        raise MissingFieldsError(missing)

    errors: List[IdlCallError] = []
    parsed: Dict[str, Value] = {}
    for arg in instruction.args:
        try:
            parsed[arg.name] = parse_value(raw[arg.flag], arg.type, field=arg.flag)
        except ParseError as exc:
            errors.append(exc)
    addresses: Dict[str, Tuple[bytes, ...]] = {}
    for acc in instruction.accounts:
        if acc.is_pda:
            continue
        try:
            if acc.rest:
                addresses[acc.name] = tuple(parse_address_list(raw[acc.flag], field=acc.flag))
            else:
                addresses[acc.name] = (parse_address(raw[acc.flag], field=acc.flag),)
        except ParseError as exc:
            errors.append(exc)
    if errors:
        raise InvocationError(errors)

    resolved: Dict[str, bytes] = {}
    for acc in instruction.accounts:
        if not acc.is_pda and not acc.rest:
            _insert(resolved, acc.name, addresses[acc.name][0])
    for acc in instruction.accounts:
        if not acc.is_pda:
            continue
        try:
            _resolve_seed_accounts(instruction, acc, raw, resolved, notes)
            address = derive_pda(acc.seeds or (), program_id, resolved, parsed, derive=derive)
        except IdlCallError as exc:
            raise with_context(exc, f"Failed to compute PDA for '{acc.name}'")
        _insert(resolved, acc.name, address)
        addresses[acc.name] = (address,)

    accounts: List[ResolvedAccount] = []
    account_ids: List[bytes] = []
    signers: List[bytes] = []
    for acc in instruction.accounts:
        entry = ResolvedAccount(
            name=acc.name,
            addresses=addresses[acc.name],
            writable=acc.writable,
            signer=acc.signer,
            init=acc.init,
            pda=acc.is_pda,
            rest=acc.rest,
        )
        accounts.append(entry)
        account_ids.extend(entry.addresses)
        if acc.signer:
            signers.extend(entry.addresses)

    selector = idl.selector(instruction)
    args = [ParsedArg(arg.name, arg.type, parsed[arg.name]) for arg in instruction.args]
    words = encode_instruction(selector, [(a.name, a.type, a.value) for a in args])

    assembled = AssembledInstruction(
        program_id=tuple(program_id) if program_id is not None else None,
        account_ids=tuple(account_ids),
        signers=tuple(dict.fromkeys(signers)),
        data=tuple(words),
    )
    preview = Preview(
        instruction=instruction.name,
        selector=selector,
        program_id=assembled.program_id,
        accounts=accounts,
        args=args,
        words=words,
        notes=notes,
    )
    return Invocation(instruction=instruction, assembled=assembled, preview=preview)


Dispatcher = Callable[[AssembledInstruction], Any]


def dispatch_invocation(invocation: Invocation, dispatcher: Dispatcher) -> Any:
    """Hand the assembled instruction to the signing/submission collaborator."""
    if invocation.assembled.program_id is None:
        raise UnresolvedDependencyError(
            "program", "Submitting needs the program id; provide --program or --program-id"
        )
    try:
        return dispatcher(invocation.assembled)
    except IdlCallError:
        raise
    except Exception as exc:
        raise CollaboratorError("submission", str(exc)) from exc



def execute_invocation(
    invocation: Invocation,
    dispatcher: Optional[Dispatcher] = None,
    dry_run: bool = False,
) -> Any:
    """Dispatch unless ``dry_run``; returns the dispatcher's result, or None."""
    if dry_run:
        return None
    if dispatcher is None:
        raise ValueError("A dispatcher is required unless dry_run is set")
    return dispatch_invocation(invocation, dispatcher)
