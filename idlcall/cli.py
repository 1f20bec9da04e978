"""IDL-driven command line: one subcommand per program instruction."""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Dict, List, Optional, Tuple

from .config import RuntimeContext, load_config, resolve_runtime_context
from .constants import ACCOUNT_FLAG_SUFFIX
from .errors import IdlCallError
from .idl import AccountSeed, Idl, Instruction, instruction_to_json, load_idl
from .invoke import execute_invocation, prepare_invocation
from .program import ProgramId, extract_program_id, format_program_id, parse_program_id_text
from .transport import SequencerClient, SequencerDispatcher
from .types import type_display, type_hint
from .util import snake_to_kebab
from .wallet import Wallet

BIN_PREFIX = "--bin-"
FIELD_DEST = "field:"
BUILTIN_COMMANDS = {"idl", "inspect"}

# Global options that consume the following token.
_VALUE_OPTIONS = {"-i", "--idl", "-p", "--program", "--program-id", "--config", "--sequencer-url", "--wallet"}


def split_argv(argv: List[str]) -> Tuple[List[str], Dict[str, str], List[str]]:
    """Split into (global options, ``--bin-<name>`` binaries, command and its flags)."""
    globals_: List[str] = []
    binaries: Dict[str, str] = {}
    idx = 0
    while idx < len(argv):
        token = argv[idx]
        if token.startswith(BIN_PREFIX):
            name, sep, value = token[len(BIN_PREFIX) :].partition("=")
            if not sep:
                if idx + 1 >= len(argv):
                    raise ValueError(f"{token} requires a FILE argument")
                value = argv[idx + 1]
                idx += 1
            if not name:
                raise ValueError(f"Invalid option {token}: expected --bin-<name> FILE")
            binaries[name] = value
        elif token.startswith("-"):
            globals_.append(token)
            if token in _VALUE_OPTIONS and idx + 1 < len(argv):
                globals_.append(argv[idx + 1])
                idx += 1
        else:
            break
        idx += 1
    return globals_, binaries, argv[idx:]


def _add_global_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-i", "--idl", help="IDL JSON file")
    parser.add_argument("-p", "--program", help="Program binary (program id is read from it)")
    parser.add_argument("--program-id", help="Program id as 8 comma-separated u32s or 64 hex chars")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print parsed/serialized data without submitting",
    )
    parser.add_argument("--no-wait", action="store_true", help="Submit without waiting for confirmation")
    parser.add_argument("--config", help="Config file (default: ./idlcall.toml)")
    parser.add_argument("--sequencer-url", help="Sequencer JSON-RPC endpoint")
    parser.add_argument("--wallet", help="Directory of JSON keypair files")


def _global_parser(add_help: bool) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=os.path.basename(sys.argv[0]) or "idlcall",
        add_help=add_help,
        allow_abbrev=False,
        epilog="--bin-<NAME> FILE  additional program binary (auto-fills --<NAME>-program-id)",
    )
    _add_global_options(parser)
    return parser


def _seed_only_accounts(ix: Instruction) -> List[str]:
    """Account seed paths not declared by the instruction itself."""
    out: List[str] = []
    for acc in ix.accounts:
        for seed in acc.seeds or ():
            if isinstance(seed, AccountSeed) and ix.account(seed.path) is None and seed.path not in out:
                out.append(seed.path)
    return out


def _add_instruction_parser(sub, ix: Instruction) -> None:
    if ix.command in BUILTIN_COMMANDS:
        raise ValueError(f"Instruction '{ix.name}' collides with built-in command '{ix.command}'")
    p_ix = sub.add_parser(
        ix.command,
        help=f"{ix.name}: {len(ix.accounts)} account(s), {len(ix.args)} arg(s)",
        allow_abbrev=False,
    )
    for acc in ix.accounts:
        if acc.is_pda:
            continue
        if acc.rest:
            help_text = f"Account IDs for '{acc.name}' (comma-separated)"
            metavar = "ADDR,..."
        else:
            help_text = f"Account ID for '{acc.name}' (base58 or 64 hex chars)"
            metavar = "ADDR"
        p_ix.add_argument(f"--{acc.flag}", dest=FIELD_DEST + acc.flag, metavar=metavar, help=help_text)
    for path in _seed_only_accounts(ix):
        flag = snake_to_kebab(path) + ACCOUNT_FLAG_SUFFIX
        p_ix.add_argument(
            f"--{flag}",
            dest=FIELD_DEST + flag,
            metavar="ADDR",
            help=f"Account ID used as PDA seed '{path}'",
        )
    for arg in ix.args:
        p_ix.add_argument(
            f"--{arg.flag}",
            dest=FIELD_DEST + arg.flag,
            metavar=type_hint(arg.type),
            help=f"{arg.name} ({type_display(arg.type)})",
        )
    p_ix.set_defaults(func=_cmd_instruction, instruction=ix)


def build_parser(idl: Optional[Idl]) -> argparse.ArgumentParser:
    parser = _global_parser(add_help=True)
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_idl = sub.add_parser("idl", help="Print IDL information")
    p_idl.add_argument("--json", action="store_true", help="Emit the instruction table as JSON")
    p_idl.set_defaults(func=_cmd_idl)

    p_inspect = sub.add_parser("inspect", help="Print program id for binary(ies)")
    p_inspect.add_argument("files", nargs="+", help="Program binaries")
    p_inspect.set_defaults(func=_cmd_inspect)

    if idl is not None:
        for ix in idl.instructions:
            _add_instruction_parser(sub, ix)
    return parser


def _require_idl(args: argparse.Namespace) -> Idl:
    if args.idl_obj is None:
        raise ValueError("No IDL loaded: pass --idl FILE, set IDLCALL_IDL, or add [program].idl to the config")
    return args.idl_obj


def _resolve_program_id(ctx: RuntimeContext) -> Optional[ProgramId]:
    if ctx.program_id:
        return parse_program_id_text(ctx.program_id)
    if ctx.program:
        return extract_program_id(ctx.program)
    return None


def _cmd_idl(args: argparse.Namespace) -> int:
    idl = _require_idl(args)
    if args.json:
        payload = {
            "name": idl.name,
            "version": idl.version,
            "instructions": [instruction_to_json(ix) for ix in idl.instructions],
        }
        print(json.dumps(payload, indent=2))
        return 0
    print(f"{idl.name} v{idl.version}")
    print("")
    print("Instructions:")
    for ix in idl.instructions:
        fields = [f"--{acc.flag} <ADDR>" for acc in ix.accounts if not acc.is_pda]
        fields.extend(f"--{arg.flag} <{type_hint(arg.type)}>" for arg in ix.args)
        print(f"  {ix.command:<20} {' '.join(fields)}".rstrip())
        pdas = [acc.name for acc in ix.accounts if acc.is_pda]
        if pdas:
            print(f"  {'':<20} PDA (auto-computed): {', '.join(pdas)}")
    return 0


def _cmd_inspect(args: argparse.Namespace) -> int:
    for idx, path in enumerate(args.files):
        if idx:
            print("")
        print(f"{path}:")
        for line in format_program_id(extract_program_id(path)):
            print(f"  {line}")
    return 0


def _cmd_instruction(args: argparse.Namespace) -> int:
    idl = _require_idl(args)
    ctx: RuntimeContext = args.ctx
    raw_args = {
        key[len(FIELD_DEST) :]: value
        for key, value in vars(args).items()
        if key.startswith(FIELD_DEST) and value is not None
    }
    program_id = _resolve_program_id(ctx)
    invocation = prepare_invocation(
        idl,
        args.instruction,
        raw_args,
        program_id=program_id,
        extra_binaries=args.binaries,
    )
    for line in invocation.preview.lines():
        print(line)
    print("")
    if args.dry_run:
        print("Dry run: omit --dry-run to submit the transaction.")
        return 0

    print("Submitting transaction...")
    dispatcher = SequencerDispatcher(
        SequencerClient(ctx.sequencer_url),
        Wallet.from_dir(ctx.wallet_dir),
        wait=not args.no_wait,
    )
    receipt = execute_invocation(invocation, dispatcher)
    print(f"  tx_hash: {receipt.tx_hash}")
    if receipt.confirmed:
        print("Transaction confirmed: included in a block.")
    else:
        print("Transaction submitted; not waiting for confirmation.")
    return 0


def _run(argv: List[str]) -> int:
    global_tokens, binaries, rest = split_argv(argv)
    pre, leftover = _global_parser(add_help=False).parse_known_args(global_tokens)

    config = load_config(pre.config)
    ctx = resolve_runtime_context(
        {
            "idl": pre.idl,
            "program": pre.program,
            "program_id": pre.program_id,
            "sequencer_url": pre.sequencer_url,
            "wallet": pre.wallet,
        },
        config,
    )
    idl = load_idl(ctx.idl) if ctx.idl else None

    args = build_parser(idl).parse_args(leftover + rest)
    args.ctx = ctx
    args.idl_obj = idl
    args.binaries = binaries
    args.dry_run = pre.dry_run
    args.no_wait = pre.no_wait
    return args.func(args)


def main(argv: list[str] | None = None) -> int:
    try:
        return _run(list(sys.argv[1:] if argv is None else argv))
    except FileNotFoundError as exc:
        print(str(exc))
        return 1
    except (IdlCallError, ValueError) as exc:
        print(str(exc))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
