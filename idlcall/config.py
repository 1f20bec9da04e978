"""Configuration loading and runtime context resolution."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .constants import (
    DEFAULT_CONFIG_NAME,
    DEFAULT_SEQUENCER_URL,
    DEFAULT_WALLET_DIR,
    ENV_CONFIG,
    ENV_IDL,
    ENV_PROGRAM,
    ENV_SEQUENCER_URL,
    ENV_WALLET_DIR,
)

KNOWN_TABLES = {
    "cluster": {"sequencer_url", "wallet_dir"},
    "program": {"idl", "binary", "program_id"},
}

# Keys whose values are filesystem paths, resolved against the config file's directory.
_PATH_KEYS = {("cluster", "wallet_dir"), ("program", "idl"), ("program", "binary")}


def _load_toml(path: Path) -> Dict[str, Any]:
    try:
        import tomllib  # Python 3.11+
    except ImportError:  # pragma: no cover
        import tomli as tomllib  # type: ignore
    return tomllib.loads(path.read_text())


@dataclass(frozen=True)
class Config:
    """Values read from ``idlcall.toml``; ``path`` is None when no file was used."""

    path: Optional[Path]
    data: Dict[str, Dict[str, str]]

    def get(self, table: str, key: str) -> Optional[str]:
        return self.data.get(table, {}).get(key)


def validate_config(raw: Mapping[str, Any]) -> List[str]:
    errors: List[str] = []

    def err(msg: str) -> None:
        errors.append(msg)

    for table, value in raw.items():
        if table not in KNOWN_TABLES:
            err(f"unknown table [{table}]")
            continue
        if not isinstance(value, dict):
            err(f"[{table}] must be a table")
            continue
        for key, item in value.items():
            if key not in KNOWN_TABLES[table]:
                err(f"[{table}] unknown key '{key}'")
            elif not isinstance(item, str):
                err(f"[{table}].{key} must be a string")
    return errors


def load_config(path: str | Path | None = None, env: Optional[Mapping[str, str]] = None) -> Config:
    """Load the config file named by ``path``, ``IDLCALL_CONFIG`` or ``./idlcall.toml``.

    An explicitly named file must exist; the implicit default may be absent.
    """
    env = os.environ if env is None else env
    explicit = path or env.get(ENV_CONFIG)
    config_path = Path(explicit).expanduser() if explicit else Path(DEFAULT_CONFIG_NAME)
    if not config_path.exists():
        if explicit:
            raise FileNotFoundError(f"Config file not found: {config_path}")
        return Config(path=None, data={})

    raw = _load_toml(config_path)
    errors = validate_config(raw)
    if errors:
        raise ValueError(f"Invalid config {config_path}:\n" + "\n".join(f"- {e}" for e in errors))

    base = config_path.parent
    data: Dict[str, Dict[str, str]] = {}
    for table, values in raw.items():
        data[table] = {}
        for key, value in values.items():
            if (table, key) in _PATH_KEYS:
                value = str(base / Path(value).expanduser())
            data[table][key] = value
    return Config(path=config_path, data=data)


@dataclass(frozen=True)
class RuntimeContext:
    """Resolved values the CLI runs with."""

    sequencer_url: str
    wallet_dir: str
    idl: Optional[str]
    program: Optional[str]
    program_id: Optional[str]
    config_path: Optional[Path] = None


def _clean(value: Optional[str]) -> Optional[str]:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped if stripped else None


def resolve_runtime_context(
    cli: Mapping[str, Optional[str]],
    config: Config,
    env: Optional[Mapping[str, str]] = None,
) -> RuntimeContext:
    """Resolve each setting as CLI flag > environment > config file > default."""
    env = os.environ if env is None else env

    def pick(cli_key: str, env_key: Optional[str], table: str, key: str) -> Optional[str]:
        return (
            _clean(cli.get(cli_key))
            or (_clean(env.get(env_key)) if env_key else None)
            or _clean(config.get(table, key))
        )

    return RuntimeContext(
        sequencer_url=pick("sequencer_url", ENV_SEQUENCER_URL, "cluster", "sequencer_url")
        or DEFAULT_SEQUENCER_URL,
        wallet_dir=pick("wallet", ENV_WALLET_DIR, "cluster", "wallet_dir") or DEFAULT_WALLET_DIR,
        idl=pick("idl", ENV_IDL, "program", "idl"),
        program=pick("program", ENV_PROGRAM, "program", "binary"),
        program_id=pick("program_id", None, "program", "program_id"),
        config_path=config.path,
    )
