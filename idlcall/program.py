"""Program artifact helpers: binary identity (program id) extraction."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import List, Optional, Tuple

from .constants import DEFAULT_IMAGE_ID_TOOL, ENV_IMAGE_ID_TOOL, PROGRAM_ID_SIDECAR_SUFFIX
from .errors import CollaboratorError, ParseError
from .parse import parse_value
from .types import Primitive
from .util import words_to_bytes
from .values import FixedU32s

ProgramId = Tuple[int, ...]

_COLLABORATOR = "binary-identity extraction"


def parse_program_id_text(text: str) -> ProgramId:
    value = parse_value(text.strip(), Primitive("program_id"))
    if not isinstance(value, FixedU32s):
        raise ParseError(f"Invalid ProgramId '{text.strip()}'", raw=text)
    return value.value


def _image_id_tool(tool: Optional[str]) -> str:
    return tool or os.environ.get(ENV_IMAGE_ID_TOOL) or DEFAULT_IMAGE_ID_TOOL


def extract_program_id(path: str | Path, tool: Optional[str] = None) -> ProgramId:
    """Return the 8-word identity of a program binary.

    A ``<binary>.id`` sidecar is read first; otherwise the image-id tool is run
    on the binary and the last non-empty line of its output is parsed.
    """
    artifact = Path(path).expanduser()
    if not artifact.exists():
        raise FileNotFoundError(f"Program binary not found: {artifact}")
    sidecar = artifact.with_name(artifact.name + PROGRAM_ID_SIDECAR_SUFFIX)
    if sidecar.exists():
        try:
            return parse_program_id_text(sidecar.read_text())
        except ParseError as exc:
            raise CollaboratorError(_COLLABORATOR, f"{sidecar}: {exc}") from exc

    cmd = [_image_id_tool(tool), str(artifact)]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True)
    except OSError as exc:
        raise CollaboratorError(_COLLABORATOR, f"{cmd[0]}: {exc}") from exc
    if result.returncode != 0:
        msg = result.stderr.strip() or result.stdout.strip() or f"{cmd[0]} failed"
        raise CollaboratorError(_COLLABORATOR, msg)
    lines = [line.strip() for line in result.stdout.splitlines() if line.strip()]
    if not lines:
        raise CollaboratorError(_COLLABORATOR, f"{cmd[0]} printed no program id for {artifact}")
    try:
        return parse_program_id_text(lines[-1])
    except ParseError as exc:
        raise CollaboratorError(_COLLABORATOR, f"unexpected output from {cmd[0]}: {exc}") from exc


def program_id_bytes(program_id: ProgramId) -> bytes:
    return words_to_bytes(program_id)


def format_program_id(program_id: ProgramId) -> List[str]:
    return [
        f"ProgramId (decimal): {','.join(str(w) for w in program_id)}",
        f"ProgramId (hex):     {','.join(f'{w:08x}' for w in program_id)}",
        f"ImageID (hex bytes): {program_id_bytes(program_id).hex()}",
    ]
