"""Signing keys for submitted instructions."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

from solders.keypair import Keypair

from .encoding import base58_encode
from .errors import CollaboratorError


def _is_keypair_json(raw: object) -> bool:
    return (
        isinstance(raw, list)
        and len(raw) == 64
        and all(isinstance(b, int) and 0 <= b <= 0xFF for b in raw)
    )


@dataclass
class Wallet:
    keypairs: Dict[bytes, Keypair] = field(default_factory=dict)

    @classmethod
    def from_dir(cls, path: str | Path) -> "Wallet":
        """Load every ``*.json`` keypair file (64-byte array) in ``path``."""
        wallet_dir = Path(path).expanduser()
        if not wallet_dir.is_dir():
            raise FileNotFoundError(f"Wallet directory not found: {wallet_dir}")
        wallet = cls()
        for item in sorted(wallet_dir.glob("*.json")):
            try:
                raw = json.loads(item.read_text())
            except (OSError, json.JSONDecodeError):
                continue
            if not _is_keypair_json(raw):
                continue
            try:
                wallet.add(Keypair.from_bytes(bytes(raw)))
            except ValueError as exc:
                raise CollaboratorError("signing", f"{item}: invalid keypair ({exc})") from exc
        return wallet

    def add(self, keypair: Keypair) -> None:
        self.keypairs[bytes(keypair.pubkey())] = keypair

    def signer_for(self, address: bytes) -> Keypair:
        keypair = self.keypairs.get(bytes(address))
        if keypair is None:
            raise CollaboratorError(
                "signing", f"Signing key not found for account {base58_encode(address)}"
            )
        return keypair

    def sign(self, message: bytes, signers: Iterable[bytes]) -> List[Tuple[bytes, bytes]]:
        """Return ``(public_key, signature)`` pairs in signer order."""
        out: List[Tuple[bytes, bytes]] = []
        for address in signers:
            keypair = self.signer_for(address)
            out.append((bytes(keypair.pubkey()), bytes(keypair.sign_message(message))))
        return out
