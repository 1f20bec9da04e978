"""Sequencer JSON-RPC client and the default submission dispatcher."""

from __future__ import annotations

import json
import time
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .constants import CONFIRM_POLL_INTERVAL, CONFIRM_TIMEOUT_SECONDS
from .errors import CollaboratorError
from .invoke import AssembledInstruction
from .util import words_to_bytes
from .wallet import Wallet


RETRY_STATUS = {429, 500, 502, 503, 504}


def _backoff(attempt: int) -> None:
    time.sleep(0.25 * (2**attempt))


def rpc_request_raw(url: str, method: str, params: list, retries: int = 6) -> dict:
    """POST one JSON-RPC 2.0 call, retrying busy or unreachable sequencers with backoff."""
    body = json.dumps({"jsonrpc": "2.0", "id": 1, "method": method, "params": params}).encode()
    req = urllib.request.Request(url, data=body, headers={"Content-Type": "application/json"})
    attempt = 0
    while True:
        try:
            with urllib.request.urlopen(req) as resp:
                return json.loads(resp.read().decode())
        except urllib.error.HTTPError as exc:
            if exc.code not in RETRY_STATUS or attempt >= retries:
                raise ValueError(f"Sequencer {method} returned HTTP {exc.code}: {exc.reason}") from exc
        except urllib.error.URLError as exc:
            if attempt >= retries:
                raise ValueError(f"Sequencer at {url} unreachable: {exc.reason}") from exc
        _backoff(attempt)
        attempt += 1


def rpc_request(url: str, method: str, params: list, retries: int = 6) -> Any:
    reply = rpc_request_raw(url, method, params, retries=retries)
    if reply.get("error") is not None:
        raise ValueError(f"Sequencer rejected {method}: {reply['error']}")
    return reply.get("result")


def message_bytes(
    program_id: Sequence[int],
    account_ids: Sequence[bytes],
    nonces: Sequence[int],
    data: Sequence[int],
) -> bytes:
    """Canonical little-endian encoding of the message that signers sign."""
    buf = bytearray(words_to_bytes(program_id))
    buf.extend(len(account_ids).to_bytes(4, "little"))
    for account_id in account_ids:
        buf.extend(account_id)
    buf.extend(len(nonces).to_bytes(4, "little"))
    for nonce in nonces:
        buf.extend(nonce.to_bytes(16, "little"))
    buf.extend(len(data).to_bytes(4, "little"))
    buf.extend(words_to_bytes(data))
    return bytes(buf)


@dataclass(frozen=True)
class Receipt:
    tx_hash: str
    confirmed: bool


class SequencerClient:
    def __init__(self, url: str, retries: int = 6) -> None:
        self.url = url.rstrip("/")
        self.retries = retries

    def _call(self, collaborator: str, method: str, params: list) -> Any:
        try:
            return rpc_request(self.url, method, params, retries=self.retries)
        except ValueError as exc:
            raise CollaboratorError(collaborator, str(exc)) from exc

    def get_account_nonces(self, addresses: Sequence[bytes]) -> List[int]:
        if not addresses:
            return []
        result = self._call("nonce retrieval", "get_accounts_nonces", [[a.hex() for a in addresses]])
        nonces = result.get("nonces") if isinstance(result, dict) else result
        if not isinstance(nonces, list) or len(nonces) != len(addresses):
            raise CollaboratorError("nonce retrieval", f"unexpected response: {result!r}")
        try:
            return [int(n) for n in nonces]
        except (TypeError, ValueError) as exc:
            raise CollaboratorError("nonce retrieval", f"unexpected nonce in {nonces!r}") from exc

    def send_transaction(self, tx: Dict[str, Any]) -> str:
        result = self._call("submission", "send_tx_public", [tx])
        tx_hash = result.get("tx_hash") if isinstance(result, dict) else result
        if not isinstance(tx_hash, str) or not tx_hash:
            raise CollaboratorError("submission", f"response missing tx_hash: {result!r}")
        return tx_hash

    def get_transaction(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        result = self._call("confirmation", "get_transaction_by_hash", [tx_hash])
        if isinstance(result, dict) and result.get("transaction") is not None:
            return result
        return None

    def wait_for_confirmation(
        self,
        tx_hash: str,
        timeout: float = CONFIRM_TIMEOUT_SECONDS,
        interval: float = CONFIRM_POLL_INTERVAL,
    ) -> bool:
        if timeout < 0:
            raise ValueError("confirmation timeout must be >= 0")
        if interval <= 0:
            raise ValueError("confirmation poll interval must be > 0")
        deadline = time.monotonic() + timeout
        while True:
            if self.get_transaction(tx_hash) is not None:
                return True
            if time.monotonic() >= deadline:
                return False
            time.sleep(interval)


class SequencerDispatcher:
    """Sign with wallet keys, submit to the sequencer, and wait for inclusion."""

    def __init__(
        self,
        client: SequencerClient,
        wallet: Wallet,
        wait: bool = True,
        timeout: float = CONFIRM_TIMEOUT_SECONDS,
        interval: float = CONFIRM_POLL_INTERVAL,
    ) -> None:
        self.client = client
        self.wallet = wallet
        self.wait = wait
        self.timeout = timeout
        self.interval = interval

    def build_transaction(self, assembled: AssembledInstruction) -> Dict[str, Any]:
        if assembled.program_id is None:
            raise CollaboratorError("signing", "program id is not resolved")
        # Fail on missing keys before touching the network.
        for address in assembled.signers:
            self.wallet.signer_for(address)
        nonces = self.client.get_account_nonces(list(assembled.signers))
        message = message_bytes(assembled.program_id, assembled.account_ids, nonces, assembled.data)
        signatures = self.wallet.sign(message, assembled.signers)
        return {
            "message": {
                "program_id": list(assembled.program_id),
                "account_ids": [a.hex() for a in assembled.account_ids],
                "nonces": [str(n) for n in nonces],
                "instruction_data": list(assembled.data),
            },
            "witness_set": [
                {"public_key": public_key.hex(), "signature": signature.hex()}
                for public_key, signature in signatures
            ],
        }

    def __call__(self, assembled: AssembledInstruction) -> Receipt:
        tx = self.build_transaction(assembled)
        tx_hash = self.client.send_transaction(tx)
        if not self.wait:
            return Receipt(tx_hash=tx_hash, confirmed=False)
        if not self.client.wait_for_confirmation(tx_hash, self.timeout, self.interval):
            raise CollaboratorError(
                "confirmation", f"Transaction {tx_hash} not confirmed within {self.timeout:g}s"
            )
        return Receipt(tx_hash=tx_hash, confirmed=True)
