import io
import json
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import MagicMock, patch

from idlcall.cli import main, split_argv
from idlcall.transport import Receipt

from sample_idl import sample_idl_data

OWNER = "11" * 32
PROGRAM_ID = "1,2,3,4,5,6,7,8"


class SplitArgvTests(unittest.TestCase):
    def test_splits_globals_binaries_and_command(self) -> None:
        globals_, binaries, rest = split_argv(
            ["--idl", "x.json", "--bin-token", "t.bin", "--bin-nft=n.bin", "--dry-run", "transfer", "--amount", "1"]
        )
        self.assertEqual(globals_, ["--idl", "x.json", "--dry-run"])
        self.assertEqual(binaries, {"token": "t.bin", "nft": "n.bin"})
        self.assertEqual(rest, ["transfer", "--amount", "1"])

    def test_instruction_flags_are_not_globals(self) -> None:
        globals_, _, rest = split_argv(["-i", "x.json", "register", "--program-id", "1"])
        self.assertEqual(globals_, ["-i", "x.json"])
        self.assertEqual(rest, ["register", "--program-id", "1"])

    def test_bin_without_file(self) -> None:
        with self.assertRaises(ValueError):
            split_argv(["--bin-token"])


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.tmp = Path(self._tmp.name)
        self.idl_path = self.tmp / "idl.json"
        self.idl_path.write_text(json.dumps(sample_idl_data()))
        env = patch.dict("os.environ", {}, clear=True)
        env.start()
        self.addCleanup(env.stop)

    def _run(self, *argv: str):
        buf = io.StringIO()
        with redirect_stdout(buf):
            code = main(list(argv))
        return code, buf.getvalue()

    def test_idl_summary(self) -> None:
        code, out = self._run("--idl", str(self.idl_path), "idl")
        self.assertEqual(code, 0)
        self.assertIn("vault_program v0.1.0", out)
        self.assertIn("create-vault", out)
        self.assertIn("--owner-account <ADDR>", out)
        self.assertIn("PDA (auto-computed): vault", out)

    def test_idl_json(self) -> None:
        code, out = self._run("--idl", str(self.idl_path), "idl", "--json")
        self.assertEqual(code, 0)
        payload = json.loads(out)
        self.assertEqual(
            [ix["name"] for ix in payload["instructions"]],
            ["create_vault", "transfer", "register", "chain_accounts", "forward_link"],
        )

    def test_idl_required(self) -> None:
        code, out = self._run("idl")
        self.assertEqual(code, 1)
        self.assertIn("No IDL loaded", out)

    def test_missing_idl_file(self) -> None:
        code, out = self._run("--idl", str(self.tmp / "nope.json"), "idl")
        self.assertEqual(code, 1)
        self.assertIn("IDL not found", out)

    def test_dry_run_prints_preview(self) -> None:
        code, out = self._run(
            "--idl", str(self.idl_path),
            "--program-id", PROGRAM_ID,
            "--dry-run",
            "create-vault",
            "--owner-account", OWNER,
            "--label", "vault",
            "--amount", "5",
        )
        self.assertEqual(code, 0)
        self.assertIn("Instruction: create_vault", out)
        self.assertIn("  instruction: CreateVault {", out)
        self.assertIn("Serialized instruction data (11 u32 words):", out)
        self.assertIn("Dry run: omit --dry-run to submit the transaction.", out)

    def test_missing_arguments_reported_together(self) -> None:
        code, out = self._run("--idl", str(self.idl_path), "--dry-run", "create-vault")
        self.assertEqual(code, 1)
        self.assertIn("Missing required arguments: --label, --amount, --owner-account", out)

    def test_parse_errors_reported_per_field(self) -> None:
        code, out = self._run(
            "--idl", str(self.idl_path),
            "--program-id", PROGRAM_ID,
            "--dry-run",
            "create-vault",
            "--owner-account", OWNER,
            "--label", "abcdefghi",
            "--amount", "-1",
        )
        self.assertEqual(code, 1)
        self.assertIn("--label: String 'abcdefghi' is 9 bytes, max 8 for [u8; 8]", out)
        self.assertIn("--amount: Invalid u64 '-1'", out)

    def test_bin_flag_auto_fills_program_id(self) -> None:
        binary = self.tmp / "token.bin"
        binary.write_bytes(b"\x7fELF")
        Path(str(binary) + ".id").write_text("9,9,9,9,9,9,9,9\n")
        code, out = self._run(
            "--idl", str(self.idl_path),
            "--program-id", PROGRAM_ID,
            "--bin-token", str(binary),
            "--dry-run",
            "register",
            "--key", "00" * 32,
            "--authority-account", OWNER,
        )
        self.assertEqual(code, 0)
        self.assertIn(f"info: Auto-filled --token-program-id from {binary}", out)
        self.assertIn("token_program_id = [9, 9, 9, 9, 9, 9, 9, 9]", out)

    def test_program_id_from_binary(self) -> None:
        binary = self.tmp / "guest.bin"
        binary.write_bytes(b"\x7fELF")
        Path(str(binary) + ".id").write_text(PROGRAM_ID)
        code, out = self._run(
            "-i", str(self.idl_path),
            "-p", str(binary),
            "--dry-run",
            "transfer",
            "--sender-account", OWNER,
            "--recipient-account", OWNER,
            "--extras-account", "",
            "--amount", "7",
            "--memo", "hi",
        )
        self.assertEqual(code, 0)
        self.assertIn("program id: 1,2,3,4,5,6,7,8", out)
        self.assertIn('memo = Some("hi")', out)

    def test_inspect(self) -> None:
        binary = self.tmp / "guest.bin"
        binary.write_bytes(b"\x7fELF")
        Path(str(binary) + ".id").write_text(PROGRAM_ID)
        code, out = self._run("inspect", str(binary))
        self.assertEqual(code, 0)
        self.assertIn("ProgramId (decimal): 1,2,3,4,5,6,7,8", out)

    def test_submit_uses_configured_sequencer(self) -> None:
        config = self.tmp / "idlcall.toml"
        config.write_text(f'[cluster]\nsequencer_url = "http://seq:9"\nwallet_dir = "keys"\n')
        dispatcher = MagicMock(return_value=Receipt(tx_hash="abc123", confirmed=True))
        with patch("idlcall.cli.Wallet.from_dir") as mock_wallet, patch(
            "idlcall.cli.SequencerDispatcher", return_value=dispatcher
        ) as mock_dispatcher, patch("idlcall.cli.SequencerClient") as mock_client:
            code, out = self._run(
                "--config", str(config),
                "--idl", str(self.idl_path),
                "--program-id", PROGRAM_ID,
                "transfer",
                "--sender-account", OWNER,
                "--recipient-account", OWNER,
                "--extras-account", "",
                "--amount", "7",
                "--memo", "none",
            )
        self.assertEqual(code, 0)
        mock_client.assert_called_once_with("http://seq:9")
        mock_wallet.assert_called_once_with(str(self.tmp / "keys"))
        self.assertTrue(mock_dispatcher.call_args.kwargs["wait"])
        assembled = dispatcher.call_args.args[0]
        self.assertEqual(assembled.program_id, (1, 2, 3, 4, 5, 6, 7, 8))
        self.assertIn("tx_hash: abc123", out)
        self.assertIn("Transaction confirmed", out)


if __name__ == "__main__":
    unittest.main()
