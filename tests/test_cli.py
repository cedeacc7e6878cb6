"""
Command line interface tests.
"""

import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest import mock

from safeauth import build_safe_transaction, transaction_hash
from safeauth.cli import main

from support import ACCOUNT_ADDRESS, ADDRESSES, CHAIN_ID, KEYS, slot


class CLITestCase(unittest.TestCase):

    def setUp(self):
        patcher = mock.patch("safeauth.cli.configure_logging")
        patcher.start()
        self.addCleanup(patcher.stop)

        self.tx = build_safe_transaction(to=ADDRESSES[5], nonce=4, value=99)
        fd, self.tx_path = tempfile.mkstemp(suffix=".json")
        with os.fdopen(fd, "w") as f:
            json.dump(self.tx.to_dict(), f)
        self.addCleanup(os.remove, self.tx_path)

    def run_cli(self, *argv):
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = main(list(argv))
        return code, out.getvalue(), err.getvalue()

    def sign(self, key, *extra):
        code, out, _ = self.run_cli(
            "sign", "-f", self.tx_path, "-A", ACCOUNT_ADDRESS, "-c", str(CHAIN_ID), "-k", key, *extra
        )
        self.assertEqual(code, 0)
        return json.loads(out)


class TestHashCommand(CLITestCase):

    def test_hash(self):
        code, out, _ = self.run_cli("hash", "-f", self.tx_path, "-A", ACCOUNT_ADDRESS, "-c", str(CHAIN_ID))
        self.assertEqual(code, 0)
        data = json.loads(out)
        self.assertEqual(data["safe_tx_hash"], "0x" + transaction_hash(ACCOUNT_ADDRESS, CHAIN_ID, self.tx).hex())


class TestSignAndCheck(CLITestCase):

    def check(self, signatures, *extra):
        return self.run_cli(
            "check", "-f", self.tx_path, "-A", ACCOUNT_ADDRESS, "-c", str(CHAIN_ID),
            "-o", ",".join(ADDRESSES[:3]), "-t", "2", "-s", signatures, *extra
        )

    def test_accepted(self):
        first = self.sign(KEYS[0])
        second = self.sign(KEYS[1], "--eth-sign")
        self.assertEqual(first["signer"], ADDRESSES[0])
        self.assertEqual(second["signer"], ADDRESSES[1])

        code, out, _ = self.check(first["signature"] + second["signature"][2:])
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out)["decision"], "ACCEPTED")

    def test_rejected(self):
        first = self.sign(KEYS[0])
        code, out, err = self.check(first["signature"])
        self.assertEqual(code, 1)
        data = json.loads(out)
        self.assertEqual(data["failure_code"], "INSUFFICIENT_SIGNATURES")
        self.assertIn("GS020", err)

    def test_recorded_approval(self):
        first = self.sign(KEYS[0])
        approval = "0x" + slot(int(ADDRESSES[1], 16), 0, 1).hex()
        code, _, _ = self.check(first["signature"] + approval[2:])
        self.assertEqual(code, 1)

        code, _, _ = self.check(first["signature"] + approval[2:], "--approved-by", ADDRESSES[1])
        self.assertEqual(code, 0)

    def test_partial_check(self):
        first = self.sign(KEYS[0])
        code, _, _ = self.check(first["signature"], "-n", "1")
        self.assertEqual(code, 0)

    def test_owner_check_skipped(self):
        outsider = self.sign(KEYS[4])
        code, out, _ = self.check(outsider["signature"], "-n", "1")
        self.assertEqual(code, 1)
        self.assertEqual(json.loads(out)["failure_code"], "INVALID_SIGNER")

        code, out, _ = self.check(outsider["signature"], "-n", "1", "--no-owner-check")
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out)["signers"], [ADDRESSES[4]])

    def test_owner_check_needs_partial_check(self):
        first = self.sign(KEYS[0])
        code, _, err = self.check(first["signature"], "--no-owner-check")
        self.assertEqual(code, 2)
        self.assertIn("--required", err)

    def test_bad_input(self):
        code, _, _ = self.check("0xzz")
        self.assertEqual(code, 2)


class TestDecodeCommand(CLITestCase):

    def test_decode(self):
        signature = self.sign(KEYS[2])["signature"]
        code, out, _ = self.run_cli("decode", "-s", signature)
        self.assertEqual(code, 0)
        entries = json.loads(out)["entries"]
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0]["kind"], "ECDSA")

    def test_decode_malformed(self):
        bundle = "0x" + slot(int(ADDRESSES[0], 16), 0, 0).hex()
        code, out, _ = self.run_cli("decode", "-s", bundle)
        self.assertEqual(code, 1)
        self.assertEqual(json.loads(out)["error"], "OFFSET_IN_STATIC_REGION")


class TestDemoCommand(CLITestCase):

    def test_demo(self):
        code, out, _ = self.run_cli("demo")
        self.assertEqual(code, 0)
        self.assertIn("Demonstration complete.", out)
        self.assertIn("INSUFFICIENT_SIGNATURES", out)
        self.assertIn("APPROVAL_NOT_FOUND", out)

    def test_no_command(self):
        code, _, _ = self.run_cli()
        self.assertEqual(code, 2)

    def test_invalid_config(self):
        with mock.patch("safeauth.config.MAX_VALIDATION_DEPTH", 0):
            code, out, err = self.run_cli("demo")
        self.assertEqual(code, 2)
        self.assertEqual(out, "")
        self.assertIn("max_validation_depth", err)


if __name__ == "__main__":
    unittest.main()
