"""
Signature tooling tests.
"""

import unittest

from safeauth import (
    SafeSignature,
    address_to_int,
    approved_hash_signature,
    build_contract_signature,
    build_signature_bytes,
    decode_entry,
    eth_sign_hash,
    iter_entries,
    private_key_address,
    sign_hash,
)
from safeauth.signatures import SignatureKind

from support import ADDRESSES, KEYS


DIGEST = b"\x5a" * 32


class TestKeys(unittest.TestCase):

    def test_known_address(self):
        """Private key 1 controls a well-known address."""
        self.assertEqual(
            private_key_address("0x" + "00" * 31 + "01"),
            "0x7E5F4552091A69125d5DfCb7b8C2659029395Bdf"
        )

    def test_fixed_keys_sorted(self):
        values = [address_to_int(a) for a in ADDRESSES]
        self.assertEqual(values, sorted(values))


class TestSlots(unittest.TestCase):

    def test_direct_signature_v(self):
        sig = sign_hash(KEYS[0], DIGEST)
        self.assertEqual(sig.signer, ADDRESSES[0])
        self.assertEqual(len(sig.data), 65)
        self.assertIn(sig.data[64], (27, 28))

    def test_eth_sign_v(self):
        sig = eth_sign_hash(KEYS[0], DIGEST)
        self.assertIn(sig.data[64], (31, 32))

    def test_approved_hash_slot(self):
        sig = approved_hash_signature(ADDRESSES[2])
        entry = decode_entry(sig.data, 0, 65)
        self.assertEqual(entry.kind, SignatureKind.APPROVED_HASH)
        self.assertEqual(entry.signer_hint, ADDRESSES[2])
        self.assertEqual(entry.s, 0)

    def test_static_signature_length_checked(self):
        with self.assertRaises(ValueError):
            SafeSignature(signer=ADDRESSES[0], data=b"\x00" * 64)


class TestBuildSignatureBytes(unittest.TestCase):

    def test_sorted_by_signer(self):
        bundle = build_signature_bytes([sign_hash(KEYS[i], DIGEST) for i in (3, 0, 2)])
        v_r_s = [decode_entry(bundle, i, 195) for i in range(3)]
        self.assertEqual(len(bundle), 195)
        self.assertEqual(bundle[:65], sign_hash(KEYS[0], DIGEST).data)
        self.assertEqual(bundle[65:130], sign_hash(KEYS[2], DIGEST).data)
        self.assertEqual(bundle[130:], sign_hash(KEYS[3], DIGEST).data)
        self.assertEqual([e.kind for e in v_r_s], [SignatureKind.ECDSA] * 3)

    def test_contract_signature_layout(self):
        validator = "0x" + "ff" * 20
        payload_a = b"\xaa" * 3
        payload_b = b"\xbb" * 40
        bundle = build_signature_bytes([
            build_contract_signature(validator, payload_b),
            sign_hash(KEYS[0], DIGEST),
            build_contract_signature("0x" + "01" * 20, payload_a),
        ])

        entries = list(iter_entries(bundle, 3))
        self.assertEqual([e.kind for e in entries],
                         [SignatureKind.CONTRACT, SignatureKind.ECDSA, SignatureKind.CONTRACT])
        self.assertEqual(entries[0].s, 195)
        self.assertEqual(entries[0].payload, payload_a)
        self.assertEqual(entries[2].s, 195 + 32 + len(payload_a))
        self.assertEqual(entries[2].payload, payload_b)
        self.assertEqual(len(bundle), 195 + 32 + 3 + 32 + 40)

    def test_empty(self):
        self.assertEqual(build_signature_bytes([]), b"")


if __name__ == "__main__":
    unittest.main()
