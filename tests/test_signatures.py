"""
Signature bundle decoding tests.

Bounds checks of the dynamic region, slot classification, and raw slot
access. Decoding never touches cryptography, so bundles here are built from
raw words.
"""

import unittest

from safeauth import AuthorizationError, FailureCode, SignatureKind, decode_entry, iter_entries, split_signature
from safeauth.signatures import read_dynamic_part, signature_kind

from support import ADDRESSES, slot, word


VALIDATOR = ADDRESSES[0]
VALIDATOR_WORD = int(VALIDATOR, 16)


class TestClassification(unittest.TestCase):
    """The v byte selects the entry kind."""

    def test_kinds(self):
        self.assertEqual(signature_kind(0), SignatureKind.CONTRACT)
        self.assertEqual(signature_kind(1), SignatureKind.APPROVED_HASH)
        self.assertEqual(signature_kind(27), SignatureKind.ECDSA)
        self.assertEqual(signature_kind(28), SignatureKind.ECDSA)
        self.assertEqual(signature_kind(30), SignatureKind.ECDSA)
        self.assertEqual(signature_kind(31), SignatureKind.ETH_SIGN)
        self.assertEqual(signature_kind(32), SignatureKind.ETH_SIGN)
        self.assertEqual(signature_kind(255), SignatureKind.ETH_SIGN)

    def test_eth_sign_recovery_byte(self):
        entry = decode_entry(slot(1, 2, 31), 0, 65)
        self.assertEqual(entry.kind, SignatureKind.ETH_SIGN)
        self.assertEqual(entry.recovery_v, 27)

    def test_approved_hash_signer_hint(self):
        entry = decode_entry(slot(int(ADDRESSES[2], 16), 0, 1), 0, 65)
        self.assertEqual(entry.kind, SignatureKind.APPROVED_HASH)
        self.assertEqual(entry.signer_hint, ADDRESSES[2])

    def test_signer_hint_uses_low_160_bits(self):
        r = (0xffff << 160) | int(ADDRESSES[2], 16)
        entry = decode_entry(slot(r, 0, 1), 0, 65)
        self.assertEqual(entry.signer_hint, ADDRESSES[2])


class TestSplitSignature(unittest.TestCase):
    """Raw slot access."""

    def test_split(self):
        bundle = slot(1, 2, 27) + slot(3, 4, 28)
        self.assertEqual(split_signature(bundle, 0), (27, 1, 2))
        self.assertEqual(split_signature(bundle, 1), (28, 3, 4))

    def test_out_of_range(self):
        bundle = slot(1, 2, 27) + b"\x00" * 10
        with self.assertRaises(ValueError):
            split_signature(bundle, 1)
        with self.assertRaises(ValueError):
            split_signature(bundle, -1)


class TestDynamicPartBounds(unittest.TestCase):
    """
    The three distinct failure points of the dynamic region.

    Bundles below declare one required signature, so the static region is
    65 bytes long.
    """

    def test_offset_inside_static_region(self):
        """Offset 0 points at the start of the bundle."""
        bundle = slot(VALIDATOR_WORD, 0, 0)
        with self.assertRaises(AuthorizationError) as ctx:
            decode_entry(bundle, 0, 65)
        self.assertEqual(ctx.exception.code, FailureCode.OFFSET_IN_STATIC_REGION)
        self.assertEqual(ctx.exception.legacy_code, "GS021")

    def test_offset_just_before_dynamic_region(self):
        bundle = slot(VALIDATOR_WORD, 64, 0) + word(0)
        with self.assertRaises(AuthorizationError) as ctx:
            decode_entry(bundle, 0, 65)
        self.assertEqual(ctx.exception.code, FailureCode.OFFSET_IN_STATIC_REGION)

    def test_dynamic_part_missing(self):
        """Offset past the end of the bundle."""
        bundle = slot(VALIDATOR_WORD, 65, 0)
        with self.assertRaises(AuthorizationError) as ctx:
            decode_entry(bundle, 0, 65)
        self.assertEqual(ctx.exception.code, FailureCode.DYNAMIC_PART_MISSING)
        self.assertEqual(ctx.exception.legacy_code, "GS022")

    def test_length_word_truncated(self):
        bundle = slot(VALIDATOR_WORD, 65, 0) + b"\x00" * 31
        with self.assertRaises(AuthorizationError) as ctx:
            decode_entry(bundle, 0, 65)
        self.assertEqual(ctx.exception.code, FailureCode.DYNAMIC_PART_MISSING)

    def test_dynamic_part_too_short(self):
        """Declared length exceeds the remaining bytes."""
        bundle = slot(VALIDATOR_WORD, 65, 0) + word(32) + b"\xaa" * 31
        with self.assertRaises(AuthorizationError) as ctx:
            decode_entry(bundle, 0, 65)
        self.assertEqual(ctx.exception.code, FailureCode.DYNAMIC_PART_TOO_SHORT)
        self.assertEqual(ctx.exception.legacy_code, "GS023")

    def test_huge_declared_length(self):
        bundle = slot(VALIDATOR_WORD, 65, 0) + word(2 ** 256 - 1)
        with self.assertRaises(AuthorizationError) as ctx:
            decode_entry(bundle, 0, 65)
        self.assertEqual(ctx.exception.code, FailureCode.DYNAMIC_PART_TOO_SHORT)

    def test_offset_at_end_of_static_region(self):
        """The first byte after the static region is a legal offset."""
        payload = b"\xaa" * 40
        bundle = slot(VALIDATOR_WORD, 65, 0) + word(len(payload)) + payload
        entry = decode_entry(bundle, 0, 65)
        self.assertEqual(entry.kind, SignatureKind.CONTRACT)
        self.assertEqual(entry.signer_hint, VALIDATOR)
        self.assertEqual(entry.payload, payload)
        self.assertEqual(entry.next_offset, 65)

    def test_empty_payload(self):
        bundle = slot(VALIDATOR_WORD, 65, 0) + word(0)
        self.assertEqual(decode_entry(bundle, 0, 65).payload, b"")

    def test_checks_in_order(self):
        """An offset inside the static region wins over a missing part."""
        with self.assertRaises(AuthorizationError) as ctx:
            read_dynamic_part(b"\x00" * 65, 10, 65)
        self.assertEqual(ctx.exception.code, FailureCode.OFFSET_IN_STATIC_REGION)

    def test_static_region_follows_required_count(self):
        """With two required signatures, offset 65 points into the second slot."""
        bundle = slot(VALIDATOR_WORD, 65, 0) + slot(1, 2, 27) + word(0)
        with self.assertRaises(AuthorizationError) as ctx:
            decode_entry(bundle, 0, 130)
        self.assertEqual(ctx.exception.code, FailureCode.OFFSET_IN_STATIC_REGION)


class TestIterEntries(unittest.TestCase):
    """Walking a bundle."""

    def test_mixed_bundle(self):
        payload = b"\x01\x02"
        bundle = (
            slot(VALIDATOR_WORD, 130, 0)
            + slot(int(ADDRESSES[1], 16), 0, 1)
            + word(len(payload)) + payload
        )
        entries = list(iter_entries(bundle, 2))
        self.assertEqual([e.kind for e in entries], [SignatureKind.CONTRACT, SignatureKind.APPROVED_HASH])
        self.assertEqual(entries[0].payload, payload)
        self.assertEqual(entries[1].signer_hint, ADDRESSES[1])

    def test_default_count_uses_complete_slots(self):
        bundle = slot(1, 2, 27) + slot(3, 4, 28) + b"\x00" * 20
        self.assertEqual(len(list(iter_entries(bundle))), 2)

    def test_stops_at_incomplete_slot(self):
        bundle = slot(1, 2, 27)
        self.assertEqual(len(list(iter_entries(bundle, 3))), 1)

    def test_to_dict(self):
        entry = decode_entry(slot(1, 2, 27), 0, 65)
        d = entry.to_dict()
        self.assertEqual(d["kind"], "ECDSA")
        self.assertEqual(d["v"], 27)
        self.assertNotIn("payload", d)


if __name__ == "__main__":
    unittest.main()
