#!/usr/bin/env python3
"""
safeauth Command Line Interface

Usage:
    safeauth hash --file <tx.json> --account <address>
    safeauth decode --signatures <hex>
    safeauth check --file <tx.json> --account <address> --owners <a,b,c> --threshold <n> --signatures <hex>
    safeauth sign --file <tx.json> --account <address> --key <hex>
    safeauth demo
"""

import argparse
import json
import sys

from . import config
from .errors import AuthorizationError
from .logging_config import configure_logging


def load_json(path: str) -> dict:
    """Load JSON from file."""
    with open(path, 'r') as f:
        return json.load(f)


def print_json(data) -> None:
    print(json.dumps(data, indent=2))


def _split_owners(value: str):
    return [o.strip() for o in value.split(",") if o.strip()]


def cmd_hash(args):
    """Compute the digests of a transaction."""
    from safeauth import SafeTransaction, domain_separator, transaction_preimage, to_hex
    from eth_utils import keccak

    tx = SafeTransaction.from_dict(load_json(args.file))
    preimage = transaction_preimage(args.account, args.chain_id, tx)

    print_json({
        "domain_separator": to_hex(domain_separator(args.account, args.chain_id)),
        "preimage": to_hex(preimage),
        "safe_tx_hash": to_hex(keccak(preimage)),
    })
    return 0


def cmd_decode(args):
    """List the entries of a signature bundle."""
    from safeauth import hex_to_bytes, iter_entries

    signatures = hex_to_bytes(args.signatures)
    entries = []
    try:
        for entry in iter_entries(signatures, args.count):
            entries.append(entry.to_dict())
    except AuthorizationError as exc:
        print_json({"entries": entries, "error": exc.code.value, "legacy_code": exc.legacy_code})
        print(f"\n✗ {exc}", file=sys.stderr)
        return 1

    print_json({"entries": entries})
    return 0


def cmd_check(args):
    """Authorize a signature bundle."""
    from safeauth import SafeAccount, SafeTransaction, ZERO_ADDRESS, hex_to_bytes, to_hex
    from eth_utils import keccak

    account = SafeAccount(args.account, args.chain_id)
    account.setup(_split_owners(args.owners), args.threshold)

    if args.file:
        preimage = account.encode_transaction_data(SafeTransaction.from_dict(load_json(args.file)))
        digest = keccak(preimage)
    elif args.digest:
        preimage = b""
        digest = hex_to_bytes(args.digest)
    else:
        print("either --file or --digest is required", file=sys.stderr)
        return 2

    for owner in args.approved_by or []:
        account.approve_hash(owner, digest)

    caller = args.caller or ZERO_ADDRESS
    if args.required is None:
        if args.no_owner_check:
            print("--no-owner-check requires --required", file=sys.stderr)
            return 2
        result = account.engine.check_signatures(digest, preimage, args.signatures, caller)
    else:
        result = account.engine.check_n_signatures(
            digest, preimage, args.signatures, args.required, caller,
            check_owners=not args.no_owner_check
        )

    output = result.to_dict()
    output["digest"] = to_hex(digest)
    print_json(output)

    if result.accepted():
        print(f"\n✓ ACCEPTED ({len(result.signers)} signers)", file=sys.stderr)
        return 0
    print(f"\n✗ REJECTED: {result.failure_code.value} ({result.legacy_code})", file=sys.stderr)
    return 1


def cmd_sign(args):
    """Produce a signature slot for a transaction."""
    from safeauth import SafeTransaction, sign_message, sign_typed_data, to_hex

    tx = SafeTransaction.from_dict(load_json(args.file))
    if args.eth_sign:
        signature = sign_message(args.key, args.account, args.chain_id, tx)
    else:
        signature = sign_typed_data(args.key, args.account, args.chain_id, tx)

    print_json({"signer": signature.signer, "signature": to_hex(signature.data)})
    return 0


def cmd_demo(args):
    """Run a demonstration of threshold authorization."""
    from safeauth import (
        SafeAccount,
        approved_hash_signature,
        build_contract_signature,
        build_safe_transaction,
        build_signature_bytes,
        private_key_address,
        sign_hash,
        sign_typed_data,
        sign_message,
    )

    keys = ["0x" + format(i, "064x") for i in range(1, 5)]
    addresses = [private_key_address(k) for k in keys]

    print("=" * 60)
    print("safeauth Demonstration")
    print("=" * 60)

    safe = SafeAccount("0x" + "5a" * 20, args.chain_id)
    safe.setup(addresses[:3], 2)
    tx = build_safe_transaction(to=addresses[3], nonce=0, value=10 ** 18)
    digest = safe.get_transaction_hash(tx)

    print(f"\nAccount: {safe.address} (chain {safe.chain_id})")
    print(f"Owners: {safe.get_owners()} threshold {safe.get_threshold()}")
    print(f"Transaction hash: 0x{digest.hex()}")

    def report(title, signatures):
        print("\n" + "-" * 60)
        print(title)
        print("-" * 60)
        result = safe.authorize_transaction(tx, signatures)
        print(f"Decision: {result.state.value}")
        if result.accepted():
            print(f"  Signers: {result.signers}")
        else:
            print(f"  Failure: {result.failure_code.value} ({result.legacy_code})")

    # Scenario 1: one signature, threshold two
    report(
        "Scenario 1: ONE typed signature for a threshold of two",
        build_signature_bytes([sign_typed_data(keys[0], safe.address, safe.chain_id, tx)])
    )

    # Scenario 2: typed + eth_sign
    report(
        "Scenario 2: typed signature AND eth_sign signature",
        build_signature_bytes([
            sign_typed_data(keys[0], safe.address, safe.chain_id, tx),
            sign_message(keys[1], safe.address, safe.chain_id, tx),
        ])
    )

    # Scenario 3: pre-approval submitted by someone else
    report(
        "Scenario 3: pre-approval that was never recorded",
        build_signature_bytes([
            approved_hash_signature(addresses[2]),
            sign_typed_data(keys[0], safe.address, safe.chain_id, tx),
        ])
    )

    # Scenario 4: nested account as owner
    nested = SafeAccount("0x" + "ab" * 20, args.chain_id)
    nested.setup([addresses[3]], 1)
    outer = SafeAccount("0x" + "cd" * 20, args.chain_id)
    outer.setup([addresses[0], nested.address], 2)
    outer.registry.register(nested.address, nested.validator())

    outer_digest = outer.get_transaction_hash(tx)
    nested_payload = build_signature_bytes([sign_hash(keys[3], nested.get_message_hash(outer_digest))])
    bundle = build_signature_bytes([
        sign_hash(keys[0], outer_digest),
        build_contract_signature(nested.address, nested_payload),
    ])

    print("\n" + "-" * 60)
    print("Scenario 4: nested account co-signs as an owner")
    print("-" * 60)
    result = outer.authorize_transaction(tx, bundle)
    print(f"Decision: {result.state.value}")
    print(f"  Signers: {result.signers}")

    print("\n" + "=" * 60)
    print("Demonstration complete.")
    print("=" * 60)
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="safeauth multi-owner authorization CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  safeauth demo                                   Run demonstration
  safeauth hash -f tx.json -A 0xSafe...
  safeauth decode -s 0x...
  safeauth check -f tx.json -A 0xSafe... -o 0xA,0xB -t 2 -s 0x...
  safeauth sign -f tx.json -A 0xSafe... -k 0xKEY
        """
    )
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="Log level")
    parser.add_argument("--log-text", action="store_true", help="Plain text logs instead of JSON")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # hash
    hash_parser = subparsers.add_parser("hash", help="Compute transaction digests")
    hash_parser.add_argument("-f", "--file", required=True, help="Transaction JSON file")
    hash_parser.add_argument("-A", "--account", required=True, help="Account address")
    hash_parser.add_argument("-c", "--chain-id", type=int, default=config.DEFAULT_CHAIN_ID, help="Chain id")

    # decode
    decode_parser = subparsers.add_parser("decode", help="Decode a signature bundle")
    decode_parser.add_argument("-s", "--signatures", required=True, help="Bundle as hex")
    decode_parser.add_argument("-n", "--count", type=int, help="Number of static slots")

    # check
    check_parser = subparsers.add_parser("check", help="Authorize a signature bundle")
    check_parser.add_argument("-f", "--file", help="Transaction JSON file")
    check_parser.add_argument("-d", "--digest", help="Digest as hex (instead of --file)")
    check_parser.add_argument("-A", "--account", required=True, help="Account address")
    check_parser.add_argument("-c", "--chain-id", type=int, default=config.DEFAULT_CHAIN_ID, help="Chain id")
    check_parser.add_argument("-o", "--owners", required=True, help="Comma separated owner addresses")
    check_parser.add_argument("-t", "--threshold", type=int, required=True, help="Approval threshold")
    check_parser.add_argument("-s", "--signatures", required=True, help="Bundle as hex")
    check_parser.add_argument("-n", "--required", type=int, help="Required signers (partial check)")
    check_parser.add_argument("--no-owner-check", action="store_true",
                              help="Skip owner membership (only with --required)")
    check_parser.add_argument("--caller", help="Submitting identity")
    check_parser.add_argument("--approved-by", action="append", help="Owner with a recorded approval")

    # sign
    sign_parser = subparsers.add_parser("sign", help="Sign a transaction")
    sign_parser.add_argument("-f", "--file", required=True, help="Transaction JSON file")
    sign_parser.add_argument("-A", "--account", required=True, help="Account address")
    sign_parser.add_argument("-c", "--chain-id", type=int, default=config.DEFAULT_CHAIN_ID, help="Chain id")
    sign_parser.add_argument("-k", "--key", required=True, help="Private key as hex")
    sign_parser.add_argument("--eth-sign", action="store_true", help="Use the eth_sign envelope")

    # demo
    demo_parser = subparsers.add_parser("demo", help="Run demonstration")
    demo_parser.add_argument("-c", "--chain-id", type=int, default=config.DEFAULT_CHAIN_ID, help="Chain id")

    args = parser.parse_args(argv)

    problems = {name: issues for name, issues in config.validate_config().items() if issues}
    if problems:
        for name, issues in problems.items():
            print(f"config error: {name}: {', '.join(issues)}", file=sys.stderr)
        return 2

    configure_logging(args.log_level, config.LOG_JSON and not args.log_text, config.LOG_FILE or None)

    commands = {
        "hash": cmd_hash,
        "decode": cmd_decode,
        "check": cmd_check,
        "sign": cmd_sign,
        "demo": cmd_demo,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return 2

    try:
        return command(args)
    except AuthorizationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
