"""
Demonstration: Star Registration

Shows a wallet proving ownership of its address and registering
stars, then the chain being queried, validated, tampered with and
validated again.

Run with: python -m examples.demo_registration [--export chain.json]
"""

import argparse
import json

from starregistry.core import (
    ChainValidator,
    ChallengeTimeoutError,
    InvalidSignatureError,
    Ledger,
    OwnershipVerificationProtocol,
    QueryIndex,
    Signer,
)
from starregistry.observability import get_metrics, setup_logging


class FakeClock:
    """A clock the demo can move forward."""

    def __init__(self, now: int):
        self.now = now

    def __call__(self) -> int:
        return self.now


def main():
    parser = argparse.ArgumentParser(description="Star registry walkthrough")
    parser.add_argument("--export", help="Write the untampered chain to this JSON file")
    args = parser.parse_args()

    setup_logging()

    print("=" * 60)
    print("Star Registry - Registration Demonstration")
    print("=" * 60)
    print()

    clock = FakeClock(1_700_000_000)
    ledger = Ledger(clock=clock)
    protocol = OwnershipVerificationProtocol(ledger, clock=clock)
    query = QueryIndex(ledger)

    genesis = ledger.get_by_height(0)
    print(f"Genesis hash: {genesis.hash[:16]}...")
    print(f"Genesis body: {genesis.get_payload()}")
    print()

    # Wallets live outside the registry; Signer stands in for one here
    private_key, address = Signer.generate_keypair()
    print(f"Wallet address: {address}")
    print()

    # ================================================================
    # STEP 1: REGISTER A STAR
    # ================================================================
    print("=" * 60)
    print("STEP 1: REGISTER A STAR")
    print("=" * 60)

    message = protocol.request_challenge(address)
    print(f"Challenge: {message}")

    clock.now += 200
    block = protocol.submit(
        address,
        message,
        Signer.sign(message, private_key),
        {"owner": address, "name": "Polaris", "ra": "2h 31m 49s", "dec": "+89 15' 51\""},
    )
    print(f"[OK] Registered at height {block.height}")
    print(f"   Hash:          {block.hash[:16]}...")
    print(f"   Previous hash: {block.previous_hash[:16]}...")
    print()

    # ================================================================
    # STEP 2: REJECTED SUBMISSIONS
    # ================================================================
    print("=" * 60)
    print("STEP 2: REJECTED SUBMISSIONS")
    print("=" * 60)

    stale = protocol.request_challenge(address)
    clock.now += 301
    try:
        protocol.submit(address, stale, Signer.sign(stale, private_key), {"owner": address})
    except ChallengeTimeoutError as e:
        print(f"[REJECTED] {e}")

    other_key, _ = Signer.generate_keypair()
    fresh = protocol.request_challenge(address)
    try:
        protocol.submit(address, fresh, Signer.sign(fresh, other_key), {"owner": address})
    except InvalidSignatureError as e:
        print(f"[REJECTED] {e}")

    print(f"Height unchanged: {ledger.height}")
    print()

    # ================================================================
    # STEP 3: QUERY AND VALIDATE
    # ================================================================
    print("=" * 60)
    print("STEP 3: QUERY AND VALIDATE")
    print("=" * 60)

    for star in query.stars_by_owner(address):
        print(f"Star: {star['name']}")

    validator = ChainValidator()
    print(f"Validation: {validator.validate(ledger)}")

    if args.export:
        with open(args.export, "w", encoding="utf-8") as f:
            json.dump(ledger.export(), f, indent=2)
        print(f"Chain exported to {args.export}")
    print()

    # ================================================================
    # STEP 4: TAMPER
    # ================================================================
    print("=" * 60)
    print("STEP 4: TAMPER")
    print("=" * 60)

    ledger.get_by_height(1).body = ledger.get_by_height(0).body
    print(f"Validation: {validator.validate(ledger)}")
    print()

    print(f"Metrics: {get_metrics().get_summary()}")


if __name__ == "__main__":
    main()
