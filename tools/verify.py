#!/usr/bin/env python3
"""
Star Registry Chain Verifier

Verifies an exported chain (the JSON produced by Ledger.export())
offline. No running registry required - verification is cryptographic.

Usage:
    python -m tools.verify chain.json
    python -m tools.verify chain.json --verbose
    python -m tools.verify chain.json --json

Exit codes:
    0 - VERIFIED: Every block hash and link checks out
    1 - TAMPERED: At least one block is invalid or unlinked
    3 - INVALID_FORMAT: File is not an exported chain
"""

import argparse
import json
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from starregistry.core import Block, ChainValidator, QueryIndex, Ledger


# ============================================================
# Result Types
# ============================================================

class VerificationResult(Enum):
    VERIFIED = "VERIFIED"
    TAMPERED = "TAMPERED"
    INVALID_FORMAT = "INVALID_FORMAT"


EXIT_CODES = {
    VerificationResult.VERIFIED: 0,
    VerificationResult.TAMPERED: 1,
    VerificationResult.INVALID_FORMAT: 3,
}


@dataclass
class VerificationReport:
    result: VerificationResult
    block_count: int = 0
    checks_failed: list[str] = field(default_factory=list)
    owners: list[str] = field(default_factory=list)
    head_hash: Optional[str] = None


# ============================================================
# Verification
# ============================================================

def parse_blocks(data: Any) -> list[Block]:
    """
    Turn exported JSON into blocks.

    Raises:
        ValueError: If data is not a list of block objects
    """
    if not isinstance(data, list):
        raise ValueError(
            f"Exported chain must be a JSON array, got {type(data).__name__}"
        )
    if not data:
        raise ValueError("Exported chain is empty: genesis block missing")

    try:
        return [Block.model_validate(item) for item in data]
    except ValidationError as e:
        raise ValueError(f"Malformed block: {e}") from e


def verify_chain(data: Any) -> VerificationReport:
    """Verify exported chain data and build a report."""
    try:
        blocks = parse_blocks(data)
    except ValueError as e:
        return VerificationReport(
            result=VerificationResult.INVALID_FORMAT,
            checks_failed=[str(e)],
        )

    report = ChainValidator().validate_blocks(blocks)

    if not report.is_valid:
        return VerificationReport(
            result=VerificationResult.TAMPERED,
            block_count=report.block_count,
            checks_failed=report.messages,
        )

    ledger = Ledger.load_from_blocks(blocks, verify=False)

    return VerificationReport(
        result=VerificationResult.VERIFIED,
        block_count=report.block_count,
        owners=QueryIndex(ledger).owners(),
        head_hash=ledger.last_hash,
    )


# ============================================================
# CLI
# ============================================================

def print_report(report: VerificationReport, json_output: bool = False, verbose: bool = False):
    """Print verification report."""

    if json_output:
        output = {
            "result": report.result.value,
            "block_count": report.block_count,
            "checks_failed": report.checks_failed,
            "owners": report.owners,
            "head_hash": report.head_hash,
        }
        print(json.dumps(output, indent=2))
        return

    banners = {
        VerificationResult.VERIFIED: "[VERIFIED] - Chain is valid",
        VerificationResult.TAMPERED: "[TAMPERED] - Hash or linkage mismatch detected",
        VerificationResult.INVALID_FORMAT: "[INVALID_FORMAT] - Not an exported chain",
    }
    print("\n" + "=" * 60)
    print("  " + banners[report.result])
    print("=" * 60)

    print(f"\nBlocks: {report.block_count}")
    if report.head_hash:
        print(f"Head:   {report.head_hash}")

    if report.checks_failed:
        print("\nFailed:")
        for check in report.checks_failed:
            print(f"  - {check}")

    if verbose and report.owners:
        print("\nOwners:")
        for owner in report.owners:
            print(f"  + {owner}")

    print()


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Verify an exported star registry chain",
        epilog="Exit codes: 0=VERIFIED, 1=TAMPERED, 3=INVALID_FORMAT"
    )
    parser.add_argument(
        "chain",
        type=str,
        help="Path to the exported chain JSON file"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="List star owners found in a verified chain"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output result as JSON"
    )

    args = parser.parse_args(argv)

    chain_path = Path(args.chain)
    if not chain_path.exists():
        print(f"ERROR: File not found: {chain_path}")
        return EXIT_CODES[VerificationResult.INVALID_FORMAT]

    try:
        with open(chain_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        print(f"ERROR: Invalid JSON: {e}")
        return EXIT_CODES[VerificationResult.INVALID_FORMAT]
    except OSError as e:
        print(f"ERROR: Failed to read file: {e}")
        return EXIT_CODES[VerificationResult.INVALID_FORMAT]

    report = verify_chain(data)
    print_report(report, json_output=args.json, verbose=args.verbose)

    return EXIT_CODES[report.result]


if __name__ == "__main__":
    sys.exit(main())
