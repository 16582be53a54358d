"""
Chain Validator

Walks the chain block by block:
1. Recomputes each block's hash (tamper check)
2. Checks each non-genesis block links to its predecessor
3. Checks each block sits at the position its height claims

Every block is checked even after a failure, so the report lists
every problem in height order. Findings are collected, never raised.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional, TYPE_CHECKING

from ..observability import get_logger
from .block import Block

if TYPE_CHECKING:
    from .ledger import Ledger


logger = get_logger(__name__)

VALID_CHAIN_MESSAGE = "Chain is valid."


@dataclass(frozen=True)
class ValidationFinding:
    height: int
    reason: str
    category: str = "hash"  # "hash", "linkage", "sequence"


@dataclass
class ValidationReport:
    findings: list[ValidationFinding] = field(default_factory=list)
    block_count: int = 0

    @property
    def is_valid(self) -> bool:
        return len(self.findings) == 0

    @property
    def messages(self) -> list[str]:
        return [f.reason for f in self.findings]

    @property
    def first_finding(self) -> Optional[ValidationFinding]:
        return self.findings[0] if self.findings else None

    def invalid_heights(self) -> list[int]:
        """Heights with at least one finding, ascending, without repeats."""
        return sorted({f.height for f in self.findings})

    def __bool__(self):
        return self.is_valid

    def __str__(self):
        if self.is_valid:
            return VALID_CHAIN_MESSAGE
        return "\n".join(self.messages)


class ChainValidator:
    """
    Integrity checker for a ledger or an exported list of blocks.
    """

    def validate(self, ledger: "Ledger") -> ValidationReport:
        """Validate a live ledger against a snapshot of its blocks."""
        return self.validate_blocks(ledger.get_blocks())

    def validate_blocks(self, blocks: Iterable[Block]) -> ValidationReport:
        """
        Validate blocks in the order given.

        Position in the sequence is the expected height.
        """
        report = ValidationReport()
        previous: Optional[Block] = None

        for position, block in enumerate(blocks):
            report.block_count += 1

            if block.height != position:
                report.findings.append(ValidationFinding(
                    position,
                    f"Block at position {position} claims height {block.height}.",
                    "sequence",
                ))

            if not block.validate():
                report.findings.append(ValidationFinding(
                    position,
                    f"Block {position} is invalid.",
                    "hash",
                ))

            if position == 0:
                if block.previous_hash is not None:
                    report.findings.append(ValidationFinding(
                        position,
                        "Block 0 is genesis but has a previous hash.",
                        "linkage",
                    ))
            elif block.previous_hash != previous.hash:
                report.findings.append(ValidationFinding(
                    position,
                    f"Block {position} is not linked to block {position - 1}.",
                    "linkage",
                ))

            previous = block

        if report.is_valid:
            logger.debug("Chain validated", block_count=report.block_count)
        else:
            logger.warning(
                "Chain validation found problems",
                block_count=report.block_count,
                finding_count=len(report.findings),
            )

        return report
