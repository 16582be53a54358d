"""
Query Index

Read-only lookups over the ledger: by hash, by height, and by the
owner recorded in star payloads.

Star blocks carry {"star": <payload>}; the owner lives inside the
star payload. Blocks that fail to decode are logged and skipped so
one bad block never hides the rest of the chain.
"""

from typing import Any, Optional, TYPE_CHECKING

from ..observability import get_logger, get_metrics
from .block import Block
from .exceptions import DecodeError

if TYPE_CHECKING:
    from .ledger import Ledger


logger = get_logger(__name__)

STAR_KEY = "star"


def _star_of(payload: Any) -> Any:
    """Unwrap the star entry of a decoded payload, if present."""
    if isinstance(payload, dict) and STAR_KEY in payload:
        return payload[STAR_KEY]
    return payload


class QueryIndex:
    """Lookups against a live ledger."""

    def __init__(self, ledger: "Ledger"):
        self._ledger = ledger

    def by_hash(self, block_hash: str) -> Optional[Block]:
        return self._ledger.get_by_hash(block_hash)

    def by_height(self, height: int) -> Optional[Block]:
        return self._ledger.get_by_height(height)

    def _decoded_stars(self):
        """Yield (block, star) for every block that decodes."""
        for block in self._ledger.get_blocks():
            try:
                payload = block.get_payload()
            except DecodeError as e:
                get_metrics().record_decode_failure()
                logger.warning(
                    "Skipping undecodable block",
                    height=block.height,
                    error=str(e),
                )
                continue
            yield block, _star_of(payload)

    def stars_by_owner(self, address: str) -> list[Any]:
        """
        Every star payload owned by address, in height order.

        Payloads without an "owner" field are skipped.
        Returns an empty list when the address owns nothing.
        """
        return [
            star
            for _, star in self._decoded_stars()
            if isinstance(star, dict) and star.get("owner") == address
        ]

    def owners(self) -> list[str]:
        """Every address that owns at least one star, sorted."""
        found = {
            star["owner"]
            for _, star in self._decoded_stars()
            if isinstance(star, dict) and isinstance(star.get("owner"), str)
        }
        return sorted(found)
