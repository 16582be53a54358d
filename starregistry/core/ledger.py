"""
Ledger - The Heart of the Registry

An append-only, hash-chained sequence of blocks.
Nothing is edited. Blocks are only ever added.

Rules (enforced in code):
- The genesis block is created when the ledger is constructed
- Heights increase by exactly one per append, no gaps
- previous_hash is None ONLY for genesis (height 0)
- Every block is sealed (hash assigned) before anyone can see it

ARCHITECTURE NOTE:
Storage is delegated to a BlockStore.
- Ledger: sealing, genesis, export/load
- BlockStore: atomic append, ordering, lookups

The Ledger takes (height, previous_hash) from the store INSIDE the
store's append transaction, so concurrent appenders are serialized.
"""

import time
from typing import Any, Callable, Optional, TYPE_CHECKING

from ..observability import get_logger, get_metrics
from .block import Block
from .exceptions import AppendError, ChainError

if TYPE_CHECKING:
    from ..db.store import BlockStore


logger = get_logger(__name__)


def _now_seconds() -> int:
    return int(time.time())


class Ledger:
    """
    The star registry ledger.

    CHAIN INTEGRITY GUARANTEES:
    - height == block_count - 1
    - chain[h].previous_hash == chain[h-1].hash for every h > 0
    - Blocks are validated by the store before they become visible

    CONCURRENCY GUARANTEES:
    - append() runs inside BlockStore.begin_append(), one writer at a time
    - Reads return snapshots and never see a half-appended block
    """

    def __init__(
        self,
        store: Optional["BlockStore"] = None,
        clock: Optional[Callable[[], int]] = None,
        initialize: bool = True,
    ):
        """
        Initialize the ledger.

        Args:
            store: BlockStore to append into. If None, creates an InMemoryBlockStore.
            clock: Returns the current time in whole seconds since epoch.
            initialize: Create the genesis block immediately (default True).
        """
        # Import here to avoid circular imports
        if store is None:
            from ..db.store import InMemoryBlockStore
            store = InMemoryBlockStore()

        self._store = store
        self._clock = clock or _now_seconds

        if initialize:
            self.initialize()

    @property
    def store(self) -> "BlockStore":
        """Get the underlying block store."""
        return self._store

    @property
    def height(self) -> int:
        """Current chain height. -1 only before initialize()."""
        return self._store.get_head().last_height

    @property
    def last_hash(self) -> Optional[str]:
        """Hash of the newest block."""
        return self._store.get_head().last_hash

    @property
    def block_count(self) -> int:
        return self._store.get_block_count()

    def initialize(self) -> Optional[Block]:
        """
        Create the genesis block if the ledger is empty.

        Idempotent: returns None when the chain already has blocks.
        """
        if not self._store.get_head().is_empty:
            return None

        try:
            genesis = self.append(Block.genesis(), _genesis=True)
        except AppendError:
            # Lost a race with another initializer
            if self._store.get_head().is_empty:
                raise
            return None

        logger.info("Genesis block created", hash=genesis.hash)
        return genesis

    def append(self, candidate: Block, _genesis: bool = False) -> Block:
        """
        Seal a block onto the end of the chain.

        Assigns height, timestamp and previous_hash from the current
        head, computes the hash, and stores the block. All of this
        happens while holding the store's write lock.

        Returns:
            The stored block (the same object as candidate)

        Raises:
            AppendError: If the candidate is already sealed or the store
                rejects the block
        """
        # A sealed block already belongs to a chain
        if candidate.is_sealed:
            raise AppendError(
                f"Cannot append block already sealed at height {candidate.height}: "
                "append a fresh unsealed block instead"
            )

        start = time.perf_counter()

        with self._store.begin_append() as ctx:
            head = ctx.head

            if head.is_empty and not _genesis:
                raise AppendError(
                    "Cannot append to an uninitialized ledger: "
                    "genesis block is missing"
                )
            if _genesis and not head.is_empty:
                raise AppendError("Cannot add genesis block: chain already has blocks")

            candidate.height = head.next_height
            candidate.timestamp = self._clock()

            # CRITICAL: Only genesis (height 0) has no previous hash
            if head.is_empty:
                candidate.previous_hash = None
            else:
                if head.last_hash is None:
                    raise AppendError(
                        f"Cannot create block {candidate.height}: previous "
                        "block hash is missing but this is not genesis"
                    )
                candidate.previous_hash = head.last_hash

            candidate.seal()

            try:
                block = ctx.commit(candidate)
            except Exception as e:
                raise AppendError(f"Block store rejected block: {e}") from e

        latency_ms = (time.perf_counter() - start) * 1000
        get_metrics().record_append(latency_ms)
        logger.debug(
            "Block appended",
            height=block.height,
            hash=block.hash,
            duration_ms=round(latency_ms, 3),
        )

        return block

    def get_by_hash(self, block_hash: str) -> Optional[Block]:
        return self._store.get_by_hash(block_hash)

    def get_by_height(self, height: int) -> Optional[Block]:
        return self._store.get_by_height(height)

    def get_blocks(self) -> list[Block]:
        """Snapshot of every block in height order."""
        return self._store.list_all()

    def export(self) -> list[dict[str, Any]]:
        """Plain-dict copy of the chain, suitable for JSON."""
        return [block.model_dump() for block in self.get_blocks()]

    @classmethod
    def load_from_blocks(
        cls,
        blocks: list[Block | dict[str, Any]],
        verify: bool = True,
        store: Optional["BlockStore"] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> "Ledger":
        """
        Rebuild a ledger from previously exported blocks.

        Blocks are re-committed exactly as given (hashes and timestamps
        preserved), so the rebuilt chain is the same chain.

        Args:
            blocks: Block models or dicts as produced by export()
            verify: If True (default), refuse any chain with findings
            store: BlockStore to load into. If None, creates an InMemoryBlockStore.

        Raises:
            ChainError: If verification fails or the store rejects a block
        """
        from .validator import ChainValidator

        # Copies, so the new ledger never shares mutable blocks with the source
        parsed = [
            b.model_copy() if isinstance(b, Block) else Block.model_validate(b)
            for b in blocks
        ]
        parsed.sort(key=lambda b: b.height)

        if verify:
            report = ChainValidator().validate_blocks(parsed)
            if not report.is_valid:
                raise ChainError(
                    "Refusing to load broken chain: " + "; ".join(report.messages)
                )

        ledger = cls(store=store, clock=clock, initialize=False)

        for block in parsed:
            with ledger._store.begin_append() as ctx:
                try:
                    ctx.commit(block)
                except Exception as e:
                    raise ChainError(
                        f"Block {block.height} could not be loaded: {e}"
                    ) from e

        # An empty export still yields a usable ledger
        ledger.initialize()

        logger.info("Ledger loaded", block_count=ledger.block_count)
        return ledger
