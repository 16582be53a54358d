"""
Block Store Abstraction

Defines the BlockStore interface and the in-memory implementation
the registry runs on.

The BlockStore is responsible for:
- Atomic append with height and previous hash assignment
- Ordering guarantees
- Chain head management (single source of truth for height/hash)
- Lookup indexes by height and by hash

The Ledger retains responsibility for:
- Sealing blocks (timestamp + hash)
- Genesis initialization

TRANSACTION CONTRACT:
All append operations MUST use the begin_append() context manager:

    with store.begin_append() as ctx:
        height, prev_hash = ctx.head.next_height, ctx.head.last_hash
        # ... assign fields, compute hash ...
        ctx.commit(block)

Everything between entering and committing happens under the store's
write lock, so two appenders can never observe the same head.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from threading import Lock
from typing import Generator, Optional

from ..core.block import Block


# ============================================================
# EXCEPTIONS
# ============================================================

class BlockStoreError(Exception):
    """Base exception for block store errors."""
    pass


class ChainIntegrityError(BlockStoreError):
    """Raised when a commit would break chain integrity."""
    pass


# ============================================================
# DATA STRUCTURES
# ============================================================

@dataclass(frozen=True)
class ChainHead:
    """
    Current state of the chain head.

    This is what gets locked during atomic append.
    """
    last_height: int  # -1 means empty ledger
    last_hash: Optional[str]  # None means empty ledger

    @property
    def next_height(self) -> int:
        return self.last_height + 1

    @property
    def is_empty(self) -> bool:
        return self.last_height == -1


@dataclass
class AppendContext:
    """
    Transaction context for one atomic append.

    Holds the head snapshot taken when the lock was acquired.
    Commit or rollback releases the lock exactly once.
    """
    head: ChainHead
    _store: "BlockStore"
    _committed: bool = field(default=False, init=False)
    _rolled_back: bool = field(default=False, init=False)

    @property
    def is_open(self) -> bool:
        return not self._committed and not self._rolled_back

    def commit(self, block: Block) -> Block:
        """
        Commit the sealed block within this transaction context.

        Returns:
            The stored block
        """
        if self._committed:
            raise BlockStoreError("Transaction already committed")
        if self._rolled_back:
            raise BlockStoreError("Transaction already rolled back")

        try:
            return self._store._do_commit(self, block)
        finally:
            self._committed = True

    def rollback(self) -> None:
        """Explicitly rollback this transaction."""
        if self.is_open:
            self._store._do_rollback(self)
            self._rolled_back = True


# ============================================================
# ABSTRACT BASE CLASS
# ============================================================

class BlockStore(ABC):
    """
    Abstract base class for block storage.

    Implementations must ensure:
    1. Atomic append: begin_append holds the write lock until commit/rollback
    2. No gaps in heights
    3. No duplicate heights
    4. Chain linkage is always correct
    5. Readers never see a partially appended block
    """

    @contextmanager
    @abstractmethod
    def begin_append(self) -> Generator[AppendContext, None, None]:
        """
        Begin an atomic append operation.

        Acquires the write lock, yields an AppendContext with the
        current head, and rolls back if the body raises or never commits.
        """
        pass

    @abstractmethod
    def _do_commit(self, ctx: AppendContext, block: Block) -> Block:
        """Internal: commit within current transaction. Use ctx.commit() instead."""
        pass

    @abstractmethod
    def _do_rollback(self, ctx: AppendContext) -> None:
        """Internal: rollback current transaction. Use ctx.rollback() instead."""
        pass

    @abstractmethod
    def list_all(self) -> list[Block]:
        """All blocks ordered by height (snapshot copy)."""
        pass

    @abstractmethod
    def get_by_height(self, height: int) -> Optional[Block]:
        pass

    @abstractmethod
    def get_by_hash(self, block_hash: str) -> Optional[Block]:
        pass

    @abstractmethod
    def get_head(self) -> ChainHead:
        """Get current chain head without holding the write lock."""
        pass

    @abstractmethod
    def get_block_count(self) -> int:
        pass


# ============================================================
# IN-MEMORY IMPLEMENTATION
# ============================================================

class InMemoryBlockStore(BlockStore):
    """
    In-memory implementation of BlockStore.

    The chain lives in process memory for the lifetime of the store.
    Nothing survives a restart.
    """

    def __init__(self):
        self._blocks: list[Block] = []
        self._by_hash: dict[str, int] = {}
        self._head = ChainHead(last_height=-1, last_hash=None)
        self._lock = Lock()

    @contextmanager
    def begin_append(self) -> Generator[AppendContext, None, None]:
        """Begin atomic append under the write lock."""
        self._lock.acquire()

        ctx = AppendContext(head=self._head, _store=self)

        try:
            yield ctx
        finally:
            # Covers both an exception in the body and a missing commit
            if ctx.is_open:
                ctx.rollback()

    def _do_commit(self, ctx: AppendContext, block: Block) -> Block:
        """Commit block to the in-memory chain and release the lock."""
        try:
            expected_height = self._head.next_height

            if block.height != expected_height:
                raise ChainIntegrityError(
                    f"Height mismatch: expected {expected_height}, "
                    f"got {block.height}"
                )

            if expected_height == 0:
                if block.previous_hash is not None:
                    raise ChainIntegrityError(
                        "Genesis block must have previous_hash=None"
                    )
            elif block.previous_hash != self._head.last_hash:
                raise ChainIntegrityError(
                    f"Previous hash mismatch: expected {self._head.last_hash}, "
                    f"got {block.previous_hash}"
                )

            if not block.validate():
                raise ChainIntegrityError(
                    f"Block {block.height} hash does not match its fields"
                )

            if block.hash in self._by_hash:
                raise ChainIntegrityError(
                    f"Duplicate block hash {block.hash[:16]}..."
                )

            # All checks passed - append
            self._blocks.append(block)
            self._by_hash[block.hash] = block.height
            self._head = ChainHead(
                last_height=block.height,
                last_hash=block.hash,
            )

            return block

        finally:
            self._lock.release()

    def _do_rollback(self, ctx: AppendContext) -> None:
        """Release lock without committing."""
        self._lock.release()

    def list_all(self) -> list[Block]:
        with self._lock:
            return list(self._blocks)

    def get_by_height(self, height: int) -> Optional[Block]:
        with self._lock:
            if 0 <= height < len(self._blocks):
                return self._blocks[height]
            return None

    def get_by_hash(self, block_hash: str) -> Optional[Block]:
        with self._lock:
            height = self._by_hash.get(block_hash)
            if height is None:
                return None
            return self._blocks[height]

    def get_head(self) -> ChainHead:
        # ChainHead is frozen and swapped atomically on commit
        return self._head

    def get_block_count(self) -> int:
        with self._lock:
            return len(self._blocks)
