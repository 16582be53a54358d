"""
Storage Layer for the Star Registry

Provides the BlockStore abstraction and its in-memory implementation.
"""

from .store import (
    BlockStore,
    InMemoryBlockStore,
    BlockStoreError,
    ChainIntegrityError,
    ChainHead,
    AppendContext,
)

__all__ = [
    "BlockStore",
    "InMemoryBlockStore",
    "BlockStoreError",
    "ChainIntegrityError",
    "ChainHead",
    "AppendContext",
]
