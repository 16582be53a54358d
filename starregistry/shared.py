"""
Shared Registry Instance

Holds the one ledger a process runs on, plus the protocol and query
index bound to it. Built on first use, under a lock, so every caller
in the process sees the same chain.

Configuration comes from the environment (see starregistry.config).
"""

from threading import Lock
from typing import Optional

from .config import RegistryConfig
from .core import Ledger, OwnershipVerificationProtocol, QueryIndex
from .observability import get_logger


logger = get_logger(__name__)

_lock = Lock()
_ledger: Optional[Ledger] = None
_protocol: Optional[OwnershipVerificationProtocol] = None
_query: Optional[QueryIndex] = None


def _ensure_built() -> None:
    global _ledger, _protocol, _query

    with _lock:
        if _ledger is not None:
            return

        config = RegistryConfig.from_env()
        _ledger = Ledger()
        _protocol = OwnershipVerificationProtocol(_ledger, config=config)
        _query = QueryIndex(_ledger)

        logger.info(
            "Shared registry created",
            challenge_window=config.challenge_window,
            genesis_hash=_ledger.last_hash,
        )


def get_ledger() -> Ledger:
    """Get the shared ledger instance."""
    _ensure_built()
    return _ledger


def get_protocol() -> OwnershipVerificationProtocol:
    """Get the ownership protocol bound to the shared ledger."""
    _ensure_built()
    return _protocol


def get_query_index() -> QueryIndex:
    """Get the query index bound to the shared ledger."""
    _ensure_built()
    return _query


def reset() -> None:
    """Drop the shared instances (for testing only)."""
    global _ledger, _protocol, _query

    with _lock:
        _ledger = None
        _protocol = None
        _query = None
