"""
Registry Exceptions

Every error the registry raises derives from RegistryError.

Protocol errors (timeout, bad signature, malformed challenge) are the
terminal result of a submission and go straight back to the caller.
Decode errors are recovered locally during scans.
AppendError and ChainError mean the chain itself is broken.
"""


class RegistryError(Exception):
    """Base exception for star registry errors."""
    pass


# ------------------------------------------------------------
# Block encoding
# ------------------------------------------------------------

class BlockError(RegistryError):
    """Base exception for block errors."""
    pass


class EncodeError(BlockError, ValueError):
    """Raised when a payload cannot be encoded into a block body."""
    pass


class DecodeError(BlockError, ValueError):
    """Raised when a block body is not a valid payload encoding."""
    pass


# ------------------------------------------------------------
# Ledger
# ------------------------------------------------------------

class LedgerError(RegistryError):
    """Base exception for ledger errors."""
    pass


class AppendError(LedgerError):
    """
    Raised when an append violates a chain invariant.

    Never expected in correct operation. Treat as a defect.
    """
    pass


class ChainError(LedgerError):
    """Raised when a chain being loaded fails integrity checks."""
    pass


# ------------------------------------------------------------
# Ownership verification
# ------------------------------------------------------------

class OwnershipError(RegistryError):
    """Base exception for rejected star submissions."""
    pass


class ChallengeTimeoutError(OwnershipError, TimeoutError):
    """Raised when a challenge message is older than the verification window."""

    def __init__(self, elapsed: int, window: int):
        self.elapsed = elapsed
        self.window = window
        super().__init__(
            f"Challenge expired: {elapsed}s elapsed, window is {window}s. "
            "Request a new challenge and sign it again."
        )


class InvalidSignatureError(OwnershipError):
    """Raised when a signature does not verify for the address and message."""
    pass


class MalformedChallengeError(OwnershipError, ValueError):
    """Raised when a submitted message is not a challenge issued for the address."""
    pass
