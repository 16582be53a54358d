"""
Ownership Verification Protocol

Gates what may be appended to the ledger.

Flow per registration attempt:
1. Client asks for a challenge:  "<address>:<unixSeconds>:starRegistry"
2. Client signs it with the wallet behind <address>
3. Client submits (address, message, signature, star)
4. We check the challenge is well formed and issued for <address>
5. We check it is younger than the window (elapsed >= window is rejected)
6. We check the signature binds <address> to the message
7. The star is wrapped as {"star": star} and appended

Checks short-circuit in that order. All of them run BEFORE the ledger's
write lock is taken.

Challenges are stateless: the issue time travels inside the message,
so nothing is stored server-side and nothing needs to expire.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, TYPE_CHECKING

from ..config import RegistryConfig
from ..observability import get_logger, get_metrics
from .block import Block
from .exceptions import (
    ChallengeTimeoutError,
    InvalidSignatureError,
    MalformedChallengeError,
)
from .query import STAR_KEY
from .signer import SignatureVerifier, Signer

if TYPE_CHECKING:
    from .ledger import Ledger


logger = get_logger(__name__)


class RegistrationState(str, Enum):
    """Lifecycle of a single registration attempt."""
    CHALLENGE_ISSUED = "challenge_issued"
    ACCEPTED = "accepted"
    REJECTED_MALFORMED = "rejected_malformed"
    REJECTED_TIMEOUT = "rejected_timeout"
    REJECTED_SIGNATURE = "rejected_signature"


@dataclass(frozen=True)
class Challenge:
    """A parsed challenge message."""
    address: str
    issued_at: int
    suffix: str

    def render(self) -> str:
        return f"{self.address}:{self.issued_at}:{self.suffix}"


def _now_seconds() -> int:
    return int(time.time())


class OwnershipVerificationProtocol:
    """
    Issues challenges and turns verified submissions into blocks.

    Args:
        ledger: Ledger that accepted stars are appended to
        verifier: (message, signature, address) -> bool. Defaults to Ed25519.
        config: Window and message suffix. Defaults to RegistryConfig().
        clock: Current time in whole seconds since epoch.
    """

    def __init__(
        self,
        ledger: "Ledger",
        verifier: Optional[SignatureVerifier] = None,
        config: Optional[RegistryConfig] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self._ledger = ledger
        self._verifier = verifier or Signer.verify
        self._config = config or RegistryConfig()
        self._clock = clock or _now_seconds

    @property
    def config(self) -> RegistryConfig:
        return self._config

    def request_challenge(self, address: str) -> str:
        """Produce the message a wallet must sign to prove ownership."""
        if not address or ":" in address:
            raise MalformedChallengeError(
                f"Address must be non-empty and contain no ':', got {address!r}"
            )

        challenge = Challenge(
            address=address,
            issued_at=int(self._clock()),
            suffix=self._config.challenge_suffix,
        )
        get_metrics().record_submission(RegistrationState.CHALLENGE_ISSUED.value)
        logger.debug("Challenge issued", address=address, issued_at=challenge.issued_at)
        return challenge.render()

    def parse_challenge(self, message: str) -> Challenge:
        """
        Split a challenge message into its fields.

        Raises:
            MalformedChallengeError: If the message is not address:seconds:suffix
        """
        if not isinstance(message, str):
            raise MalformedChallengeError(
                f"Challenge message must be a string, got {type(message).__name__}"
            )

        parts = message.split(":")
        if len(parts) != 3:
            raise MalformedChallengeError(
                f"Challenge message must have exactly 3 ':'-separated fields, "
                f"got {len(parts)}"
            )

        address, issued_raw, suffix = parts

        if suffix != self._config.challenge_suffix:
            raise MalformedChallengeError(
                f"Challenge message must end with '{self._config.challenge_suffix}'"
            )

        if not (issued_raw.isascii() and issued_raw.isdigit()):
            raise MalformedChallengeError(
                f"Challenge timestamp must be whole epoch seconds, got {issued_raw!r}"
            )

        return Challenge(address=address, issued_at=int(issued_raw), suffix=suffix)

    def submit(
        self,
        address: str,
        message: str,
        signature: str,
        star: Any,
    ) -> Block:
        """
        Register a star for address.

        Returns:
            The appended block

        Raises:
            MalformedChallengeError: Message unparsable or issued for another address
            ChallengeTimeoutError: Challenge is window seconds old or older
            InvalidSignatureError: Signature does not verify
            AppendError: Ledger invariant violated (defect)
        """
        try:
            self._check_challenge(address, message)
        except MalformedChallengeError:
            self._reject(RegistrationState.REJECTED_MALFORMED, address)
            raise
        except ChallengeTimeoutError:
            self._reject(RegistrationState.REJECTED_TIMEOUT, address)
            raise

        if not self._verifier(message, signature, address):
            self._reject(RegistrationState.REJECTED_SIGNATURE, address)
            raise InvalidSignatureError(
                f"Signature does not verify for address {address}"
            )

        block = self._ledger.append(Block.from_payload({STAR_KEY: star}))

        get_metrics().record_submission(RegistrationState.ACCEPTED.value)
        logger.info(
            "Star registered",
            address=address,
            height=block.height,
            hash=block.hash,
        )
        return block

    def _check_challenge(self, address: str, message: str) -> None:
        challenge = self.parse_challenge(message)

        if challenge.address != address:
            raise MalformedChallengeError(
                "Challenge message was issued for a different address"
            )

        elapsed = int(self._clock()) - challenge.issued_at
        if elapsed >= self._config.challenge_window:
            raise ChallengeTimeoutError(elapsed, self._config.challenge_window)

    def _reject(self, state: RegistrationState, address: str) -> None:
        get_metrics().record_submission(state.value)
        logger.info("Star submission rejected", address=address, outcome=state.value)
