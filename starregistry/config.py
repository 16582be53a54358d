"""
Registry Configuration

Environment Variables:
    STARREGISTRY_CHALLENGE_WINDOW: Seconds a challenge stays valid (default 300)
    STARREGISTRY_CHALLENGE_SUFFIX: Last field of challenge messages (default starRegistry)
"""

import os
from dataclasses import dataclass


DEFAULT_CHALLENGE_WINDOW = 300
DEFAULT_CHALLENGE_SUFFIX = "starRegistry"


@dataclass(frozen=True)
class RegistryConfig:
    """Ownership verification settings."""
    challenge_window: int = DEFAULT_CHALLENGE_WINDOW  # seconds, closed-open
    challenge_suffix: str = DEFAULT_CHALLENGE_SUFFIX

    def __post_init__(self):
        if self.challenge_window <= 0:
            raise ValueError(
                f"challenge_window must be positive, got {self.challenge_window}"
            )
        if not self.challenge_suffix or ":" in self.challenge_suffix:
            raise ValueError(
                "challenge_suffix must be a non-empty string without ':'"
            )

    @classmethod
    def from_env(cls) -> "RegistryConfig":
        """
        Load configuration from environment variables.

        Unset variables fall back to the defaults.
        """
        return cls(
            challenge_window=int(
                os.getenv("STARREGISTRY_CHALLENGE_WINDOW", str(DEFAULT_CHALLENGE_WINDOW))
            ),
            challenge_suffix=os.getenv(
                "STARREGISTRY_CHALLENGE_SUFFIX", DEFAULT_CHALLENGE_SUFFIX
            ),
        )
