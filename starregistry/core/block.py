"""
Block Model

A block carries one encoded payload plus the fields that chain it:
height, timestamp and the previous block's hash.

The body is the payload's JSON text (sorted keys, compact) as UTF-8,
hex-encoded. Encoding is reversible and identical for every block,
genesis included.

A block is sealed when the ledger appends it: hash is set over
(height, body, timestamp, previous_hash). Fields stay assignable so
tampering can be detected later by validate().
"""

import json
from typing import Any, Optional

from pydantic import BaseModel, Field

from .exceptions import DecodeError, EncodeError
from .hasher import Hasher


GENESIS_PAYLOAD = {"data": "Genesis Block"}


def _check_json_value(value: Any, path: str = "payload") -> None:
    """Reject values json.dumps would silently coerce (tuples, non-str keys)."""
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise EncodeError(
                    f"Dictionary key at {path} must be string, "
                    f"got {type(key).__name__}"
                )
            _check_json_value(item, f"{path}.{key}")
    elif isinstance(value, list):
        for i, item in enumerate(value):
            _check_json_value(item, f"{path}[{i}]")
    elif isinstance(value, tuple):
        raise EncodeError(f"Tuple at {path} would decode as a list; use a list")


def encode_payload(payload: Any) -> str:
    """
    Encode a payload into a block body.

    Payloads are plain JSON values: dicts with string keys, lists,
    strings, numbers, booleans and None. Decoding returns an equal value.

    Raises:
        EncodeError: If the payload is not a plain JSON value
    """
    try:
        _check_json_value(payload)
    except RecursionError as e:
        raise EncodeError("Payload is circular or nested too deeply") from e

    try:
        text = json.dumps(
            payload,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError) as e:
        raise EncodeError(f"Payload cannot be encoded: {e}") from e

    return text.encode("utf-8").hex()


def decode_payload(body: Any) -> Any:
    """
    Decode a block body back into its payload.

    Pure inverse of encode_payload.

    Raises:
        DecodeError: If body is not hex, not UTF-8, or not JSON
    """
    if not isinstance(body, str):
        raise DecodeError(
            f"Block body must be a hex string, got {type(body).__name__}"
        )

    try:
        raw = bytes.fromhex(body)
    except ValueError as e:
        raise DecodeError(f"Block body is not valid hex: {e}") from e

    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Block body is not valid UTF-8: {e}") from e

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Block body is not valid JSON: {e}") from e


class Block(BaseModel):
    """
    A single entry in the star registry chain.

    CHAIN RULES:
    - previous_hash is None ONLY for genesis (height 0)
    - hash is None until the ledger appends the block
    - hash never covers itself
    """

    hash: Optional[str] = Field(
        default=None,
        description="SHA-256 of the canonical block fields. None until appended."
    )
    height: int = Field(
        default=0,
        ge=0,
        description="Zero-based position in the ledger"
    )
    body: str = Field(
        ...,
        description="Hex-encoded UTF-8 JSON of the payload"
    )
    timestamp: int = Field(
        default=0,
        description="Seconds since epoch, assigned at append time"
    )
    previous_hash: Optional[str] = Field(
        default=None,
        description="Hash of the preceding block. None for genesis."
    )

    @classmethod
    def from_payload(cls, payload: Any) -> "Block":
        """Create an unsealed block carrying payload."""
        return cls(body=encode_payload(payload))

    @classmethod
    def genesis(cls) -> "Block":
        """Create the unsealed genesis block."""
        return cls.from_payload(GENESIS_PAYLOAD)

    @property
    def is_genesis(self) -> bool:
        return self.height == 0

    @property
    def is_sealed(self) -> bool:
        return self.hash is not None

    def canonical_fields(self) -> dict[str, Any]:
        """The fields covered by the block hash."""
        return {
            "height": self.height,
            "body": self.body,
            "timestamp": self.timestamp,
            "previous_hash": self.previous_hash,
        }

    def compute_hash(self) -> str:
        return Hasher.hash_block(self.canonical_fields())

    def seal(self) -> str:
        """Compute and assign the hash from the current fields."""
        self.hash = self.compute_hash()
        return self.hash

    def validate(self) -> bool:
        """
        Check whether the block has been tampered with.

        Recomputes the hash over the canonical fields and compares it
        with the stored hash. Pure; returns False rather than raising.
        """
        return Hasher.verify_block(self.canonical_fields(), self.hash)

    def get_payload(self) -> Any:
        """
        Decode the body.

        Raises:
            DecodeError: If the body is not a valid encoding
        """
        return decode_payload(self.body)
