"""
Block Hashing Service

Handles deterministic serialization and SHA-256 hashing of blocks.
Same block fields → same hash. Always.

If this changes, every previously sealed block becomes unverifiable.
Any change here must be versioned.

CANONICAL SERIALIZATION RULES:
1. Version: "__canon_v" injected into every canonical output (first key when sorted)
2. Dictionary keys: sorted recursively (Unicode codepoint order)
3. Nulls: omitted entirely (the genesis block has no previous_hash)
4. Empty strings, lists, dicts: preserved
5. Enums: string value (not name)
6. Floats: BANNED - block fields are ints and strings only
7. JSON output: no extra whitespace, sorted keys, ASCII only
8. Top-level: must be dict/object
9. The "hash" field is NEVER part of its own input
"""

import hashlib
import json
from enum import Enum
from typing import Any


class CanonicalSerializationError(Exception):
    """Raised when data cannot be canonically serialized."""
    pass


class Hasher:
    """
    Canonical serialization and hashing for blocks.

    A block's hash is computed over its other fields only.
    Validation later recomputes over exactly the same field set,
    so a stored hash can never feed into its own recomputation.
    """

    SERIALIZATION_VERSION = 1

    # Fields that make up a block's canonical form
    BLOCK_FIELDS = ("height", "body", "timestamp", "previous_hash")

    @classmethod
    def _serialize_value(cls, value: Any, path: str = "") -> Any:
        """
        Convert a value to its JSON-serializable canonical form.

        Raises:
            CanonicalSerializationError: If value cannot be serialized deterministically
        """
        if value is None:
            return None  # Filtered out by _to_canonical_dict

        if isinstance(value, Enum):
            return value.value

        if isinstance(value, bool):
            return value

        if isinstance(value, int):
            return value

        if isinstance(value, float):
            raise CanonicalSerializationError(
                f"Cannot serialize float at {path}. "
                "Floats are banned in canonical block fields."
            )

        if isinstance(value, str):
            return value

        if isinstance(value, (list, tuple)):
            return [
                cls._serialize_value(v, f"{path}[{i}]")
                for i, v in enumerate(value)
            ]

        if isinstance(value, dict):
            return cls._to_canonical_dict(value, path)

        raise CanonicalSerializationError(
            f"Cannot serialize {type(value).__name__} at {path}. "
            "Only JSON-compatible types are allowed."
        )

    @classmethod
    def _to_canonical_dict(
        cls,
        data: dict[str, Any],
        path: str = ""
    ) -> dict[str, Any]:
        """Sort keys, drop None values, serialize recursively."""
        result = {}

        for key in sorted(data.keys()):
            if not isinstance(key, str):
                raise CanonicalSerializationError(
                    f"Dictionary key at {path} must be string, "
                    f"got {type(key).__name__}"
                )

            key_path = f"{path}.{key}" if path else key
            serialized = cls._serialize_value(data[key], key_path)

            if serialized is not None:
                result[key] = serialized

        return result

    @classmethod
    def canonicalize(cls, data: dict[str, Any]) -> str:
        """
        Convert data to canonical JSON string.

        Injects "__canon_v" so every hash is self-describing.

        Raises:
            CanonicalSerializationError: If data cannot be deterministically serialized
        """
        if not isinstance(data, dict):
            raise CanonicalSerializationError(
                f"Top-level canonicalization requires a dict/object, "
                f"got {type(data).__name__}."
            )

        canonical_dict = cls._to_canonical_dict(data)
        canonical_dict = {"__canon_v": cls.SERIALIZATION_VERSION, **canonical_dict}

        return json.dumps(
            canonical_dict,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=True,
            allow_nan=False,
        )

    @classmethod
    def hash_data(cls, data: dict[str, Any]) -> str:
        """Hex-encoded SHA-256 of the canonical form of data."""
        canonical = cls.canonicalize(data)
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    @classmethod
    def block_fields(cls, fields: dict[str, Any]) -> dict[str, Any]:
        """
        Select the hashed fields of a block.

        Anything not in BLOCK_FIELDS (notably "hash") is dropped.
        """
        return {name: fields.get(name) for name in cls.BLOCK_FIELDS}

    @classmethod
    def hash_block(cls, fields: dict[str, Any]) -> str:
        """
        Hash a block's canonical fields.

        Args:
            fields: Block fields; a "hash" key, if present, is ignored

        Returns:
            Hex-encoded SHA-256 hash (64 characters, lowercase)
        """
        return cls.hash_data(cls.block_fields(fields))

    @classmethod
    def verify_block(cls, fields: dict[str, Any], expected_hash: str | None) -> bool:
        """
        Check that block fields match an expected hash.

        Returns False (never raises) when the fields cannot be hashed
        or no hash was ever assigned.
        """
        if not isinstance(expected_hash, str) or not expected_hash:
            return False
        try:
            computed = cls.hash_block(fields)
        except CanonicalSerializationError:
            return False
        return cls._constant_time_compare(computed, expected_hash)

    @staticmethod
    def _constant_time_compare(a: str, b: str) -> bool:
        """Compare two strings in constant time."""
        if len(a) != len(b):
            return False

        result = 0
        for x, y in zip(a, b):
            result |= ord(x) ^ ord(y)

        return result == 0
