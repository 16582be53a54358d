# Core registry services
from .exceptions import (
    RegistryError,
    BlockError,
    EncodeError,
    DecodeError,
    LedgerError,
    AppendError,
    ChainError,
    OwnershipError,
    ChallengeTimeoutError,
    InvalidSignatureError,
    MalformedChallengeError,
)
from .hasher import Hasher, CanonicalSerializationError
from .block import Block, GENESIS_PAYLOAD, encode_payload, decode_payload
from .signer import Signer, SignatureVerifier
from .ledger import Ledger
from .validator import (
    ChainValidator,
    ValidationFinding,
    ValidationReport,
    VALID_CHAIN_MESSAGE,
)
from .query import QueryIndex
from .protocol import (
    Challenge,
    OwnershipVerificationProtocol,
    RegistrationState,
)

__all__ = [
    "RegistryError",
    "BlockError",
    "EncodeError",
    "DecodeError",
    "LedgerError",
    "AppendError",
    "ChainError",
    "OwnershipError",
    "ChallengeTimeoutError",
    "InvalidSignatureError",
    "MalformedChallengeError",
    "Hasher",
    "CanonicalSerializationError",
    "Block",
    "GENESIS_PAYLOAD",
    "encode_payload",
    "decode_payload",
    "Signer",
    "SignatureVerifier",
    "Ledger",
    "ChainValidator",
    "ValidationFinding",
    "ValidationReport",
    "VALID_CHAIN_MESSAGE",
    "QueryIndex",
    "Challenge",
    "OwnershipVerificationProtocol",
    "RegistrationState",
]
