"""
Wallet Signature Verification

Uses Ed25519 (PyNaCl). A wallet address is the base64-encoded
Ed25519 verify key of the wallet.

The registry only ever VERIFIES signatures. Key generation and
signing live here for wallets, demos and tests; the ledger itself
never holds a private key.
"""

import base64
from typing import Callable, Tuple

from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey


# (message, signature_b64, address) -> bool
SignatureVerifier = Callable[[str, str, str], bool]


class Signer:
    """
    Ed25519 signing and verification for wallet ownership proofs.

    A valid signature over a challenge message proves the submitter
    controls the private key behind the address.
    """

    @staticmethod
    def generate_keypair() -> Tuple[str, str]:
        """
        Generate a new Ed25519 keypair.

        Returns:
            Tuple of (private_key_b64, address)
        """
        signing_key = SigningKey.generate()
        verify_key = signing_key.verify_key

        private_b64 = base64.b64encode(bytes(signing_key)).decode("utf-8")
        address = base64.b64encode(bytes(verify_key)).decode("utf-8")

        return private_b64, address

    @staticmethod
    def address_for(private_key_b64: str) -> str:
        """Derive the wallet address of a private key."""
        signing_key = SigningKey(base64.b64decode(private_key_b64))
        return base64.b64encode(bytes(signing_key.verify_key)).decode("utf-8")

    @staticmethod
    def sign(message: str, private_key_b64: str) -> str:
        """
        Sign a message with Ed25519.

        Args:
            message: The string to sign (typically a challenge message)
            private_key_b64: Base64-encoded private key

        Returns:
            Base64-encoded signature
        """
        private_key_bytes = base64.b64decode(private_key_b64)
        signing_key = SigningKey(private_key_bytes)

        signed = signing_key.sign(message.encode("utf-8"))

        return base64.b64encode(signed.signature).decode("utf-8")

    @staticmethod
    def verify(
        message: str,
        signature_b64: str,
        address: str
    ) -> bool:
        """
        Verify that address signed message.

        Args:
            message: The original message
            signature_b64: Base64-encoded signature
            address: Base64-encoded Ed25519 verify key

        Returns:
            True if signature is valid, False otherwise
        """
        try:
            verify_key = VerifyKey(base64.b64decode(address, validate=True))
            signature_bytes = base64.b64decode(signature_b64, validate=True)

            # Raises BadSignatureError if invalid
            verify_key.verify(message.encode("utf-8"), signature_bytes)
            return True

        except (BadSignatureError, ValueError, TypeError):
            # Malformed key or signature bytes count as a failed proof
            return False
