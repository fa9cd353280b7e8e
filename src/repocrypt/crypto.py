"""Encryption capability used by the key store and the filters.

The rest of repocrypt only talks to EncryptionGateway. Ciphertext is treated
as non-deterministic: encrypting the same bytes twice gives different output.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path


class CryptoError(Exception):
    """Raised when the encryption capability fails."""
    pass


class AgeNotAvailableError(CryptoError):
    """Raised when the age binaries are not installed."""
    pass


class KeyGenerationError(CryptoError):
    """Raised when a key pair cannot be generated or wrapped."""
    pass


class EncryptionError(CryptoError):
    """Raised when encryption fails."""
    pass


class DecryptionError(CryptoError):
    """Raised when input is not ciphertext for the given identity."""
    pass


@dataclass(frozen=True)
class Decrypted:
    """Successful decryption."""
    plaintext: bytes


@dataclass(frozen=True)
class DecryptFailed:
    """Decryption did not produce plaintext.

    This is an expected outcome (no key yet, content committed before the
    filter was enabled, merge artifacts) and callers branch on it.
    """
    reason: str


DecryptResult = Decrypted | DecryptFailed


class EncryptionGateway(ABC):
    """Encrypt for recipients, decrypt with an identity file."""

    @abstractmethod
    def generate_keypair(self) -> tuple[bytes, str]:
        """Generate a new identity.

        Returns:
            Tuple of (identity file content, public key)

        Raises:
            KeyGenerationError: If generation fails
        """

    @abstractmethod
    def encrypt(self, plaintext: bytes, recipients: list[str]) -> bytes:
        """Encrypt bytes for every recipient.

        Raises:
            EncryptionError: If encryption fails
        """

    @abstractmethod
    def decrypt(self, ciphertext: bytes, identity: Path) -> bytes:
        """Decrypt bytes with the identity stored at ``identity``.

        Raises:
            DecryptionError: If the input is not ciphertext for this identity
        """

    @abstractmethod
    def wrap_identity(self, identity: bytes) -> bytes:
        """Encrypt an identity with a passphrase.

        Raises:
            KeyGenerationError: If wrapping fails
        """

    @abstractmethod
    def unwrap_identity(self, protected: Path) -> bytes:
        """Decrypt a passphrase-protected identity file.

        Raises:
            DecryptionError: If the passphrase is wrong
        """

    def decrypt_file(self, path: Path, identity: Path) -> bytes:
        """Decrypt the content of a file.

        Raises:
            DecryptionError: If the file is not ciphertext for this identity
        """
        return self.decrypt(path.read_bytes(), identity)

    def try_decrypt(self, ciphertext: bytes, identity: Path | None) -> DecryptResult:
        """Decrypt without raising on the expected failure modes.

        Args:
            ciphertext: Bytes that may or may not be ciphertext
            identity: Identity file, or None when no key is available

        Returns:
            Decrypted on success, DecryptFailed otherwise
        """
        if identity is None:
            return DecryptFailed("no private key available")
        try:
            return Decrypted(self.decrypt(ciphertext, identity))
        except DecryptionError as e:
            return DecryptFailed(str(e))
