"""Git clean/smudge/textconv filters.

age output is randomized, so encrypting unchanged content would give new
ciphertext on every ``git status`` and git would report the file as
modified. The clean filter therefore reuses the committed ciphertext
whenever it still decrypts to the working-copy content.

Fallbacks differ by direction:

- clean: no usable committed blob means "encrypt"; encryption errors are
  fatal, plaintext is never emitted.
- smudge: undecryptable input gives an empty working-copy file.
- textconv: undecryptable input is shown as-is.
"""

from pathlib import Path

from .crypto import Decrypted, DecryptFailed, EncryptionGateway
from .keys import KeyStore
from .output import Output, get_output


class FilterPipeline:
    """The three filter operations over a key store and a gateway."""

    def __init__(self, gateway: EncryptionGateway, keystore: KeyStore, output: Output | None = None):
        self.gateway = gateway
        self.keystore = keystore
        self.output = output or get_output()

    def outbound(self, data: bytes, committed: bytes | None) -> bytes:
        """Clean filter: working copy to repository.

        Args:
            data: Working-copy content
            committed: Blob recorded at HEAD for the same path, if any

        Returns:
            Ciphertext to store. ``committed`` itself when it already holds
            this exact content.

        Raises:
            KeyUnavailableError: If there is no recipient list
            EncryptionError: If encryption fails
        """
        if committed is not None:
            result = self.gateway.try_decrypt(committed, self.keystore.identity_or_none())
            if isinstance(result, Decrypted) and result.plaintext == data:
                return committed

        return self.gateway.encrypt(data, self.keystore.load_recipients())

    def inbound(self, data: bytes, path: str | None = None) -> bytes:
        """Smudge filter: repository to working copy.

        Args:
            data: Stored content
            path: Path being checked out, for messages only

        Returns:
            Plaintext, or empty bytes if the content cannot be decrypted
        """
        if not data:
            return b""

        result = self.gateway.try_decrypt(data, self.keystore.identity_or_none())
        if isinstance(result, DecryptFailed):
            self.output.warning(f"Cannot decrypt {path or 'input'}, leaving it empty: {result.reason}")
            return b""
        return result.plaintext

    def diff_transform(self, path: Path) -> bytes:
        """Textconv: render a file for diffs.

        Args:
            path: File to render (git passes a temporary file)

        Returns:
            Plaintext, or the raw file content if it cannot be decrypted
        """
        raw = path.read_bytes()
        result = self.gateway.try_decrypt(raw, self.keystore.identity_or_none())
        if isinstance(result, Decrypted):
            return result.plaintext
        return raw
