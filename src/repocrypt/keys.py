"""Key material lifecycle.

Three artifacts live under the key directory:

- ``key.age``: the private key, passphrase-encrypted. Committed.
- ``age.recipients``: the public key(s), one per line. Committed.
- ``key``: the private key in cleartext. Local to the working copy and
  excluded from commits.

The cache can always be rebuilt from ``key.age`` and the passphrase. Losing
``key.age`` is not recoverable, so nothing here ever overwrites it.
"""

import os
from pathlib import Path

from .crypto import AgeNotAvailableError, DecryptionError, EncryptionGateway, KeyGenerationError
from .output import Output, get_output

PROTECTED_KEY_NAME = "key.age"
RECIPIENTS_NAME = "age.recipients"
CACHE_NAME = "key"


class KeyStoreError(Exception):
    """Raised when key material is missing or unusable."""
    pass


class WrongPassphraseError(KeyStoreError):
    """Raised when the protected key cannot be decrypted with the passphrase."""
    pass


class MissingProtectedKeyError(KeyStoreError):
    """Raised when key.age does not exist yet."""
    pass


class KeyUnavailableError(KeyStoreError):
    """Raised when a key artifact needed for an operation was never created."""
    pass


def parse_recipients(text: str) -> list[str]:
    """Parse a recipients file.

    Args:
        text: File content

    Returns:
        Recipients in file order, without comments, blank lines or duplicates
    """
    recipients = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if line not in recipients:
            recipients.append(line)
    return recipients


def _atomic_write(path: Path, data: bytes, mode: int = 0o644) -> None:
    """Write bytes through a temporary file and rename into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.{os.getpid()}.tmp")
    fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


class KeyStore:
    """Owns key.age, age.recipients and the local cleartext key cache."""

    def __init__(
        self,
        root_dir: Path,
        gateway: EncryptionGateway,
        *,
        key_dir: str = ".repocrypt",
        output: Output | None = None,
    ):
        self.root_dir = root_dir
        self.gateway = gateway
        self.key_dir = root_dir / key_dir
        self.output = output or get_output()

    @property
    def protected_key_path(self) -> Path:
        return self.key_dir / PROTECTED_KEY_NAME

    @property
    def recipients_path(self) -> Path:
        return self.key_dir / RECIPIENTS_NAME

    @property
    def cache_path(self) -> Path:
        return self.key_dir / CACHE_NAME

    def ensure_key_pair(self) -> bool:
        """Generate and persist a key pair unless key.age already exists.

        The fresh identity is also written to the local cache, so the
        operator is asked for the passphrase only once.

        Returns:
            True if a key pair was generated, False if one already existed.

        Raises:
            KeyGenerationError: If generation or passphrase wrapping fails, or age is missing
            MissingProtectedKeyError: If a cached key exists without key.age
        """
        if self.protected_key_path.exists():
            return False

        if self.cache_path.exists():
            raise MissingProtectedKeyError(
                f"{self.cache_path} exists but {self.protected_key_path} does not. "
                "Restore key.age from history or remove the cached key before generating a new one."
            )

        try:
            self.output.info("Generating a new age key pair...")
            identity, public_key = self.gateway.generate_keypair()

            self.output.info(f"Choose a passphrase to protect {self.output.path(str(self.protected_key_path))}")
            protected = self.gateway.wrap_identity(identity)
        except AgeNotAvailableError as e:
            raise KeyGenerationError(str(e)) from e
        if not protected:
            raise KeyGenerationError("Passphrase encryption produced no output")

        # key.age goes after recipients and before the cache: an interrupted
        # run either regenerates (no key.age) or only needs unlocking
        _atomic_write(self.recipients_path, f"{public_key}\n".encode())
        _atomic_write(self.protected_key_path, protected)
        _atomic_write(self.cache_path, identity, mode=0o600)

        self.output.created(str(self.protected_key_path.relative_to(self.root_dir)))
        self.output.created(str(self.recipients_path.relative_to(self.root_dir)))
        return True

    def ensure_unprotected_cache(self, attempts: int = 3) -> bool:
        """Decrypt key.age into the local cache if the cache is missing.

        Args:
            attempts: How many times to ask for the passphrase

        Returns:
            True if the cache was written, False if it already existed.

        Raises:
            MissingProtectedKeyError: If key.age does not exist
            WrongPassphraseError: If every attempt failed
        """
        if self.cache_path.exists():
            return False

        if not self.protected_key_path.exists():
            raise MissingProtectedKeyError(
                f"{self.protected_key_path} not found. Run 'repocrypt init' to create a key."
            )

        last_error: WrongPassphraseError | None = None
        tries = max(attempts, 1)
        for attempt in range(1, tries + 1):
            self.output.info(f"Enter the passphrase for {self.output.path(str(self.protected_key_path))}")
            try:
                identity = self.gateway.unwrap_identity(self.protected_key_path)
            except DecryptionError as e:
                last_error = WrongPassphraseError(f"Wrong passphrase (attempt {attempt}/{tries}): {e}")
                self.output.warning(str(last_error))
                continue

            _atomic_write(self.cache_path, identity, mode=0o600)
            self.output.created(str(self.cache_path.relative_to(self.root_dir)))
            return True

        raise last_error

    def load_private_key(self) -> Path:
        """Get the cleartext identity file.

        Raises:
            KeyUnavailableError: If the cache was never created
        """
        if not self.cache_path.exists():
            raise KeyUnavailableError(
                f"No unlocked key at {self.cache_path}. Run 'repocrypt init' to unlock."
            )
        return self.cache_path

    def identity_or_none(self) -> Path | None:
        """Get the cleartext identity file if this working copy is unlocked."""
        if self.cache_path.exists():
            return self.cache_path
        return None

    def load_recipients(self) -> list[str]:
        """Read the recipient list.

        Raises:
            KeyUnavailableError: If age.recipients is missing or empty
        """
        if not self.recipients_path.exists():
            raise KeyUnavailableError(
                f"No recipients file at {self.recipients_path}. Run 'repocrypt init' first."
            )

        recipients = parse_recipients(self.recipients_path.read_text())
        if not recipients:
            raise KeyUnavailableError(f"{self.recipients_path} lists no recipients")
        return recipients
