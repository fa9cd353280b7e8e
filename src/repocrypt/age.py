"""age CLI backend for the encryption gateway."""

import subprocess
from pathlib import Path

from .crypto import (
    AgeNotAvailableError,
    DecryptionError,
    EncryptionError,
    EncryptionGateway,
    KeyGenerationError,
)

INSTALL_HINT = (
    "age is not installed. Install it with:\n"
    "  brew install age       # macOS\n"
    "  apt install age        # Debian/Ubuntu\n"
    "  choco install age.portable  # Windows"
)

PUBLIC_KEY_PREFIX = "# public key: "
SECRET_KEY_PREFIX = "AGE-SECRET-KEY-"


def is_age_available() -> bool:
    """Check if both age and age-keygen are installed.

    Returns:
        True if both binaries run, False otherwise.
    """
    for binary in ("age", "age-keygen"):
        try:
            result = subprocess.run(
                [binary, "--version"],
                capture_output=True,
                text=True,
            )
        except FileNotFoundError:
            return False
        if result.returncode != 0:
            return False
    return True


def parse_keygen_output(output: str) -> str:
    """Extract the public key from age-keygen output.

    Args:
        output: Identity file text as written by age-keygen

    Returns:
        The age1... public key

    Raises:
        KeyGenerationError: If no public key comment or secret key is present
    """
    public_key = None
    has_secret = False
    for line in output.splitlines():
        line = line.strip()
        if line.startswith(PUBLIC_KEY_PREFIX):
            public_key = line[len(PUBLIC_KEY_PREFIX):].strip()
        elif line.startswith(SECRET_KEY_PREFIX):
            has_secret = True

    if not has_secret:
        raise KeyGenerationError("age-keygen output contains no secret key")
    if not public_key:
        raise KeyGenerationError("age-keygen output contains no public key")
    return public_key


def _run(cmd: list[str], data: bytes | None, *, capture_stderr: bool = True) -> subprocess.CompletedProcess:
    """Run an age command with binary stdin/stdout.

    Args:
        cmd: Command and arguments
        data: Bytes for stdin, or None to inherit
        capture_stderr: Capture stderr (False lets age talk to the operator)

    Returns:
        CompletedProcess with bytes output

    Raises:
        AgeNotAvailableError: If the binary is missing
    """
    try:
        return subprocess.run(
            cmd,
            input=data,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE if capture_stderr else None,
        )
    except FileNotFoundError:
        raise AgeNotAvailableError(INSTALL_HINT)


def _stderr_text(result: subprocess.CompletedProcess) -> str:
    if not result.stderr:
        return f"exit status {result.returncode}"
    return result.stderr.decode("utf-8", errors="replace").strip()


class AgeGateway(EncryptionGateway):
    """EncryptionGateway implemented with the age and age-keygen binaries.

    Passphrase prompts are left to age, which reads them from the
    controlling terminal.
    """

    def __init__(self, *, armor: bool = True):
        self.armor = armor

    def _armor_flag(self) -> list[str]:
        return ["--armor"] if self.armor else []

    def generate_keypair(self) -> tuple[bytes, str]:
        result = _run(["age-keygen"], None)
        if result.returncode != 0:
            raise KeyGenerationError(f"age-keygen failed: {_stderr_text(result)}")

        identity = result.stdout
        public_key = parse_keygen_output(identity.decode("utf-8", errors="replace"))
        return identity, public_key

    def encrypt(self, plaintext: bytes, recipients: list[str]) -> bytes:
        if not recipients:
            raise EncryptionError("No recipients to encrypt for")

        cmd = ["age", "--encrypt"] + self._armor_flag()
        for recipient in recipients:
            cmd.extend(["--recipient", recipient])

        result = _run(cmd, plaintext)
        if result.returncode != 0:
            raise EncryptionError(f"age encryption failed: {_stderr_text(result)}")
        return result.stdout

    def decrypt(self, ciphertext: bytes, identity: Path) -> bytes:
        if not ciphertext:
            raise DecryptionError("Empty input is not age ciphertext")

        result = _run(["age", "--decrypt", "--identity", str(identity)], ciphertext)
        if result.returncode != 0:
            raise DecryptionError(f"age decryption failed: {_stderr_text(result)}")
        return result.stdout

    def wrap_identity(self, identity: bytes) -> bytes:
        # stderr stays attached so an autogenerated passphrase is shown
        result = _run(
            ["age", "--passphrase"] + self._armor_flag(),
            identity,
            capture_stderr=False,
        )
        if result.returncode != 0 or not result.stdout:
            raise KeyGenerationError(
                f"Passphrase encryption of the key failed (exit status {result.returncode})"
            )
        return result.stdout

    def unwrap_identity(self, protected: Path) -> bytes:
        result = _run(["age", "--decrypt", str(protected)], None, capture_stderr=False)
        if result.returncode != 0:
            raise DecryptionError(f"Could not decrypt {protected}")
        return result.stdout
