"""Test fixtures for repocrypt."""

import base64
import os
import subprocess
from pathlib import Path

import pytest

from repocrypt.config import DEFAULTS
from repocrypt.crypto import DecryptionError, EncryptionError, EncryptionGateway
from repocrypt.keys import KeyStore
from repocrypt.output import Output


class FakeGateway(EncryptionGateway):
    """In-memory stand-in for age.

    Identity files hold ``FAKE-SECRET-<token>`` and the matching recipient is
    ``fake1<token>``. Every encryption embeds a random nonce, so encrypting
    the same bytes twice gives different output, like age does.
    """

    HEADER = b"FAKE-AGE\n"

    def __init__(self, passphrase: str = "unsecure", typed: list[str] | None = None):
        self.passphrase = passphrase
        self.typed = list(typed or [])
        self.generated = 0
        self.encrypt_calls = 0
        self.fail_encrypt = False

    def generate_keypair(self) -> tuple[bytes, str]:
        self.generated += 1
        token = os.urandom(4).hex()
        identity = f"# public key: fake1{token}\nFAKE-SECRET-{token}\n".encode()
        return identity, f"fake1{token}"

    def encrypt(self, plaintext: bytes, recipients: list[str]) -> bytes:
        if self.fail_encrypt:
            raise EncryptionError("encryption failed")
        self.encrypt_calls += 1
        return (
            self.HEADER
            + ",".join(recipients).encode()
            + b"\n"
            + os.urandom(8).hex().encode()
            + b"\n"
            + base64.b64encode(plaintext)
        )

    def decrypt(self, ciphertext: bytes, identity: Path) -> bytes:
        if not ciphertext.startswith(self.HEADER):
            raise DecryptionError("not ciphertext")
        try:
            recipients, _nonce, body = ciphertext[len(self.HEADER):].split(b"\n", 2)
        except ValueError:
            raise DecryptionError("truncated ciphertext")
        token = identity.read_text().strip().splitlines()[-1].removeprefix("FAKE-SECRET-")
        if f"fake1{token}".encode() not in recipients.split(b","):
            raise DecryptionError("no identity matched any of the recipients")
        return base64.b64decode(body)

    def wrap_identity(self, identity: bytes) -> bytes:
        return b"WRAPPED:" + self.passphrase.encode() + b"\n" + identity

    def unwrap_identity(self, protected: Path) -> bytes:
        header, identity = protected.read_bytes().split(b"\n", 1)
        typed = self.typed.pop(0) if self.typed else self.passphrase
        if header != b"WRAPPED:" + typed.encode():
            raise DecryptionError("incorrect passphrase")
        return identity


@pytest.fixture
def quiet_output():
    """Output that prints nothing but warnings and errors."""
    return Output(no_color=True, quiet=True)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def settings():
    """Default settings."""
    return dict(DEFAULTS)


@pytest.fixture
def keystore(tmp_path, gateway, quiet_output):
    """Key store with a generated key pair."""
    store = KeyStore(tmp_path, gateway, output=quiet_output)
    store.ensure_key_pair()
    return store


@pytest.fixture
def git_repo(tmp_path):
    """Create a temporary git repository."""
    repo = tmp_path / "repo"
    repo.mkdir()
    subprocess.run(["git", "init"], cwd=repo, check=True, capture_output=True)
    subprocess.run(
        ["git", "config", "user.email", "test@test.com"],
        cwd=repo,
        check=True,
        capture_output=True,
    )
    subprocess.run(
        ["git", "config", "user.name", "Test"],
        cwd=repo,
        check=True,
        capture_output=True,
    )
    return repo


@pytest.fixture
def commit_file():
    """Write a file and commit it as-is."""

    def _commit(repo: Path, rel_path: str, content: bytes, message: str = "commit") -> None:
        path = repo / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        subprocess.run(["git", "add", rel_path], cwd=repo, check=True, capture_output=True)
        subprocess.run(
            ["git", "commit", "-m", message],
            cwd=repo,
            check=True,
            capture_output=True,
        )

    return _commit


@pytest.fixture
def make_gateway():
    """Factory for independent fake gateways."""
    return FakeGateway
