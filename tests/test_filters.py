"""Tests for the clean/smudge/textconv filters."""

import io

import pytest

from repocrypt.crypto import EncryptionError
from repocrypt.filters import FilterPipeline
from repocrypt.keys import KeyStore, KeyUnavailableError
from repocrypt.output import Output


@pytest.fixture
def pipeline(gateway, keystore, quiet_output):
    return FilterPipeline(gateway, keystore, output=quiet_output)


@pytest.fixture
def other_keystore(tmp_path, make_gateway, quiet_output):
    """A key store holding a different key pair."""
    other_dir = tmp_path / "other"
    other_dir.mkdir()
    store = KeyStore(other_dir, make_gateway(), output=quiet_output)
    store.ensure_key_pair()
    return store


class TestOutbound:
    """Tests for the clean filter."""

    def test_encrypts_without_committed_value(self, pipeline, gateway):
        """No committed blob means fresh encryption."""
        result = pipeline.outbound(b"hello\n", None)

        assert result != b"hello\n"
        assert gateway.encrypt_calls == 1

    @pytest.mark.parametrize("plaintext", [b"hello\n", b"", b"\x00\xff binary", b"a" * 10000])
    def test_unchanged_content_reuses_committed_ciphertext(self, pipeline, plaintext):
        """Same plaintext gives back the committed bytes exactly."""
        committed = pipeline.outbound(plaintext, None)

        assert pipeline.outbound(plaintext, committed) == committed

    def test_encryption_is_not_deterministic(self, pipeline):
        """Without a committed value, two runs differ."""
        assert pipeline.outbound(b"same", None) != pipeline.outbound(b"same", None)

    def test_changed_content_is_reencrypted(self, pipeline, keystore, gateway):
        """Different plaintext gives new ciphertext that decrypts to it."""
        committed = pipeline.outbound(b"old\n", None)

        result = pipeline.outbound(b"new\n", committed)

        assert result != committed
        assert gateway.decrypt(result, keystore.load_private_key()) == b"new\n"

    def test_committed_plaintext_is_encrypted(self, pipeline, keystore, gateway):
        """Content committed before the filter existed is not reused."""
        result = pipeline.outbound(b"secret\n", b"secret\n")

        assert result != b"secret\n"
        assert gateway.decrypt(result, keystore.load_private_key()) == b"secret\n"

    def test_committed_garbage_is_ignored(self, pipeline, gateway):
        """An undecryptable committed blob never raises."""
        result = pipeline.outbound(b"data", gateway.HEADER + b"broken")

        assert gateway.encrypt_calls == 1
        assert result.startswith(gateway.HEADER)

    def test_committed_for_other_key_is_reencrypted(self, pipeline, other_keystore, gateway):
        """Ciphertext for a key we do not hold is replaced."""
        foreign = gateway.encrypt(b"data", other_keystore.load_recipients())

        result = pipeline.outbound(b"data", foreign)

        assert result != foreign

    def test_locked_working_copy_still_encrypts(self, pipeline, keystore, gateway):
        """Without the unlocked key, clean encrypts instead of failing."""
        committed = pipeline.outbound(b"data", None)
        keystore.cache_path.unlink()

        result = pipeline.outbound(b"data", committed)

        assert result != committed
        assert gateway.encrypt_calls == 2

    def test_missing_recipients_is_fatal(self, pipeline, keystore):
        """No recipients file means no encryption and no plaintext output."""
        keystore.recipients_path.unlink()

        with pytest.raises(KeyUnavailableError):
            pipeline.outbound(b"data", None)

    def test_encryption_error_propagates(self, pipeline, gateway):
        """Encryption failures are not swallowed."""
        gateway.fail_encrypt = True

        with pytest.raises(EncryptionError):
            pipeline.outbound(b"data", None)


class TestInbound:
    """Tests for the smudge filter."""

    def test_round_trip(self, pipeline):
        """smudge(clean(P)) == P."""
        for plaintext in (b"hello\n", b"\x00\x01\x02", b"line1\nline2\n"):
            assert pipeline.inbound(pipeline.outbound(plaintext, None)) == plaintext

    def test_invalid_ciphertext_gives_empty(self, pipeline):
        """Bytes that are not ciphertext produce an empty file."""
        assert pipeline.inbound(b"plain text, never encrypted\n", "secrets/a.txt") == b""

    def test_wrong_key_gives_empty(self, pipeline, other_keystore, gateway):
        """Ciphertext for another key produces an empty file."""
        foreign = gateway.encrypt(b"data", other_keystore.load_recipients())

        assert pipeline.inbound(foreign) == b""

    def test_locked_gives_empty(self, pipeline, keystore):
        """Without the unlocked key, smudge produces an empty file."""
        ciphertext = pipeline.outbound(b"data", None)
        keystore.cache_path.unlink()

        assert pipeline.inbound(ciphertext) == b""

    def test_empty_input(self, pipeline):
        """Empty blobs stay empty."""
        assert pipeline.inbound(b"") == b""

    def test_warns_on_failure(self, gateway, keystore):
        """A failed decrypt is reported on the error stream only."""
        out, err = io.StringIO(), io.StringIO()
        pipeline = FilterPipeline(gateway, keystore, output=Output(no_color=True, stream=out, err_stream=err))

        pipeline.inbound(b"garbage", "secrets/a.txt")

        assert out.getvalue() == ""
        assert "secrets/a.txt" in err.getvalue()


class TestDiffTransform:
    """Tests for the textconv filter."""

    def test_decrypts_file(self, pipeline, tmp_path):
        """Ciphertext files are shown decrypted."""
        path = tmp_path / "blob"
        path.write_bytes(pipeline.outbound(b"readable\n", None))

        assert pipeline.diff_transform(path) == b"readable\n"

    def test_plaintext_file_passes_through(self, pipeline, tmp_path):
        """Files that do not decrypt are shown as-is."""
        path = tmp_path / "blob"
        path.write_bytes(b"committed before encryption\n")

        assert pipeline.diff_transform(path) == b"committed before encryption\n"

    def test_wrong_key_passes_through(self, pipeline, other_keystore, gateway, tmp_path):
        """Ciphertext for another key is shown raw."""
        foreign = gateway.encrypt(b"data", other_keystore.load_recipients())
        path = tmp_path / "blob"
        path.write_bytes(foreign)

        assert pipeline.diff_transform(path) == foreign
