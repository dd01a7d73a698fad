"""
Unit tests for VaultStore: checksums, verification, dedup and error wrapping.
"""

import threading
from unittest.mock import MagicMock

import pytest

from promptvault.core.exceptions import (
    BackendWriteError,
    ChecksumMismatchError,
    MalformedReference,
    NotFoundError,
    ObjectConflictError,
    VaultError,
)
from promptvault.core.models import AttributePath
from promptvault.core.reference import Reference, encode
from promptvault.core.utils import compute_checksum
from promptvault.storage.encryption import MAGIC, PayloadCipher
from promptvault.storage.filesystem import FilesystemBackend
from promptvault.storage.hashed_filesystem import HashedFilesystemBackend
from promptvault.vault_store import VaultStore


TRACE = "0102030405060708090a0b0c0d0e0f10"
SPAN = "0102030405060708"


def _path(key: str = "gen_ai.prompt", event_index=None) -> AttributePath:
    return AttributePath(TRACE, SPAN, key, event_index=event_index)


PAYLOADS = [
    b"",
    b"Hello, World!",
    "unicode: é中\U0001f600".encode("utf-8"),
    bytes(range(256)),
    b"x" * 50_000,
]


@pytest.fixture(params=["filesystem", "filesystem_hashed"])
def any_store(request, vault_dir):
    """Store over each filesystem backend."""
    if request.param == "filesystem":
        return VaultStore(FilesystemBackend(vault_dir))
    return VaultStore(HashedFilesystemBackend(vault_dir))


class TestStore:
    """Tests for store()."""

    def test_reference_fields(self, vault_store):
        """Test the reference carries checksum, size and encryption flag."""
        ref = vault_store.store(_path(), b"Hello, World!")

        assert ref.checksum == "dffd6021bb2bd5b0af676290809ec3a53191dd81c7f70a4b28688a362182986f"
        assert ref.size_bytes == 13
        assert ref.encrypted is False
        assert ref.uri.startswith("promptvault://fs/")

    def test_zero_length_payload(self, any_store):
        """Test empty payloads are stored, not rejected."""
        ref = any_store.store(_path(), b"")
        assert ref.size_bytes == 0
        assert ref.checksum == compute_checksum(b"")
        assert any_store.retrieve(ref) == b""

    def test_rejects_non_bytes(self, vault_store):
        """Test text must be encoded by the caller."""
        with pytest.raises(TypeError):
            vault_store.store(_path(), "text")

    def test_checksum_independent_of_path(self, vault_store):
        """Test the same content at different paths has the same checksum."""
        ref1 = vault_store.store(_path("a"), b"same")
        ref2 = vault_store.store(_path("b", event_index=0), b"same")

        assert ref1.checksum == ref2.checksum
        assert ref1.uri != ref2.uri

    def test_hash_addressed_store_is_deterministic(self, hashed_backend):
        """Test a hash-addressed store returns identical references for identical content."""
        store = VaultStore(hashed_backend)
        ref1 = store.store(_path("a"), b"duplicate content")
        ref2 = store.store(_path("b"), b"duplicate content")
        assert ref1 == ref2

    def test_backend_exception_is_wrapped(self):
        """Test raw backend failures become BackendWriteError with the cause kept."""
        backend = MagicMock()
        backend.store.side_effect = PermissionError("read-only file system")
        store = VaultStore(backend)

        with pytest.raises(BackendWriteError) as exc_info:
            store.store(_path(), b"data")

        assert isinstance(exc_info.value.__cause__, PermissionError)

    def test_backend_write_error_passes_through(self):
        """Test typed errors are not double-wrapped."""
        original = BackendWriteError("quota exceeded")
        backend = MagicMock()
        backend.store.side_effect = original

        with pytest.raises(BackendWriteError) as exc_info:
            VaultStore(backend).store(_path(), b"data")

        assert exc_info.value is original

    def test_blocked_directory_leaves_no_object(self, vault_store, vault_dir):
        """Test a failed write leaves nothing retrievable at the target."""
        # A file where the trace directory should be
        (vault_dir / TRACE).write_text("in the way")

        with pytest.raises(BackendWriteError):
            vault_store.store(_path(), b"data")

        assert not vault_store.backend.exists(f"promptvault://fs/{TRACE}/{SPAN}/gen_ai.prompt")


class TestRetrieve:
    """Tests for retrieve() and checksum enforcement."""

    @pytest.mark.parametrize("payload", PAYLOADS)
    def test_round_trip(self, any_store, payload):
        """Test retrieve returns exactly what was stored."""
        ref = any_store.store(_path(), payload)
        assert any_store.retrieve(ref) == payload

    def test_retrieve_encoded(self, vault_store):
        """Test retrieving straight from an encoded reference string."""
        ref = vault_store.store(_path(), b"payload")
        assert vault_store.retrieve_encoded(encode(ref)) == b"payload"

    def test_retrieve_encoded_malformed(self, vault_store):
        """Test malformed reference strings surface as MalformedReference."""
        with pytest.raises(MalformedReference):
            vault_store.retrieve_encoded("not a reference")

    def test_tampered_content_is_rejected(self, vault_store, vault_dir):
        """Test altered bytes raise ChecksumMismatchError and are not returned."""
        ref = vault_store.store(_path(), b"original content")
        (vault_dir / TRACE / SPAN / "gen_ai.prompt").write_bytes(b"tampered content")

        with pytest.raises(ChecksumMismatchError) as exc_info:
            vault_store.retrieve(ref)

        assert exc_info.value.expected == ref.checksum
        assert exc_info.value.actual == compute_checksum(b"tampered content")

    def test_tampered_hashed_object_is_rejected(self, hashed_backend, vault_dir):
        """Test tampering is caught for the hash-addressed layout too."""
        store = VaultStore(hashed_backend)
        ref = store.store(_path(), b"original")
        obj = next(vault_dir.rglob("*.vault"))
        obj.write_bytes(b"altered")

        with pytest.raises(ChecksumMismatchError):
            store.retrieve(ref)

    def test_missing_object(self, vault_store):
        """Test an unresolvable locator raises NotFoundError."""
        ref = Reference(
            uri=f"promptvault://fs/{TRACE}/{SPAN}/nothing-here",
            checksum=compute_checksum(b"x"),
            size_bytes=1,
        )
        with pytest.raises(NotFoundError):
            vault_store.retrieve(ref)

    def test_legacy_reference_skips_verification(self, hashed_backend, vault_dir):
        """Test a bare legacy locator returns raw bytes without verification."""
        store = VaultStore(hashed_backend)
        ref = store.store(_path(), b"legacy content")

        legacy = Reference(uri=ref.uri)
        assert store.retrieve(legacy) == b"legacy content"

        next(vault_dir.rglob("*.vault")).write_bytes(b"changed")
        assert store.retrieve(legacy) == b"changed"

    def test_wrong_checksum_on_reference(self, vault_store):
        """Test a reference whose checksum does not match the object."""
        ref = vault_store.store(_path(), b"content")
        forged = Reference(uri=ref.uri, checksum=compute_checksum(b"other"), size_bytes=5)

        with pytest.raises(ChecksumMismatchError):
            vault_store.retrieve(forged)


class TestEncryption:
    """Tests for encryption at rest."""

    @pytest.fixture
    def encrypted_store(self, fs_backend):
        return VaultStore(fs_backend, cipher=PayloadCipher(b"test-key"))

    def test_ciphertext_on_disk(self, encrypted_store, vault_dir):
        """Test the persisted object is not the plaintext."""
        ref = encrypted_store.store(_path(), b"secret prompt")

        on_disk = (vault_dir / TRACE / SPAN / "gen_ai.prompt").read_bytes()
        assert b"secret prompt" not in on_disk
        assert ref.encrypted is True
        assert ref.checksum == compute_checksum(b"secret prompt")
        assert ref.size_bytes == len(b"secret prompt")

    def test_round_trip(self, encrypted_store):
        """Test encrypted content decrypts and verifies on read."""
        ref = encrypted_store.store(_path(), b"secret prompt")
        assert encrypted_store.retrieve(ref) == b"secret prompt"

    def test_tampered_ciphertext(self, encrypted_store, vault_dir):
        """Test an altered ciphertext fails as a checksum mismatch."""
        ref = encrypted_store.store(_path(), b"secret prompt")
        obj = vault_dir / TRACE / SPAN / "gen_ai.prompt"
        blob = bytearray(obj.read_bytes())
        blob[-1] ^= 0xFF
        obj.write_bytes(bytes(blob))

        with pytest.raises(ChecksumMismatchError):
            encrypted_store.retrieve(ref)

    def test_wrong_key(self, encrypted_store, fs_backend):
        """Test a different key cannot open the object."""
        ref = encrypted_store.store(_path(), b"secret prompt")
        other = VaultStore(fs_backend, cipher=PayloadCipher(b"another-key"))

        with pytest.raises(ChecksumMismatchError):
            other.retrieve(ref)

    def test_restoring_same_plaintext_is_idempotent(self, encrypted_store):
        """Test a repeated store at one path succeeds though the ciphertext differs."""
        ref1 = encrypted_store.store(_path(), b"secret prompt")
        ref2 = encrypted_store.store(_path(), b"secret prompt")

        assert ref1 == ref2
        assert encrypted_store.retrieve(ref2) == b"secret prompt"

    def test_restoring_other_plaintext_conflicts(self, encrypted_store):
        """Test a different payload at an occupied path is refused."""
        ref = encrypted_store.store(_path(), b"secret prompt")

        with pytest.raises(ObjectConflictError):
            encrypted_store.store(_path(), b"another prompt")

        assert encrypted_store.retrieve(ref) == b"secret prompt"

    def test_plaintext_reference_is_not_decrypted(self, fs_backend):
        """Test an unencrypted object that looks sealed is returned as stored."""
        payload = MAGIC + b"\x00" * 32 + b"plain bytes"
        ref = VaultStore(fs_backend).store(_path(), payload)

        keyed = VaultStore(fs_backend, cipher=PayloadCipher(b"test-key"))
        assert ref.encrypted is False
        assert keyed.retrieve(ref) == payload

    def test_missing_key(self, encrypted_store, fs_backend):
        """Test reading encrypted content without a key fails clearly."""
        ref = encrypted_store.store(_path(), b"secret prompt")

        with pytest.raises(VaultError, match="no encryption key"):
            VaultStore(fs_backend).retrieve(ref)


class TestConcurrency:
    """Tests for concurrent store calls."""

    @pytest.mark.parametrize("backend_cls", [FilesystemBackend, HashedFilesystemBackend])
    def test_concurrent_identical_stores(self, vault_dir, backend_cls):
        """Test identical content stored concurrently succeeds everywhere and stays intact."""
        store = VaultStore(backend_cls(vault_dir))
        payload = b"same content " * 1000
        refs = []
        errors = []
        lock = threading.Lock()
        barrier = threading.Barrier(8)

        def _worker():
            barrier.wait()
            try:
                ref = store.store(_path(), payload)
            except Exception as e:
                with lock:
                    errors.append(e)
                return
            with lock:
                refs.append(ref)

        threads = [threading.Thread(target=_worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(refs) == 8
        assert len({r.checksum for r in refs}) == 1
        for ref in refs:
            assert store.retrieve(ref) == payload
