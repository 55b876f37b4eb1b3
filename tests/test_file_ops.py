"""
Encrypt/decrypt workflow tests.

End-to-end through a Workspace: transform, vault move, history and the
re-encryption guard.
"""

import os
import sys
from pathlib import Path

import pytest

from pegvault.core.exceptions import (
    CollisionError,
    TransformIOError,
    ValidationError,
    ValidationReason,
)
from pegvault.core.file_ops import decrypt_file, encrypt_file
from pegvault.security.audit import EventCategory, OperationKind


# ============================================================================
# Encrypt
# ============================================================================

def test_encrypt_writes_sibling_and_vaults_original(workspace, make_file, temp_dir: Path):
    source = make_file("input.txt", b"Hello, vault!")
    outcome = workspace.encrypt(source, 5)

    assert outcome.output == temp_dir / "enc_input.txt"
    assert outcome.bytes_written == len(b"Hello, vault!")
    assert outcome.output.read_bytes() == bytes((b + 5) % 256 for b in b"Hello, vault!")

    assert outcome.vaulted
    assert not source.exists()
    assert outcome.vault_path == workspace.vault.path / "input.txt"
    assert outcome.vault_path.read_bytes() == b"Hello, vault!"


def test_encrypt_records_operation_and_vault_event(workspace, make_file, temp_dir: Path):
    workspace.encrypt(make_file("input.txt"), 5)

    (op,) = workspace.history.get_records(kind=OperationKind.ENCRYPT)
    assert op.input_path == str(temp_dir / "input.txt")
    assert op.output_path == str(temp_dir / "enc_input.txt")
    assert op.peg == 5
    assert workspace.history.get_records(category=EventCategory.VAULT_STORE)


def test_encrypt_then_decrypt_restores_original(workspace, make_file, temp_dir: Path):
    data = bytes(range(256)) * 40
    outcome = workspace.encrypt(make_file("input.bin", data), 255)

    restored = workspace.decrypt(outcome.output, 255)
    assert restored == temp_dir / "input.bin"
    assert restored.read_bytes() == data
    assert outcome.output.exists()


def test_encrypting_the_output_again_is_rejected(workspace, make_file, temp_dir: Path):
    outcome = workspace.encrypt(make_file("input.txt", b"once only"), 5)
    before = outcome.output.read_bytes()

    with pytest.raises(CollisionError):
        workspace.encrypt(outcome.output, 5)

    assert outcome.output.read_bytes() == before
    assert not (temp_dir / "enc_enc_input.txt").exists()
    assert len(workspace.history.get_records(kind=OperationKind.ENCRYPT)) == 1


def test_encrypt_prefixed_file_is_rejected_without_transform(workspace, make_file, temp_dir: Path):
    source = make_file("enc_input.txt")
    with pytest.raises(CollisionError):
        workspace.encrypt(source, 5)

    assert not (temp_dir / "enc_enc_input.txt").exists()
    assert source.read_bytes() == b"hello world\n"
    assert workspace.history.get_records(category=EventCategory.ENCRYPT_FAIL)


def test_renamed_encryption_output_is_rejected(workspace, make_file, temp_dir: Path):
    outcome = workspace.encrypt(make_file("input.txt"), 5)
    renamed = temp_dir / "innocent.txt"
    outcome.output.rename(renamed)

    with pytest.raises(CollisionError):
        workspace.encrypt(renamed, 5)

    assert renamed.exists()
    assert not (temp_dir / "enc_innocent.txt").exists()
    assert len(workspace.history.get_records(kind=OperationKind.ENCRYPT)) == 1


def test_copied_encryption_output_is_rejected(workspace, make_file, temp_dir: Path):
    outcome = workspace.encrypt(make_file("input.txt", b"copy me"), 5)
    copy = make_file("elsewhere/report.txt", outcome.output.read_bytes())

    with pytest.raises(CollisionError):
        workspace.encrypt(copy, 5)
    assert not (temp_dir / "elsewhere" / "enc_report.txt").exists()


def test_encrypt_records_output_fingerprint(workspace, make_file):
    outcome = workspace.encrypt(make_file("input.txt", b"fingerprint"), 5)
    digest = workspace.verifier.digest(outcome.output)

    (event,) = workspace.history.get_records(category=EventCategory.ENCRYPT_OUTPUT)
    assert event.details == f"sha256={digest} {outcome.output}"


def test_unrelated_file_still_encrypts_after_fingerprints(workspace, make_file):
    workspace.encrypt(make_file("first.txt", b"one"), 5)
    outcome = workspace.encrypt(make_file("second.txt", b"two"), 5)
    assert outcome.vaulted


@pytest.mark.skipif(not sys.platform.startswith("linux"), reason="needs byte-string file names")
def test_encrypt_undecodable_file_name(workspace, make_file, temp_dir: Path):
    name = os.fsdecode(b"caf\xe9.txt")
    source = make_file(name, b"bytes in a strange name")

    outcome = workspace.encrypt(source, 5)

    assert outcome.vaulted
    assert (temp_dir / f"enc_{name}").exists()
    (op,) = workspace.history.get_records(kind=OperationKind.ENCRYPT)
    assert op.input_path == str(temp_dir / "caf\\udce9.txt")
    assert workspace.history.get_records(category=EventCategory.VAULT_STORE)


def test_encrypt_invalid_peg_leaves_everything_in_place(workspace, make_file, temp_dir: Path):
    source = make_file("input.txt")
    with pytest.raises(ValidationError) as exc:
        workspace.encrypt(source, 256)

    assert exc.value.reason is ValidationReason.PEG_OUT_OF_RANGE
    assert source.exists()
    assert not (temp_dir / "enc_input.txt").exists()
    assert workspace.history.get_records(category=EventCategory.VALIDATION_FAIL)


def test_encrypt_empty_file_is_rejected(workspace, make_file):
    with pytest.raises(ValidationError) as exc:
        workspace.encrypt(make_file("empty.txt", b""), 5)
    assert exc.value.reason is ValidationReason.EMPTY


def test_vault_collision_after_encrypt_is_a_warning(workspace, make_file, temp_dir: Path):
    workspace.encrypt(make_file("input.txt", b"first"), 5)
    second = make_file("other/input.txt", b"second")

    outcome = workspace.encrypt(second, 5)

    assert not outcome.vaulted
    assert "already exists" in outcome.vault_error
    assert second.read_bytes() == b"second"
    assert outcome.output == temp_dir / "other" / "enc_input.txt"
    assert (workspace.vault.path / "input.txt").read_bytes() == b"first"
    assert workspace.history.get_records(category=EventCategory.VAULT_FAIL)


def test_encrypt_write_failure_is_reported(workspace, make_file, monkeypatch):
    source = make_file("input.txt")

    def boom(self, params, mode, flags=None):
        raise TransformIOError("write", "disk full")

    monkeypatch.setattr(type(workspace.cipher), "process_file", boom)

    with pytest.raises(TransformIOError):
        workspace.encrypt(source, 5)
    assert source.exists()
    assert workspace.history.get_records(category=EventCategory.ENCRYPT_FAIL)


# ============================================================================
# Decrypt
# ============================================================================

def test_decrypt_to_explicit_output(workspace, make_file, temp_dir: Path):
    outcome = workspace.encrypt(make_file("input.txt", b"plain"), 42)
    target = temp_dir / "restored.txt"

    assert workspace.decrypt(outcome.output, 42, target) == target
    assert target.read_bytes() == b"plain"
    (op,) = workspace.history.get_records(kind=OperationKind.DECRYPT)
    assert op.peg == 42


def test_decrypt_with_wrong_peg_produces_other_bytes(workspace, make_file, temp_dir: Path):
    outcome = workspace.encrypt(make_file("input.txt", b"plain"), 42)
    target = workspace.decrypt(outcome.output, 41, temp_dir / "wrong.txt")
    assert target.read_bytes() == bytes((b + 1) % 256 for b in b"plain")


def test_decrypt_unprefixed_needs_output(workspace, make_file):
    with pytest.raises(ValidationError) as exc:
        workspace.decrypt(make_file("input.txt"), 5)
    assert exc.value.reason is ValidationReason.INVALID_NAME


def test_decrypt_missing_input(workspace, temp_dir: Path):
    with pytest.raises(ValidationError) as exc:
        workspace.decrypt(temp_dir / "enc_ghost.txt", 5)
    assert exc.value.reason is ValidationReason.NOT_FOUND
    assert workspace.history.get_records(category=EventCategory.VALIDATION_FAIL)


def test_decrypt_refuses_existing_derived_output(workspace, make_file, temp_dir: Path):
    workspace.encrypt(make_file("notes.txt", b"vaulted first copy"), 7)
    second = make_file("notes.txt", b"precious second copy")
    outcome = workspace.encrypt(second, 7)
    assert not outcome.vaulted

    with pytest.raises(ValidationError) as exc:
        workspace.decrypt(outcome.output, 7)

    assert exc.value.reason is ValidationReason.OUTPUT_EXISTS
    assert second.read_bytes() == b"precious second copy"
    assert workspace.history.get_records(kind=OperationKind.DECRYPT) == []
    assert workspace.history.get_records(category=EventCategory.VALIDATION_FAIL)


def test_decrypt_explicit_output_may_overwrite(workspace, make_file, temp_dir: Path):
    outcome = workspace.encrypt(make_file("input.txt", b"plain"), 3)
    target = make_file("stale.txt", b"old contents here")

    workspace.decrypt(outcome.output, 3, target)
    assert target.read_bytes() == b"plain"


def test_decrypt_does_not_touch_vault(workspace, make_file):
    outcome = workspace.encrypt(make_file("input.txt"), 5)
    before = workspace.vault.list_entries()
    workspace.decrypt(outcome.output, 5)
    assert workspace.vault.list_entries() == before


# ============================================================================
# Convenience functions
# ============================================================================

def test_convenience_functions(workspace, make_file, temp_dir: Path):
    outcome = encrypt_file(make_file("input.txt", b"abc"), 1, workspace.cipher, workspace.vault)
    assert outcome.output.read_bytes() == b"bcd"

    restored = decrypt_file(outcome.output, 1, workspace.cipher)
    assert restored.read_bytes() == b"abc"
