"""Tests for backup code generation, storage and redemption."""

import json
import re

import pytest

from mfa_guard.core.exceptions import BackupCodeStorageError
from mfa_guard.services.backup_code_service import BackupCodeService


@pytest.fixture
def vault(hasher):
    return BackupCodeService(hasher)


@pytest.mark.unit
class TestGenerateCodes:
    def test_default_batch(self, vault):
        plain, hashes = vault.generate_codes()

        assert len(plain) == 10
        assert len(hashes) == 10
        for code in plain:
            assert re.match(r"^[A-Za-z0-9]{10}$", code)

    def test_custom_count_and_length(self, vault):
        plain, hashes = vault.generate_codes(count=3, length=16)

        assert len(plain) == 3
        assert all(len(code) == 16 for code in plain)

    def test_hashes_do_not_contain_plaintext(self, vault, hasher):
        plain, hashes = vault.generate_codes(count=3)

        for code, digest in zip(plain, hashes):
            assert code not in digest
            assert hasher.verify(digest, code)

    def test_codes_are_distinct(self, vault):
        plain, _ = vault.generate_codes(count=10)
        assert len(set(plain)) == 10

    @pytest.mark.parametrize("count,length", [(0, 10), (10, 0)])
    def test_non_positive_policy_rejected(self, vault, count, length):
        with pytest.raises(ValueError):
            vault.generate_codes(count=count, length=length)


@pytest.mark.unit
class TestConsume:
    def test_match_removes_exactly_one_digest(self, vault):
        plain, hashes = vault.generate_codes(count=3)

        remaining, matched = vault.consume(plain[1], hashes)

        assert matched is True
        assert remaining == [hashes[0], hashes[2]]

    def test_code_cannot_be_used_twice(self, vault):
        plain, hashes = vault.generate_codes(count=2)

        remaining, _ = vault.consume(plain[0], hashes)
        remaining, matched = vault.consume(plain[0], remaining)

        assert matched is False
        assert len(remaining) == 1

    def test_whitespace_is_stripped(self, vault):
        plain, hashes = vault.generate_codes(count=1)

        remaining, matched = vault.consume(f"  {plain[0]}\n", hashes)

        assert matched is True
        assert remaining == []

    @pytest.mark.parametrize("submitted", ["", "   ", "wrongcode1"])
    def test_non_matching_leaves_digests_unchanged(self, vault, submitted):
        _, hashes = vault.generate_codes(count=2)

        remaining, matched = vault.consume(submitted, hashes)

        assert matched is False
        assert remaining == hashes

    def test_input_sequence_is_not_mutated(self, vault):
        plain, hashes = vault.generate_codes(count=2)
        original = list(hashes)

        vault.consume(plain[0], hashes)

        assert hashes == original


@pytest.mark.unit
class TestStorage:
    def test_serialize_is_json_array(self):
        assert json.loads(BackupCodeService.serialize(["a", "b"])) == ["a", "b"]

    def test_empty_set_is_stored_as_null(self):
        assert BackupCodeService.serialize([]) is None

    @pytest.mark.parametrize("blob", [None, ""])
    def test_missing_blob_is_empty(self, blob):
        assert BackupCodeService.deserialize(blob) == []

    def test_deserialize_reads_serialized(self):
        assert BackupCodeService.deserialize(BackupCodeService.serialize(["x", "y"])) == ["x", "y"]

    @pytest.mark.parametrize("blob", ["{not json", '{"a": 1}', "[1, 2]"])
    def test_corrupt_blob_raises(self, blob):
        with pytest.raises(BackupCodeStorageError):
            BackupCodeService.deserialize(blob)


@pytest.mark.unit
def test_first_code_single_use_others_remain_valid(vault):
    plain, hashes = vault.generate_codes(count=10)

    remaining, matched = vault.consume(plain[0], hashes)
    assert matched is True

    for _ in range(3):
        remaining, matched = vault.consume(plain[0], remaining)
        assert matched is False

    assert len(remaining) == 9
    for code in plain[1:]:
        _, matched = vault.consume(code, remaining)
        assert matched is True
