"""Tests for recovery code generation, hashing and consumption."""

from __future__ import annotations

import re

from twofa.core import backup_codes
from twofa.services.store import TwoFactorRecord


def _record(codes):
    return TwoFactorRecord(
        user_id="u1",
        secret="JBSWY3DPEHPK3PXP",
        is_enabled=True,
        backup_code_hashes=backup_codes.hash_batch(codes),
        version=4,
    )


def test_generate_batch():
    codes = backup_codes.generate()
    assert len(codes) == 10
    assert len(set(codes)) == 10
    assert all(re.fullmatch(r"[0-9A-F]{8}", c) for c in codes)


def test_generate_custom_count():
    assert len(backup_codes.generate(3)) == 3


def test_hash_is_sha256_of_normalized_code():
    h = backup_codes.hash_code("ABCD1234")
    assert len(h) == 64
    assert h != "ABCD1234"
    assert backup_codes.hash_code("abcd1234") == h
    assert backup_codes.hash_code(" abcd-1234 ") == h


def test_consume_removes_exactly_one():
    codes = backup_codes.generate()
    record = _record(codes)

    ok, updated = backup_codes.consume(record, codes[3].lower())
    assert ok
    assert len(updated.backup_code_hashes) == 9
    assert backup_codes.hash_code(codes[3]) not in updated.backup_code_hashes
    assert updated.backup_codes_used == 1
    # version untouched; the store bumps it on the conditional write
    assert updated.version == record.version
    # original record is immutable
    assert len(record.backup_code_hashes) == 10


def test_consume_unknown_code():
    record = _record(backup_codes.generate())
    assert backup_codes.consume(record, "00000000") == (False, None)
    assert backup_codes.consume(record, "") == (False, None)


def test_consumed_code_cannot_be_reused():
    codes = backup_codes.generate()
    _, updated = backup_codes.consume(_record(codes), codes[0])
    assert backup_codes.consume(updated, codes[0]) == (False, None)
