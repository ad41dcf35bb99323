# twofa/core/backup_codes.py
from __future__ import annotations

import dataclasses
import hashlib
import secrets
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from twofa.services.store import TwoFactorRecord

DEFAULT_COUNT = 10


def generate(count: int = DEFAULT_COUNT) -> list[str]:
    """Plaintext recovery codes: 8 uppercase hex chars each, unique in the batch."""
    codes: list[str] = []
    while len(codes) < count:
        code = secrets.token_hex(4).upper()
        if code not in codes:
            codes.append(code)
    return codes


def normalize(code: str) -> str:
    return "".join(code.split()).replace("-", "").upper()


def hash_code(code: str) -> str:
    return hashlib.sha256(normalize(code).encode("utf-8")).hexdigest()


def hash_batch(codes: list[str]) -> tuple[str, ...]:
    return tuple(hash_code(c) for c in codes)


def consume(record: TwoFactorRecord, submitted: str) -> tuple[bool, TwoFactorRecord | None]:
    """
    Returns (True, record without the matching hash) or (False, None).
    Pure: the caller must persist the new record with a version-checked write.
    """
    if not submitted or not record.backup_code_hashes:
        return False, None
    digest = hash_code(submitted)
    if digest not in record.backup_code_hashes:
        return False, None
    remaining = tuple(h for h in record.backup_code_hashes if h != digest)
    return True, dataclasses.replace(
        record,
        backup_code_hashes=remaining,
        backup_codes_used=record.backup_codes_used + 1,
    )
