# twofa/core/otp.py
"""
HOTP (RFC 4226) / TOTP (RFC 6238) with HMAC-SHA1, generated by pyotp.

Digits and period are fixed: authenticator apps assume 6 digits every 30s,
anything else breaks enrollment from the QR code.
"""
import hashlib
import hmac
import time
from datetime import datetime, timezone

import pyotp

from twofa.core import base32

DIGITS = 6
PERIOD = 30
SECRET_LENGTH = 32  # base32 chars, 160 bits
_MAX_COUNTER = 2**64 - 1


def hmac_sha1(key: bytes, message: bytes) -> bytes:
    # keys longer than the 64-byte block are pre-hashed by hmac itself
    return hmac.new(key, message, hashlib.sha1).digest()


def random_secret() -> str:
    return pyotp.random_base32(length=SECRET_LENGTH)


def _totp(secret: bytes) -> pyotp.TOTP:
    return pyotp.TOTP(base32.encode(secret), digits=DIGITS, digest=hashlib.sha1, interval=PERIOD)


def _instant(at: float | None) -> datetime:
    if at is None:
        at = time.time()
    return datetime.fromtimestamp(at, tz=timezone.utc)


def hotp(secret: bytes, counter: int) -> str:
    if counter < 0 or counter > _MAX_COUNTER:
        raise ValueError("HOTP counter must fit in an unsigned 64-bit integer")
    return pyotp.HOTP(base32.encode(secret), digits=DIGITS, digest=hashlib.sha1).at(counter)


def time_counter(at: float | None = None) -> int:
    if at is None:
        at = time.time()
    return int(at // PERIOD)


def totp(secret: bytes, at: float | None = None) -> str:
    return _totp(secret).at(_instant(at))


def normalize_code(code: str) -> str:
    # "123 456" as shown by most apps
    return "".join(code.split())


def verify_totp(secret: bytes, code: str, window: int = 1, at: float | None = None) -> bool:
    """
    True when `code` matches any step in [-window, +window] around `at`.

    pyotp's own verify() returns on the first match; here every candidate is
    compared with compare_digest on the raw ASCII bytes (no unicode folding,
    so full-width digits never match).
    """
    generator = _totp(secret)
    instant = _instant(at)
    counter = generator.timecode(instant)
    submitted = normalize_code(code).encode("ascii", "replace")
    matched = False
    for step in range(-window, window + 1):
        if counter + step < 0:
            continue
        candidate = generator.at(instant, counter_offset=step).encode("ascii")
        matched |= hmac.compare_digest(candidate, submitted)
    return matched
