"""HMAC-SHA1 / HOTP / TOTP against the published RFC vectors and plain pyotp."""

from __future__ import annotations

import pyotp
import pytest

from twofa.core import base32, otp

RFC4226_SECRET = b"12345678901234567890"


# RFC 2202, section 3
@pytest.mark.parametrize(
    "key,message,digest",
    [
        (b"\x0b" * 20, b"Hi There", "b617318655057264e28bc0b6fb378c8ef146be00"),
        (b"Jefe", b"what do ya want for nothing?", "effcdf6ae5eb2fa2d27416d5f184df9c259a7c79"),
        (b"\xaa" * 20, b"\xdd" * 50, "125d7342b9ac11cd91a39af48aa17b4f63f175d3"),
        (bytes(range(1, 26)), b"\xcd" * 50, "4c9007f4026250c6bc8414f9bf50c86c2d7235da"),
        (b"\x0c" * 20, b"Test With Truncation", "4c1a03424b55e07fe7f27be1d58bb9324a9a5a04"),
        (b"\xaa" * 80, b"Test Using Larger Than Block-Size Key - Hash Key First",
         "aa4ae5e15272d00e95705637ce8a3b55ed402112"),
        (b"\xaa" * 80, b"Test Using Larger Than Block-Size Key and Larger Than One Block-Size Data",
         "e8e99d0f45237d786d6bbaa7965c7808bbff1a91"),
    ],
)
def test_hmac_sha1_rfc2202(key, message, digest):
    out = otp.hmac_sha1(key, message)
    assert len(out) == 20
    assert out.hex() == digest


# RFC 4226, appendix D
@pytest.mark.parametrize(
    "counter,code",
    list(enumerate(["755224", "287082", "359152", "969429", "338314",
                    "254676", "287922", "162583", "399871", "520489"])),
)
def test_hotp_rfc4226(counter, code):
    assert otp.hotp(RFC4226_SECRET, counter) == code


# RFC 6238, appendix B (SHA1 rows, last 6 of the 8 published digits)
@pytest.mark.parametrize(
    "at,code",
    [
        (59, "287082"),
        (1111111109, "081804"),
        (1111111111, "050471"),
        (1234567890, "005924"),
        (2000000000, "279037"),
        (20000000000, "353130"),
    ],
)
def test_totp_rfc6238(at, code):
    assert otp.totp(RFC4226_SECRET, at) == code


def test_hotp_rejects_out_of_range_counter():
    with pytest.raises(ValueError):
        otp.hotp(RFC4226_SECRET, -1)
    with pytest.raises(ValueError):
        otp.hotp(RFC4226_SECRET, 2**64)


def test_totp_matches_pyotp():
    secret = pyotp.random_base32()
    key = base32.decode(secret)
    for at in (0, 29, 30, 1_700_000_015, 1_999_999_999):
        assert otp.totp(key, at) == pyotp.TOTP(secret).at(at)


def test_verify_same_instant_window_zero():
    key = base32.decode(pyotp.random_base32())
    t = 1_700_000_015
    assert otp.verify_totp(key, otp.totp(key, t), window=0, at=t)


def test_verify_drift_tolerance():
    key = RFC4226_SECRET
    t = 1_700_000_015
    assert otp.verify_totp(key, otp.totp(key, t + 30), window=1, at=t)
    assert otp.verify_totp(key, otp.totp(key, t - 30), window=1, at=t)
    assert not otp.verify_totp(key, otp.totp(key, t + 90), window=1, at=t)
    assert not otp.verify_totp(key, otp.totp(key, t - 90), window=1, at=t)


def test_verify_accepts_spaced_code():
    t = 59
    assert otp.verify_totp(RFC4226_SECRET, "287 082", at=t)


@pytest.mark.parametrize("bad", ["", "abcdef", "28708", "2870820", "２８７０８２"])
def test_verify_rejects_malformed(bad):
    assert not otp.verify_totp(RFC4226_SECRET, bad, at=59)


def test_random_secret_is_160_bit_base32():
    secret = otp.random_secret()
    assert len(secret) == 32
    assert set(secret) <= set("ABCDEFGHIJKLMNOPQRSTUVWXYZ234567")
    assert len(base32.decode(secret)) == 20
    assert otp.random_secret() != secret


def test_hotp_matches_pyotp_counters():
    secret = pyotp.random_base32()
    key = base32.decode(secret)
    reference = pyotp.HOTP(secret)
    for counter in range(50):
        assert otp.hotp(key, counter) == reference.at(counter)


@pytest.mark.parametrize("offset,expected", [(-60, False), (-30, True), (0, True), (30, True), (60, False)])
def test_verify_agrees_with_pyotp_window(offset, expected):
    secret = pyotp.random_base32()
    reference = pyotp.TOTP(secret)
    t = 1_700_000_015
    code = reference.at(t + offset)
    assert otp.verify_totp(base32.decode(secret), code, window=1, at=t) is expected
    assert reference.verify(code, for_time=t, valid_window=1) is expected


def test_verify_at_epoch_skips_negative_steps():
    assert otp.verify_totp(RFC4226_SECRET, otp.hotp(RFC4226_SECRET, 1), window=1, at=0)
    assert not otp.verify_totp(RFC4226_SECRET, otp.hotp(RFC4226_SECRET, 2), window=1, at=0)
