"""Tests for the lenient base32 codec."""

from __future__ import annotations

import os

import pytest

from twofa.core import base32

RAW = b"Hello!\xde\xad\xbe\xef"


def test_encode_strips_padding():
    assert base32.encode(RAW) == "JBSWY3DPEHPK3PXP"
    assert "=" not in base32.encode(b"a")


def test_decode_known_value():
    assert base32.decode("JBSWY3DPEHPK3PXP") == RAW


def test_decode_is_case_insensitive_and_skips_noise():
    assert base32.decode("jbsw y3dp-ehpk 3pxp") == RAW
    assert base32.decode("JBSWY3DPEHPK3PXP====") == RAW


def test_decode_unpadded_partial_block():
    # "MZXW6" is "foo" without its '===' padding
    assert base32.decode("MZXW6") == b"foo"


def test_decode_random_bytes_roundtrip():
    raw = os.urandom(20)
    assert base32.decode(base32.encode(raw)) == raw
    assert len(base32.encode(raw)) == 32


@pytest.mark.parametrize("text", ["", "!!!", "A", "189="])
def test_decode_empty_result_raises(text):
    with pytest.raises(ValueError):
        base32.decode(text)
