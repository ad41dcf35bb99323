# twofa/core/base32.py
import base64

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
_INDEX = {ch: i for i, ch in enumerate(ALPHABET)}


def encode(data: bytes) -> str:
    """RFC 4648 base32 without '=' padding (the form authenticator apps display)."""
    return base64.b32encode(data).decode("ascii").rstrip("=")


def decode(text: str) -> bytes:
    """
    Lenient base32 decoding, like authenticator apps do it: case-insensitive,
    unknown symbols (spaces, dashes, '=') are skipped and trailing bits that do
    not fill a whole byte are dropped.
    """
    out = bytearray()
    buffer = 0
    bits = 0
    for ch in text.upper():
        value = _INDEX.get(ch)
        if value is None:
            continue
        buffer = ((buffer << 5) | value) & 0xFFF
        bits += 5
        if bits >= 8:
            bits -= 8
            out.append((buffer >> bits) & 0xFF)
    if not out:
        raise ValueError("base32 input decodes to zero bytes")
    return bytes(out)
