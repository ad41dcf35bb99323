"""Tests for otpauth:// and QR request URLs."""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

from twofa.core import provisioning


def test_otpauth_uri_format():
    uri = provisioning.otpauth_uri("JBSWY3DPEHPK3PXP", "alice@example.com", "Pay2X")
    assert uri == (
        "otpauth://totp/Pay2X:alice@example.com"
        "?secret=JBSWY3DPEHPK3PXP&issuer=Pay2X&digits=6&period=30"
    )


def test_otpauth_uri_escapes_issuer_and_label():
    uri = provisioning.otpauth_uri("JBSWY3DPEHPK3PXP", "bob smith", "My App")
    assert uri.startswith("otpauth://totp/My%20App:bob%20smith?")
    assert "issuer=My%20App" in uri


def test_qr_render_url_carries_otpauth():
    uri = provisioning.otpauth_uri("JBSWY3DPEHPK3PXP", "alice@example.com", "Pay2X")
    url = provisioning.qr_render_url(uri, "https://api.qrserver.com/v1/create-qr-code/")
    parsed = urlparse(url)
    assert parsed.netloc == "api.qrserver.com"
    qs = parse_qs(parsed.query)
    assert qs["size"] == ["200x200"]
    assert qs["data"] == [uri]
