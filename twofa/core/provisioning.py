# twofa/core/provisioning.py
from urllib.parse import quote, urlencode

from twofa.core.otp import DIGITS, PERIOD


def otpauth_uri(secret: str, account_label: str, issuer: str) -> str:
    label = f"{quote(issuer, safe='')}:{quote(account_label, safe='@')}"
    return (
        f"otpauth://totp/{label}?secret={secret}&issuer={quote(issuer, safe='')}"
        f"&digits={DIGITS}&period={PERIOD}"
    )


def qr_render_url(otpauth: str, service_url: str, size: int = 200) -> str:
    # only builds the request; the image itself is fetched by the client
    return f"{service_url}?{urlencode({'size': f'{size}x{size}', 'data': otpauth})}"
