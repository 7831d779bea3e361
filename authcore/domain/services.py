# authcore/domain/services.py
from __future__ import annotations

import base64
import secrets
from typing import Callable

from authcore.domain.entities import SecretKind

CODE_LENGTH = 6
TOTP_SECRET_BYTES = 20


def generate_numeric_code(
    length: int = CODE_LENGTH, randbelow: Callable[[int], int] = secrets.randbelow
) -> str:
    """
    Fixed-width numeric code, one independent CSPRNG draw per digit.
    Leading zeros are kept.
    """
    return "".join(str(randbelow(10)) for _ in range(length))


def generate_totp_secret(nbytes: int = TOTP_SECRET_BYTES) -> str:
    """Base32 secret suitable for authenticator apps (no padding)."""
    return base64.b32encode(secrets.token_bytes(nbytes)).decode("ascii").rstrip("=")


def generate_secret(kind: SecretKind) -> str:
    if kind == SecretKind.OPAQUE:
        return generate_totp_secret()
    return generate_numeric_code()


def is_well_formed_code(code: str, kind: SecretKind) -> bool:
    if kind == SecretKind.DIGITS:
        return len(code) == CODE_LENGTH and code.isascii() and code.isdigit()
    return bool(code)


def mask_email(email: str | None) -> str:
    """
    'jeremy@example.com' -> 'je***@example.com'
    'jo@example.com'     -> '**@example.com'
    """
    if not email or "@" not in email:
        return "email"
    # extra "@" segments after the domain are dropped
    parts = email.split("@")
    local, domain = parts[0], parts[1]
    if len(local) <= 2:
        return f"**@{domain}"
    return f"{local[:2]}***@{domain}"
