"""
Primitive de securitate: hash de parolă și token-uri de sesiune opace.

- Parolele se salvează ca PBKDF2-HMAC-SHA256 cu salt aleator, format
  ``pbkdf2_sha256$<iterații>$<salt hex>$<hash hex>``.
- Token-ul de sesiune e un șir aleator (``secrets.token_urlsafe``); în DB
  păstrăm doar SHA-256 din el, deci un dump al tabelului nu expune sesiuni.
"""
from __future__ import annotations

import hashlib
import hmac
import os
import secrets

from sweetshop.core.settings import settings

_ALGO = "pbkdf2_sha256"
_SALT_BYTES = 16
_TOKEN_BYTES = 32


def hash_password(password: str, *, iterations: int | None = None) -> str:
    rounds = int(iterations or settings.PASSWORD_HASH_ITERATIONS)
    salt = os.urandom(_SALT_BYTES)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, rounds)
    return f"{_ALGO}${rounds}${salt.hex()}${dk.hex()}"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Compară în timp constant; orice format necunoscut întoarce False."""
    try:
        algo, rounds, salt_hex, hash_hex = hashed_password.split("$", 3)
        if algo != _ALGO:
            return False
        dk = hashlib.pbkdf2_hmac(
            "sha256",
            plain_password.encode("utf-8"),
            bytes.fromhex(salt_hex),
            int(rounds),
        )
        return hmac.compare_digest(dk, bytes.fromhex(hash_hex))
    except (ValueError, TypeError):
        return False


def new_session_token() -> str:
    return secrets.token_urlsafe(_TOKEN_BYTES)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
