"""API secret hashing (bcrypt with SHA-256 pre-hash).

Bcrypt truncates inputs at 72 bytes; pre-hashing with SHA-256 yields a
fixed-length input so long secrets are not silently truncated. Only the
hash is stored; the plaintext secret is shown to the caller once.
"""

import base64
import hashlib

import bcrypt


def _prehash(secret: str) -> bytes:
    """SHA-256 pre-hash to avoid bcrypt's 72-byte truncation."""
    return base64.b64encode(hashlib.sha256(secret.encode("utf-8")).digest())


def verify_secret(plain_secret: str, hashed_secret: str) -> bool:
    """Return True if plain_secret matches hashed_secret."""
    try:
        result = bcrypt.checkpw(
            _prehash(plain_secret),
            hashed_secret.encode("utf-8"),
        )
        return bool(result)
    except (ValueError, TypeError):
        return False


def get_secret_hash(secret: str, rounds: int = 12) -> str:
    """Return bcrypt hash of secret (SHA-256 pre-hashed before bcrypt)."""
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(_prehash(secret), salt)
    return hashed.decode("utf-8")
