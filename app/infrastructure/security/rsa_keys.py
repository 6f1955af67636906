"""RSA key material for LTI 1.3 (tool signing keys and their public JWKs)."""

from dataclasses import dataclass
from typing import Any

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk

from app.shared.utils.generators import generate_cuid


@dataclass(frozen=True)
class RsaKeyPair:
    """PEM-encoded key pair plus the key id used in JWT headers and the JWKS."""

    kid: str
    private_key_pem: str
    public_key_pem: str


def generate_rsa_keypair(key_size: int = 2048) -> RsaKeyPair:
    """Generate a new RSA key pair with a fresh key id."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    return RsaKeyPair(kid=generate_cuid(), private_key_pem=private_pem, public_key_pem=public_pem)


def public_jwk(public_key_pem: str, kid: str) -> dict[str, Any]:
    """Return the public JWK (kty, n, e, alg, use, kid) for a PEM public key."""
    data = jwk.construct(public_key_pem, algorithm="RS256").to_dict()
    return {
        "kty": data["kty"],
        "n": data["n"],
        "e": data["e"],
        "alg": "RS256",
        "use": "sig",
        "kid": kid,
    }
