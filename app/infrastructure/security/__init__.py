"""Security: JWT, secret hashing, credential encryption, webhook signatures, RSA keys."""

from app.infrastructure.security.encryption import CredentialEncryptor
from app.infrastructure.security.jwt import (
    create_access_token,
    decode_rs256,
    encode_rs256,
    verify_token,
)
from app.infrastructure.security.rsa_keys import RsaKeyPair, generate_rsa_keypair, public_jwk
from app.infrastructure.security.secret_hashing import get_secret_hash, verify_secret
from app.infrastructure.security.signatures import (
    compute_signature,
    compute_stripe_signature,
    verify_plain_signature,
    verify_prefixed_signature,
    verify_stripe_signature,
)

__all__ = [
    "CredentialEncryptor",
    "RsaKeyPair",
    "compute_signature",
    "compute_stripe_signature",
    "create_access_token",
    "decode_rs256",
    "encode_rs256",
    "generate_rsa_keypair",
    "get_secret_hash",
    "public_jwk",
    "verify_plain_signature",
    "verify_prefixed_signature",
    "verify_secret",
    "verify_stripe_signature",
    "verify_token",
]
