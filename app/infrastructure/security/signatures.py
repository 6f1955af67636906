"""Webhook signature computation and verification (HMAC-SHA256).

Three header formats are accepted, one per sender:
- provider registrations: X-Webhook-Signature-256: sha256=<hex>
- HeyGen: Signature: <hex>
- Stripe: Stripe-Signature: t=<unix>,v1=<hex>[,v1=<hex>] over "<t>.<body>"
Stripe headers are checked by the stripe SDK. The others use constant
time comparisons here.
"""

import hashlib
import hmac

import stripe


def compute_signature(body: bytes, secret: str) -> str:
    """Return hex HMAC-SHA256(secret, body)."""
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def _matches(candidate: str, expected: str) -> bool:
    # Header values may hold any character; compare_digest only takes ASCII str.
    return hmac.compare_digest(candidate.encode("utf-8", "surrogateescape"), expected.encode())


def verify_prefixed_signature(
    body: bytes, signature_header: str | None, secret: str, prefix: str = "sha256="
) -> bool:
    """Return True if a "sha256=<hex>" header matches HMAC-SHA256(secret, body)."""
    if not signature_header or not signature_header.startswith(prefix):
        return False
    expected = compute_signature(body, secret)
    return _matches(signature_header[len(prefix):].strip(), expected)


def verify_plain_signature(body: bytes, signature_header: str | None, secret: str) -> bool:
    """Return True if a bare hex header matches HMAC-SHA256(secret, body)."""
    if not signature_header:
        return False
    expected = compute_signature(body, secret)
    return _matches(signature_header.strip().lower(), expected)


def compute_stripe_signature(body: bytes, secret: str, timestamp: int) -> str:
    """Return the Stripe v1 signature for body at timestamp."""
    signed_payload = f"{timestamp}.".encode() + body
    return compute_signature(signed_payload, secret)


def verify_stripe_signature(
    body: bytes,
    signature_header: str | None,
    secret: str,
    tolerance_seconds: int = 300,
) -> bool:
    """Return True if Stripe-Signature is valid and not older than tolerance_seconds."""
    if not signature_header:
        return False
    try:
        stripe.WebhookSignature.verify_header(
            body.decode("utf-8"), signature_header, secret, tolerance_seconds
        )
    except (stripe.SignatureVerificationError, UnicodeDecodeError, TypeError):
        return False
    return True
