import hashlib
import hmac

from payments.exceptions import SignatureError


def compute_signature(secret: str, payload: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha512).hexdigest()


def verify_signature(raw_body: bytes, signature: str | None, secret: str) -> None:
    """
    Check a Paystack ``x-paystack-signature`` header against the raw request body.

    The digest must be computed over the bytes exactly as received; a
    re-serialized JSON body will not match. Raises ``SignatureError`` on any
    mismatch, including a missing header or secret.
    """
    if not secret:
        raise SignatureError("Webhook secret is not configured.")
    if not signature:
        raise SignatureError("Missing signature.")
    expected = compute_signature(secret, raw_body)
    if not hmac.compare_digest(expected.encode("ascii"), signature.strip().lower().encode("utf-8")):
        raise SignatureError()
