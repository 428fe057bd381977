import hashlib
import hmac

import pytest

from payments.exceptions import SignatureError
from payments.services.signatures import compute_signature, verify_signature

SECRET = "sk_test_webhook"
BODY = b'{"event":"charge.success","data":{"reference":"PAY_1"}}'


def test_compute_signature_is_hmac_sha512():
    expected = hmac.new(SECRET.encode(), BODY, hashlib.sha512).hexdigest()

    assert compute_signature(SECRET, BODY) == expected


def test_valid_signature_passes():
    verify_signature(BODY, compute_signature(SECRET, BODY), SECRET)


def test_uppercase_signature_passes():
    verify_signature(BODY, compute_signature(SECRET, BODY).upper(), SECRET)


def test_signature_over_different_bytes_is_rejected():
    reserialized = b'{"event": "charge.success", "data": {"reference": "PAY_1"}}'

    with pytest.raises(SignatureError):
        verify_signature(reserialized, compute_signature(SECRET, BODY), SECRET)


@pytest.mark.parametrize("signature", [None, ""])
def test_missing_signature_is_rejected(signature):
    with pytest.raises(SignatureError):
        verify_signature(BODY, signature, SECRET)


def test_missing_secret_is_rejected():
    with pytest.raises(SignatureError):
        verify_signature(BODY, compute_signature(SECRET, BODY), "")


def test_non_ascii_signature_is_rejected():
    with pytest.raises(SignatureError):
        verify_signature(BODY, "é" * 128, SECRET)
