import base64
import hashlib
import hmac

from bridgescope.ingestion.signature import compute_signature, verify_signature

SECRET = "whsec_test"
BODY = b'[{"signature":"abc","slot":1,"timestamp":1}]'


def test_signature_is_base64_hmac_sha256_of_raw_body():
    expected = base64.b64encode(hmac.new(SECRET.encode(), BODY, hashlib.sha256).digest()).decode()
    assert compute_signature(SECRET, BODY) == expected
    assert verify_signature(SECRET, BODY, expected)


def test_tampered_body_or_wrong_secret_is_rejected():
    sig = compute_signature(SECRET, BODY)
    assert not verify_signature(SECRET, BODY + b" ", sig)
    assert not verify_signature("other", BODY, sig)


def test_missing_secret_or_header_is_rejected():
    sig = compute_signature(SECRET, BODY)
    assert not verify_signature(None, BODY, sig)
    assert not verify_signature("", BODY, sig)
    assert not verify_signature(SECRET, BODY, None)
