import base64
import hashlib
import hmac
from typing import Optional


def compute_signature(secret: str, raw_body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(secret: Optional[str], raw_body: bytes, provided: Optional[str]) -> bool:
    """Base64 HMAC-SHA256 of the exact request bytes, compared in constant time."""
    if not secret or not provided:
        return False
    return hmac.compare_digest(compute_signature(secret, raw_body), provided.strip())
