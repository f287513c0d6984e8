"""Keyed hashing for passwords and session tokens (HMAC-SHA256, hex digest)."""

import hashlib
import hmac


class PasswordHasher:
    """Infrastructure adapter producing deterministic keyed digests."""

    def __init__(self, secret: str):
        self._secret = secret.encode("utf-8")

    def hash(self, value: str) -> str:
        return hmac.new(self._secret, value.encode("utf-8"), hashlib.sha256).hexdigest()

    def verify(self, value: str, digest: str) -> bool:
        return hmac.compare_digest(self.hash(value), digest)
