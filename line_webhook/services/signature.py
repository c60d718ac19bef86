import base64
import hashlib
import hmac
import logging
from typing import Optional

from redis.asyncio import Redis

logger = logging.getLogger(__name__)

SIGNATURE_CACHE_PREFIX = "line_sig"


def compute_signature(body: bytes, secret: str) -> str:
    """base64 encoded HMAC-SHA256 of the raw body, the format LINE sends in x-line-signature."""
    digest = hmac.new(secret.encode(), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def validate_signature(body: bytes, secret: str, signature: Optional[str]) -> bool:
    """
    Check x-line-signature against the raw request body.
    Fails closed when the header is missing.
    """
    if not signature:
        logger.warning("Missing x-line-signature header")
        return False

    expected = compute_signature(body, secret)
    is_valid = hmac.compare_digest(expected.encode(), signature.encode())
    if not is_valid:
        logger.warning(f"Invalid signature: expected={expected} received={signature}")
    return is_valid


class SignatureValidator:
    """
    Validates LINE signatures, optionally caching results in Redis.

    The cache is an optimisation only. Keys include a digest of the body so a
    cached "valid" can only ever answer for the exact same body and signature,
    and any Redis failure falls back to computing the HMAC.
    """

    def __init__(self, secret: str, redis: Optional[Redis] = None, cache_ttl: int = 300):
        self.secret = secret
        self.redis = redis
        self.cache_ttl = cache_ttl

    def _cache_key(self, body: bytes, signature: str) -> str:
        return f"{SIGNATURE_CACHE_PREFIX}:{signature}:{hashlib.sha256(body).hexdigest()}"

    async def validate(self, body: bytes, signature: Optional[str]) -> bool:
        if not signature or self.redis is None:
            return validate_signature(body, self.secret, signature)

        cache_key = self._cache_key(body, signature)
        try:
            cached = await self.redis.get(cache_key)
            if cached is not None:
                return cached in (b"valid", "valid")
        except Exception as e:
            logger.error(f"Redis cache check failed: {e}")

        is_valid = validate_signature(body, self.secret, signature)

        try:
            await self.redis.set(cache_key, "valid" if is_valid else "invalid", ex=self.cache_ttl)
        except Exception as e:
            logger.error(f"Redis cache set failed: {e}")

        return is_valid
