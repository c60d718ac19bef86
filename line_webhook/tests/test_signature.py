import base64
import hashlib
import hmac
from unittest.mock import AsyncMock

import pytest

from line_webhook.services.signature import SignatureValidator, compute_signature, validate_signature

SECRET = "line-test-secret"


def _reference_signature(body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode(), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def _flip_bit(data: bytes, index: int) -> bytes:
    mutated = bytearray(data)
    mutated[index] ^= 0x01
    return bytes(mutated)


@pytest.mark.parametrize("body", [
    b"",
    b'{"destination":"U1","events":[]}',
    '{"events":[{"type":"message","text":"สวัสดี"}]}'.encode(),
    bytes(range(256)),
])
def test_valid_signature(body):
    signature = compute_signature(body, SECRET)
    assert signature == _reference_signature(body, SECRET)
    assert validate_signature(body, SECRET, signature) is True


def test_single_bit_change_in_body_rejected():
    body = b'{"destination":"U1","events":[{"type":"follow"}]}'
    signature = compute_signature(body, SECRET)
    for index in range(len(body)):
        assert validate_signature(_flip_bit(body, index), SECRET, signature) is False


def test_single_bit_change_in_signature_rejected():
    body = b'{"destination":"U1","events":[]}'
    signature = compute_signature(body, SECRET).encode()
    for index in range(len(signature)):
        mutated = _flip_bit(signature, index).decode("latin-1")
        assert validate_signature(body, SECRET, mutated) is False


def test_wrong_secret_rejected():
    body = b'{"events":[]}'
    assert validate_signature(body, SECRET, compute_signature(body, "other-secret")) is False


@pytest.mark.parametrize("signature", [None, ""])
def test_missing_signature_fails_closed(signature):
    assert validate_signature(b'{"events":[]}', SECRET, signature) is False


def test_signature_is_not_reformatted():
    # whitespace differences change the bytes, so the signature no longer matches
    compact = b'{"events":[]}'
    spaced = b'{"events": []}'
    assert validate_signature(spaced, SECRET, compute_signature(compact, SECRET)) is False


async def test_validator_without_cache():
    validator = SignatureValidator(SECRET)
    body = b'{"events":[]}'
    assert await validator.validate(body, compute_signature(body, SECRET)) is True
    assert await validator.validate(body, "bogus") is False
    assert await validator.validate(body, None) is False


async def test_cache_miss_computes_and_stores():
    redis = AsyncMock()
    redis.get.return_value = None
    validator = SignatureValidator(SECRET, redis=redis, cache_ttl=300)
    body = b'{"events":[]}'
    signature = compute_signature(body, SECRET)

    assert await validator.validate(body, signature) is True

    key = redis.set.await_args.args[0]
    assert key.startswith(f"line_sig:{signature}:")
    assert redis.set.await_args.args[1] == "valid"
    assert redis.set.await_args.kwargs["ex"] == 300


async def test_cache_stores_invalid_result():
    redis = AsyncMock()
    redis.get.return_value = None
    validator = SignatureValidator(SECRET, redis=redis)

    assert await validator.validate(b'{"events":[]}', "bogus") is False
    assert redis.set.await_args.args[1] == "invalid"


async def test_cache_hit_is_used():
    redis = AsyncMock()
    redis.get.return_value = b"invalid"
    validator = SignatureValidator(SECRET, redis=redis)
    body = b'{"events":[]}'

    # cached answer wins even though the signature would compute as valid
    assert await validator.validate(body, compute_signature(body, SECRET)) is False
    redis.set.assert_not_awaited()


async def test_cache_key_is_bound_to_body():
    redis = AsyncMock()
    redis.get.return_value = None
    validator = SignatureValidator(SECRET, redis=redis)
    signature = compute_signature(b"first", SECRET)

    await validator.validate(b"first", signature)
    await validator.validate(b"second", signature)

    first_key = redis.get.await_args_list[0].args[0]
    second_key = redis.get.await_args_list[1].args[0]
    assert first_key != second_key


async def test_cache_failures_fall_back_to_computation():
    redis = AsyncMock()
    redis.get.side_effect = ConnectionError("redis down")
    redis.set.side_effect = ConnectionError("redis down")
    validator = SignatureValidator(SECRET, redis=redis)
    body = b'{"events":[]}'

    assert await validator.validate(body, compute_signature(body, SECRET)) is True
    assert await validator.validate(body, "bogus") is False


async def test_missing_signature_skips_cache():
    redis = AsyncMock()
    validator = SignatureValidator(SECRET, redis=redis)

    assert await validator.validate(b"{}", None) is False
    redis.get.assert_not_awaited()
