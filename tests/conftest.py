"""Test fixtures for jwk-client tests.

Tests are network-free — they generate RSA keys, sign JWTs with PyJWT,
and serve JWKS documents through httpx MockTransport.
"""

import asyncio
import base64
import uuid
from datetime import UTC, datetime, timedelta

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import load_pem_public_key

JWKS_URI = "http://test/.well-known/jwks.json"
ISSUER = "https://idp.example"
AUDIENCE = "my-service"


def generate_key_pair() -> tuple[str, str]:
    """Generate an RSA key pair as (private_pem, public_pem)."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("utf-8")
    return private_pem, public_pem


def _int_to_b64url(value: int) -> str:
    byte_length = (value.bit_length() + 7) // 8
    value_bytes = value.to_bytes(byte_length, byteorder="big")
    return base64.urlsafe_b64encode(value_bytes).rstrip(b"=").decode("ascii")


def make_jwk(public_pem: str, kid: str, *, nbf: int | None = None) -> dict:
    """Convert a PEM public key to a JWK dict, optionally with an activation time."""
    public_numbers = load_pem_public_key(public_pem.encode("utf-8")).public_numbers()
    jwk = {
        "kty": "RSA",
        "kid": kid,
        "use": "sig",
        "alg": "RS256",
        "n": _int_to_b64url(public_numbers.n),
        "e": _int_to_b64url(public_numbers.e),
    }
    if nbf is not None:
        jwk["nbf"] = nbf
    return jwk


def create_test_token(
    private_key_pem: str,
    kid: str | None,
    *,
    issuer: str = ISSUER,
    audience: str = AUDIENCE,
    subject: str | None = None,
    expires_in: int = 900,
    algorithm: str = "RS256",
    **extra_claims,
) -> str:
    """Create a test JWT signed with the given private key."""
    now = datetime.now(UTC)
    payload = {
        "sub": subject or str(uuid.uuid4()),
        "iss": issuer,
        "aud": audience,
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
        **extra_claims,
    }
    headers = {"kid": kid} if kid is not None else None
    return jwt.encode(payload, private_key_pem, algorithm=algorithm, headers=headers)


def make_mock_transport(*responses):
    """Create an httpx MockTransport that serves ``responses`` in order.

    Each response is a JWKS dict (served as 200 JSON), an ``httpx.Response``,
    or an exception to raise. The last one repeats once the list runs out.
    """
    call_count = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        response = responses[min(call_count["n"], len(responses) - 1)]
        call_count["n"] += 1
        if isinstance(response, Exception):
            raise response
        if isinstance(response, httpx.Response):
            return response
        return httpx.Response(200, json=response)

    return httpx.MockTransport(handler), call_count


def make_async_mock_transport(*responses, delay: float = 0.01):
    """Like make_mock_transport, but the handler sleeps before answering.

    The sleep hands control back to the event loop, so concurrent callers
    interleave around the fetch.
    """
    transport, call_count = make_mock_transport(*responses)
    sync_handler = transport.handler

    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(delay)
        return sync_handler(request)

    return httpx.MockTransport(handler), call_count


class FakeClock:
    """Controllable UTC clock for refresh timing tests."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime.now(UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def rsa_key_pair():
    """Generate a test RSA key pair."""
    return generate_key_pair()


@pytest.fixture
def other_key_pair():
    """A second, unrelated RSA key pair."""
    return generate_key_pair()


@pytest.fixture
def test_kid():
    return f"test-key-{uuid.uuid4().hex[:8]}"


@pytest.fixture
def jwk_from_public_key(rsa_key_pair, test_kid):
    """The test public key in JWK format."""
    _, public_pem = rsa_key_pair
    return make_jwk(public_pem, test_kid)


@pytest.fixture
def jwks_response(jwk_from_public_key):
    """A JWKS response body with one key."""
    return {"keys": [jwk_from_public_key]}


@pytest.fixture
def clock():
    return FakeClock()
