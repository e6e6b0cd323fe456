"""JWKS fetcher — downloads the key set and turns it into cache entries.

A fetch succeeds or fails as a whole: if the document cannot be fetched or
parsed, or any single key is malformed, nothing is returned and the caller
keeps its current cache.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import httpx
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey, RSAPublicNumbers
from jwt.utils import base64url_decode

from jwk_client.errors import KeyFetchError, KeySetFormatError
from jwk_client.keys import KeyEntry

logger = logging.getLogger("jwk_client.jwks")


@dataclass(frozen=True, slots=True)
class RawKey:
    """One key record from the JWKS document, with ``e`` and ``n`` decoded."""

    key_id: str
    activation_time: datetime | None
    exponent: bytes
    modulus: bytes


def build_key(exponent: bytes, modulus: bytes) -> RSAPublicKey:
    """Build an RSA public key from big-endian exponent and modulus bytes.

    Raises:
        KeySetFormatError: If the numbers do not form a valid RSA key.
    """
    try:
        return RSAPublicNumbers(
            e=int.from_bytes(exponent, "big"),
            n=int.from_bytes(modulus, "big"),
        ).public_key()
    except ValueError as e:
        raise KeySetFormatError(f"Invalid RSA key material: {e}") from e


def _decode_component(key_data: dict, name: str, kid: str) -> bytes:
    value = key_data.get(name)
    if not isinstance(value, str):
        raise KeySetFormatError(f"JWK kid={kid} is missing '{name}'")
    try:
        return base64url_decode(value)
    except (TypeError, ValueError) as e:
        raise KeySetFormatError(f"JWK kid={kid} has invalid '{name}': {e}") from e


def _parse_activation_time(key_data: dict, kid: str) -> datetime | None:
    nbf = key_data.get("nbf")
    if nbf is None:
        return None
    if isinstance(nbf, bool) or not isinstance(nbf, (int, float)):
        raise KeySetFormatError(f"JWK kid={kid} has non-numeric 'nbf'")
    try:
        return datetime.fromtimestamp(nbf, UTC)
    except (OverflowError, OSError, ValueError) as e:
        raise KeySetFormatError(f"JWK kid={kid} has out-of-range 'nbf'") from e


def parse_key_set(document: Any) -> list[RawKey]:
    """Parse a JWKS document into raw key records, in document order.

    Raises:
        KeySetFormatError: If the document shape or any key record is invalid.
    """
    if not isinstance(document, dict) or not isinstance(document.get("keys"), list):
        raise KeySetFormatError("JWKS document has no 'keys' array")

    records: list[RawKey] = []
    for key_data in document["keys"]:
        if not isinstance(key_data, dict):
            raise KeySetFormatError("JWKS entry is not an object")
        kid = key_data.get("kid")
        if not isinstance(kid, str) or not kid:
            raise KeySetFormatError("JWK is missing 'kid'")
        records.append(
            RawKey(
                key_id=kid,
                activation_time=_parse_activation_time(key_data, kid),
                exponent=_decode_component(key_data, "e", kid),
                modulus=_decode_component(key_data, "n", kid),
            )
        )
    return records


class KeyFetcher:
    """Fetches the JWKS document and builds a complete kid -> KeyEntry mapping.

    No caching and no retries here; the client decides when to call
    :meth:`refresh` and what to do with the result.

    Args:
        jwks_uri: URL of the JWKS endpoint.
        http_timeout: HTTP request timeout in seconds (default 10).
    """

    def __init__(
        self,
        jwks_uri: str,
        *,
        http_timeout: float = 10.0,
        _transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._jwks_uri = jwks_uri
        self._http_timeout = http_timeout
        self._transport = _transport

    @property
    def jwks_uri(self) -> str:
        return self._jwks_uri

    async def fetch_key_set(self) -> list[RawKey]:
        """Download and parse the JWKS document.

        Raises:
            KeyFetchError: On connection errors or a non-2xx response.
            KeySetFormatError: If the body is not a valid JWKS document.
        """
        kwargs: dict = {"timeout": self._http_timeout}
        if self._transport is not None:
            kwargs["transport"] = self._transport
        try:
            async with httpx.AsyncClient(**kwargs) as client:
                response = await client.get(self._jwks_uri)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Failed to fetch JWKS from %s: %s", self._jwks_uri, e)
            raise KeyFetchError(f"Could not fetch JWKS from {self._jwks_uri}: {e}") from e

        try:
            document = response.json()
        except ValueError as e:
            raise KeySetFormatError(f"JWKS from {self._jwks_uri} is not valid JSON") from e
        return parse_key_set(document)

    async def refresh(self) -> dict[str, KeyEntry]:
        """Fetch the key set and build every key in it.

        Raises:
            KeyFetchError: If the document cannot be fetched.
            KeySetFormatError: If the document or any key in it is malformed.
        """
        try:
            new_keys: dict[str, KeyEntry] = {}
            for raw in await self.fetch_key_set():
                new_keys[raw.key_id] = KeyEntry(
                    key=build_key(raw.exponent, raw.modulus),
                    activation_time=raw.activation_time,
                )
        except KeySetFormatError as e:
            logger.warning("Rejected JWKS from %s: %s", self._jwks_uri, e.message)
            raise

        logger.debug("JWKS fetched from %s: %d keys", self._jwks_uri, len(new_keys))
        return new_keys
