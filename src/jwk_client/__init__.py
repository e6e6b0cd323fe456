"""jwk-client — validate JWTs against a rotating remote JWKS."""

__version__ = "0.1.0"

from jwk_client.client import JwkClient
from jwk_client.config import JwkClientConfig
from jwk_client.errors import (
    JwkClientError,
    KeyFetchError,
    KeySetFormatError,
    MissingKeyIdError,
    TokenVerificationError,
    UnknownOrInactiveKeyError,
)
from jwk_client.keys import KeyCache, KeyEntry

__all__ = [
    "JwkClient",
    "JwkClientConfig",
    "JwkClientError",
    "KeyCache",
    "KeyEntry",
    "KeyFetchError",
    "KeySetFormatError",
    "MissingKeyIdError",
    "TokenVerificationError",
    "UnknownOrInactiveKeyError",
]
