"""Errors raised by jwk-client.

Every error carries a human-readable ``message`` and a stable ``code`` that
HTTP integrations pass through to clients.
"""


class JwkClientError(Exception):
    """Base class for all jwk-client failures."""

    def __init__(self, message: str, code: str):
        self.message = message
        self.code = code
        super().__init__(message)


class KeyFetchError(JwkClientError):
    """The key set could not be fetched (network, TLS, HTTP status)."""

    def __init__(self, message: str, code: str = "jwks_unavailable"):
        super().__init__(message, code)


class KeySetFormatError(JwkClientError):
    """The key set was fetched but the document or one of its keys is malformed."""

    def __init__(self, message: str, code: str = "jwks_malformed"):
        super().__init__(message, code)


class MissingKeyIdError(JwkClientError):
    """The token header has no ``kid``."""

    def __init__(self, message: str = "Token missing kid header", code: str = "token_missing_kid"):
        super().__init__(message, code)


class UnknownOrInactiveKeyError(JwkClientError):
    """No cached key matches the token's ``kid``, or the key is not yet active."""

    def __init__(self, kid: str, code: str = "token_unknown_key"):
        self.kid = kid
        super().__init__(f"Unknown or inactive signing key: {kid}", code)


class TokenVerificationError(JwkClientError):
    """Signature, algorithm, issuer, audience, expiry or structural check failed."""

    def __init__(self, message: str, code: str = "token_invalid"):
        super().__init__(message, code)
