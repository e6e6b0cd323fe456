"""PyJWT adapters — unverified header decode and signature verification."""

from dataclasses import dataclass
from typing import Any

import jwt
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

from jwk_client.errors import TokenVerificationError


@dataclass(frozen=True, slots=True)
class TokenHeader:
    """The parts of an unverified JWT header the client cares about."""

    kid: str | None
    alg: str | None


def decode_header(token: str) -> TokenHeader:
    """Read the JWT header without checking the signature.

    Raises:
        TokenVerificationError: If the token is not a structurally valid JWT.
    """
    try:
        header = jwt.get_unverified_header(token)
    except jwt.InvalidTokenError:
        raise TokenVerificationError("Malformed token", "token_invalid")

    kid = header.get("kid")
    alg = header.get("alg")
    return TokenHeader(
        kid=kid if isinstance(kid, str) and kid else None,
        alg=alg if isinstance(alg, str) else None,
    )


def verify_signature(
    token: str,
    key: RSAPublicKey,
    *,
    algorithm: str,
    issuer: str,
    audience: str,
    leeway: float = 0.0,
) -> dict[str, Any]:
    """Verify signature, issuer and audience and return the claims.

    ``exp``, ``nbf`` and ``iat`` are checked when present.

    Raises:
        TokenVerificationError: If any check fails.
    """
    try:
        return jwt.decode(
            token,
            key,
            algorithms=[algorithm],
            issuer=issuer,
            audience=audience,
            leeway=leeway,
            options={"require": ["iss", "aud"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenVerificationError("Token has expired", "token_expired")
    except jwt.InvalidIssuerError:
        raise TokenVerificationError("Invalid issuer", "token_invalid_issuer")
    except jwt.InvalidAudienceError:
        raise TokenVerificationError("Invalid audience", "token_invalid_audience")
    except jwt.InvalidTokenError as e:
        raise TokenVerificationError(f"Invalid token: {e}", "token_invalid")
