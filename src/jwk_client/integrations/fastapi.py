"""FastAPI dependencies for jwk-client."""

from typing import Any

from fastapi import HTTPException, Request

from jwk_client.client import JwkClient
from jwk_client.errors import JwkClientError, KeyFetchError, KeySetFormatError


def create_claims_dep(client: JwkClient, *, cookie_name: str | None = None):
    """Create a FastAPI dependency that extracts, validates and returns JWT claims.

    Token resolution order:
    1. ``Authorization: Bearer <token>`` header
    2. Cookie named ``cookie_name`` (if configured)
    """

    async def current_claims(request: Request) -> dict[str, Any]:
        token: str | None = None

        # 1. Try Bearer header
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header[7:]

        # 2. Fall back to cookie
        if token is None and cookie_name:
            token = request.cookies.get(cookie_name)

        if not token:
            raise HTTPException(
                status_code=401,
                detail={"error": "token_missing", "message": "No access token provided"},
            )

        try:
            return await client.validate(token)
        except (KeyFetchError, KeySetFormatError) as e:
            raise HTTPException(
                status_code=503,
                detail={"error": "jwks_unavailable", "message": e.message},
            )
        except JwkClientError as e:
            raise HTTPException(
                status_code=401,
                detail={"error": e.code, "message": e.message},
            )

    return current_claims
