"""Example microservice using jwk-client to authenticate requests.

The service trusts tokens issued by an external identity provider. Public
keys come from the provider's JWKS endpoint and are refreshed automatically
when the provider rotates them.

Run:  JWK_JWKS_URI=... JWK_ISSUER=... JWK_AUDIENCE=... uvicorn main:app --port 8001
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request

from jwk_client import JwkClient, JwkClientError
from jwk_client.integrations.fastapi import create_claims_dep

logging.basicConfig(level=logging.INFO)

# ---------------------------------------------------------------------------
# Setup — JWKS URL, issuer and audience come from JWK_* environment variables
# ---------------------------------------------------------------------------

jwk_client = JwkClient.from_env()
current_claims = create_claims_dep(jwk_client, cookie_name="access_token")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Fail fast if the provider's keys are unreachable at startup.
    await jwk_client.refresh()
    yield


app = FastAPI(title="jwk-client example service", lifespan=lifespan)


@app.get("/data")
async def get_data(claims: dict = Depends(current_claims)):
    """Any token issued for this audience can access this."""
    return {"message": f"Hello {claims['sub']}", "scope": claims.get("scope")}


@app.post("/webhook")
async def webhook(request: Request):
    """Example: validate a token passed in a webhook payload."""
    body = await request.json()
    token = body.get("auth_token")
    if not token:
        raise HTTPException(status_code=400, detail="Missing auth_token")

    try:
        claims = await jwk_client.validate(token)
    except JwkClientError as e:
        raise HTTPException(status_code=401, detail=e.code)

    return {"processed_for": claims["sub"]}


@app.get("/health")
async def health():
    return {"status": "ok", "cached_keys": len(jwk_client.key_ids())}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8001, reload=True)
