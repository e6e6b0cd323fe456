"""JwkClient — main entry point for jwk-client.

Validates RS256 JWTs against a remote JWKS. Keys are refreshed before
validation once they are older than the refresh interval, and once more
(rate-limited by the retry cooldown) when a validation fails, so keys
rotated by the identity provider are picked up without a restart.
"""

import asyncio
import logging
import os
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx

from jwk_client.config import (
    DEFAULT_REFRESH_INTERVAL,
    DEFAULT_RETRY_COOLDOWN,
    JWT_ALGORITHM,
    JwkClientConfig,
)
from jwk_client.errors import (
    JwkClientError,
    MissingKeyIdError,
    TokenVerificationError,
    UnknownOrInactiveKeyError,
)
from jwk_client.jwks import KeyFetcher
from jwk_client.keys import KeyCache
from jwk_client.policy import is_stale, may_retry
from jwk_client.verifier import decode_header, verify_signature

logger = logging.getLogger("jwk_client.client")


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _check_duration(name: str, duration: timedelta) -> timedelta:
    if duration < timedelta(0):
        raise ValueError(f"{name} must not be negative")
    return duration


class JwkClient:
    """Validates JWTs issued by one identity provider for one audience.

    Args:
        jwks_uri: URL of the provider's JWKS endpoint.
        issuer: Required ``iss`` claim.
        audience: Required ``aud`` claim.
        algorithm: Signature algorithm tokens must use (default "RS256").
        refresh_interval: Age after which cached keys are refetched before
            validating (default 1 hour).
        retry_cooldown: Minimum spacing between refetches triggered by a
            failed validation (default 5 minutes).
        http_timeout: JWKS request timeout in seconds (default 10).
        leeway: Clock skew in seconds allowed on exp/nbf/iat (default 0).
    """

    def __init__(
        self,
        jwks_uri: str,
        issuer: str,
        audience: str,
        *,
        algorithm: str = JWT_ALGORITHM,
        refresh_interval: timedelta = DEFAULT_REFRESH_INTERVAL,
        retry_cooldown: timedelta = DEFAULT_RETRY_COOLDOWN,
        http_timeout: float = 10.0,
        leeway: float = 0.0,
        _transport: httpx.AsyncBaseTransport | None = None,
        _clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._config = JwkClientConfig(
            jwks_uri=jwks_uri,
            issuer=issuer,
            audience=audience,
            algorithm=algorithm,
            http_timeout=http_timeout,
            leeway=leeway,
        )
        self._refresh_interval = _check_duration("refresh_interval", refresh_interval)
        self._retry_cooldown = _check_duration("retry_cooldown", retry_cooldown)
        self._fetcher = KeyFetcher(jwks_uri, http_timeout=http_timeout, _transport=_transport)
        self._cache = KeyCache()
        self._clock = _clock or _utcnow
        self._lock = asyncio.Lock()
        # Bumped on every successful reactive refresh.
        self._reactive_generation = 0

    @classmethod
    def from_env(cls, prefix: str = "JWK_", **kwargs: Any) -> "JwkClient":
        """Build a client from ``{prefix}JWKS_URI``, ``{prefix}ISSUER`` and ``{prefix}AUDIENCE``.

        Optional: ``{prefix}ALGORITHM``, ``{prefix}HTTP_TIMEOUT``,
        ``{prefix}REFRESH_INTERVAL`` and ``{prefix}RETRY_COOLDOWN`` (seconds).
        Keyword arguments override the environment.

        Raises:
            KeyError: If a required variable is not set.
        """
        env = os.environ
        options: dict[str, Any] = {}
        if f"{prefix}ALGORITHM" in env:
            options["algorithm"] = env[f"{prefix}ALGORITHM"]
        if f"{prefix}HTTP_TIMEOUT" in env:
            options["http_timeout"] = float(env[f"{prefix}HTTP_TIMEOUT"])
        if f"{prefix}REFRESH_INTERVAL" in env:
            options["refresh_interval"] = timedelta(seconds=float(env[f"{prefix}REFRESH_INTERVAL"]))
        if f"{prefix}RETRY_COOLDOWN" in env:
            options["retry_cooldown"] = timedelta(seconds=float(env[f"{prefix}RETRY_COOLDOWN"]))
        options.update(kwargs)
        return cls(
            env[f"{prefix}JWKS_URI"],
            env[f"{prefix}ISSUER"],
            env[f"{prefix}AUDIENCE"],
            **options,
        )

    @property
    def config(self) -> JwkClientConfig:
        return self._config

    @property
    def cache(self) -> KeyCache:
        return self._cache

    @property
    def refresh_interval(self) -> timedelta:
        return self._refresh_interval

    @property
    def retry_cooldown(self) -> timedelta:
        return self._retry_cooldown

    def set_proactive_refresh_interval(self, duration: timedelta) -> None:
        """Change how old keys may get before being refetched. Applies from the next call."""
        self._refresh_interval = _check_duration("refresh_interval", duration)

    def set_retry_cooldown(self, duration: timedelta) -> None:
        """Change the minimum spacing between failure-triggered refetches."""
        self._retry_cooldown = _check_duration("retry_cooldown", duration)

    def key_ids(self) -> list[str]:
        """Ids of all cached keys, including ones not yet active."""
        return list(self._cache.entries)

    async def refresh(self) -> None:
        """Fetch the key set now, e.g. to warm the cache at startup.

        Raises:
            KeyFetchError: If the JWKS cannot be fetched.
            KeySetFormatError: If the JWKS or one of its keys is malformed.
        """
        async with self._lock:
            await self._proactive_refresh()

    async def validate(self, token: str) -> dict[str, Any]:
        """Verify a JWT and return its claims.

        Refreshes stale keys first. If verification fails and no reactive
        refresh happened within the retry cooldown, refetches the keys once
        and verifies again; the second result is final.

        Raises:
            KeyFetchError: If a required JWKS refresh cannot fetch the keys.
            KeySetFormatError: If a required JWKS refresh gets a malformed key set.
            MissingKeyIdError: If the token header has no ``kid``.
            UnknownOrInactiveKeyError: If no active cached key matches the ``kid``.
            TokenVerificationError: If signature, issuer, audience or expiry checks fail.
        """
        if is_stale(self._cache.last_proactive_refresh, self._clock(), self._refresh_interval):
            async with self._lock:
                if is_stale(self._cache.last_proactive_refresh, self._clock(), self._refresh_interval):
                    await self._proactive_refresh()

        generation = self._reactive_generation
        try:
            return self._validate_once(token)
        except JwkClientError as e:
            if not await self._reactive_refresh(e, generation):
                raise
        return self._validate_once(token)

    def _validate_once(self, token: str) -> dict[str, Any]:
        header = decode_header(token)
        if header.kid is None:
            raise MissingKeyIdError()

        key = self._cache.lookup_valid(header.kid, self._clock())
        if key is None:
            raise UnknownOrInactiveKeyError(header.kid)

        if header.alg != self._config.algorithm:
            raise TokenVerificationError(
                f"Unexpected algorithm: {header.alg}", "token_invalid_algorithm",
            )

        return verify_signature(
            token,
            key,
            algorithm=self._config.algorithm,
            issuer=self._config.issuer,
            audience=self._config.audience,
            leeway=self._config.leeway,
        )

    async def _proactive_refresh(self) -> None:
        # Caller holds self._lock.
        entries = await self._fetcher.refresh()
        self._cache.replace_all(entries)
        self._cache.last_proactive_refresh = self._clock()

    async def _reactive_refresh(self, cause: JwkClientError, generation: int) -> bool:
        """Refetch keys after a failed validation if the cooldown allows.

        Returns True if the keys changed since the failed attempt, either by
        this call's refetch or by another caller's, and False if the cooldown
        has not elapsed. A failed refetch raises its own error, chained to
        ``cause``.
        """
        if self._reactive_generation != generation:
            return True
        if not may_retry(self._cache.last_reactive_refresh, self._clock(), self._retry_cooldown):
            return False

        async with self._lock:
            # Another caller may have refreshed while we waited for the lock.
            if self._reactive_generation != generation:
                return True
            if not may_retry(self._cache.last_reactive_refresh, self._clock(), self._retry_cooldown):
                return False
            kid = cause.kid if isinstance(cause, UnknownOrInactiveKeyError) else None
            logger.info(
                "Token validation failed (%s, kid=%s), refetching JWKS from %s",
                cause.code, kid, self._config.jwks_uri,
            )
            try:
                entries = await self._fetcher.refresh()
            except JwkClientError as e:
                raise e from cause
            self._cache.replace_all(entries)
            self._cache.last_reactive_refresh = self._clock()
            self._reactive_generation += 1
        return True
