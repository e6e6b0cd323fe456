"""In-memory key cache — public keys by kid, with activation windows."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime

from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

logger = logging.getLogger("jwk_client.keys")


@dataclass(frozen=True, slots=True)
class KeyEntry:
    """A published public key and the instant it becomes usable.

    ``activation_time`` of None means the key is usable immediately.
    """

    key: RSAPublicKey
    activation_time: datetime | None = None

    def is_valid(self, now: datetime) -> bool:
        return self.activation_time is None or self.activation_time <= now


@dataclass
class KeyCache:
    """Key entries from the most recent successful fetch.

    ``entries`` is only ever reassigned, never mutated, so readers see either
    the previous or the new key set in full.
    """

    entries: Mapping[str, KeyEntry] = field(default_factory=dict)
    last_proactive_refresh: datetime | None = None
    last_reactive_refresh: datetime | None = None

    def get(self, kid: str) -> KeyEntry | None:
        """Return the entry for ``kid`` whether or not it is active yet."""
        return self.entries.get(kid)

    def lookup_valid(self, kid: str, now: datetime | None = None) -> RSAPublicKey | None:
        """Return the key for ``kid`` only if it is cached and already active."""
        entry = self.entries.get(kid)
        if entry is None:
            logger.debug("No cached key for kid=%s", kid)
            return None
        if not entry.is_valid(now or datetime.now(UTC)):
            logger.debug("Key kid=%s not active until %s", kid, entry.activation_time)
            return None
        return entry.key

    def replace_all(self, entries: Mapping[str, KeyEntry]) -> None:
        """Swap in a complete new key set."""
        self.entries = dict(entries)
