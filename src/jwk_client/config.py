"""jwk-client configuration."""

from dataclasses import dataclass
from datetime import timedelta

JWT_ALGORITHM = "RS256"
DEFAULT_REFRESH_INTERVAL = timedelta(hours=1)
DEFAULT_RETRY_COOLDOWN = timedelta(minutes=5)


@dataclass(frozen=True, slots=True)
class JwkClientConfig:
    """The trust relationship a client validates against. Built by JwkClient."""

    jwks_uri: str
    issuer: str
    audience: str
    algorithm: str = JWT_ALGORITHM
    http_timeout: float = 10.0  # seconds
    leeway: float = 0.0  # seconds of clock skew allowed on exp/nbf/iat

    def __post_init__(self) -> None:
        for field_name in ("jwks_uri", "issuer", "audience"):
            if not getattr(self, field_name):
                raise ValueError(f"{field_name} is required")
        if not self.algorithm.startswith(("RS", "PS")):
            raise ValueError(f"Unsupported algorithm for RSA keys: {self.algorithm}")
