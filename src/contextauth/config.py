"""Configuration contract for contextauth.

Pydantic-validated configuration models for logging and token signing.
Direct os.environ/os.getenv usage is FORBIDDEN outside
``load_shared_config_from_env()``; everything else receives a config object.

Key material is configured either inline (PEM strings) or by file path.
Keys are imported lazily by ``contextauth.signing.SigningKeys``.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .signing import HMAC_ALGORITHMS, SUPPORTED_ALGORITHMS, parse_duration


class LogLevel(str, Enum):
    """Standard log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class AuthSettings(BaseModel):
    """Token signing and verification settings.

    Signing flow:
        Issuer   → SIGNS tokens    (needs private key, or shared secret for HS*)
        Verifier → VERIFIES tokens (needs public key, or shared secret for HS*)

    Environment variables:
        AUTH_ALGORITHM            RS256 | ES256 | EdDSA | HS256 | ...
        AUTH_PRIVATE_KEY          PEM private key (inline)
        AUTH_PUBLIC_KEY           PEM public key (inline)
        AUTH_PRIVATE_KEY_PATH     PEM private key file (signer only)
        AUTH_PUBLIC_KEY_PATH      PEM public key file (verifier)
        AUTH_SHARED_SECRET        symmetric secret for HS* algorithms
        AUTH_ISSUER               "iss" claim
        AUTH_AUDIENCE             "aud" claim
        AUTH_TOKEN_TTL            default expiration, e.g. "1 hour"
        AUTH_LEEWAY_SECONDS       clock skew tolerance on verification
    """

    model_config = {"extra": "ignore"}

    algorithm: str = Field(
        default="RS256",
        description="JWS algorithm used to sign tokens",
    )

    # Key material (inline PEM or file reference)
    private_key: str = Field(default="", repr=False, description="PEM encoded private key")
    public_key: str = Field(default="", description="PEM encoded public key")
    private_key_path: str = Field(default="", description="Private key file path (signer only)")
    public_key_path: str = Field(default="", description="Public key file path (verifier)")
    shared_secret: str = Field(default="", repr=False, description="Shared secret for HS* algorithms")

    # Claims
    issuer: str = Field(default="", description="Token issuer identifier")
    audience: str = Field(default="", description="Token audience identifier")

    token_ttl: str = Field(
        default="1 hour",
        description="Default token expiration as a duration string",
    )
    leeway_seconds: int = Field(
        default=0,
        ge=0,
        description="Clock skew tolerance applied to exp/iat checks",
    )

    @field_validator("algorithm")
    @classmethod
    def validate_algorithm(cls, v: str) -> str:
        """Reject algorithms the signing layer cannot handle."""
        if v not in SUPPORTED_ALGORITHMS:
            raise ValueError(f"Unsupported algorithm: {v}. Must be one of {sorted(SUPPORTED_ALGORITHMS)}")
        return v

    @field_validator("token_ttl")
    @classmethod
    def validate_token_ttl(cls, v: str) -> str:
        """Token TTL must be a positive duration string."""
        if parse_duration(v) <= 0:
            raise ValueError(f"Token TTL must be a positive duration, got {v!r}")
        return v

    @model_validator(mode="after")
    def validate_claims(self) -> "AuthSettings":
        if not self.issuer or not self.audience:
            raise ValueError("Both issuer and audience must be configured")
        return self

    @property
    def is_symmetric(self) -> bool:
        return self.algorithm in HMAC_ALGORITHMS


class SharedConfig(BaseModel):
    """Top-level configuration for a service embedding contextauth."""

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level for the service",
    )
    log_json: bool = Field(
        default=False,
        description="Use JSON log format (default: plain text)",
    )

    # Service identification
    service_name: Optional[str] = Field(
        default=None,
        description="Service name used as logger namespace",
    )

    auth: AuthSettings = Field(description="Token signing configuration")

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Convert string to LogLevel enum."""
        if isinstance(v, LogLevel):
            return v
        if isinstance(v, str):
            try:
                return LogLevel[v.upper()]
            except KeyError:
                raise ValueError(f"Invalid log level: {v}. Must be one of {[e.value for e in LogLevel]}")
        raise ValueError(f"Log level must be string or LogLevel enum, got {type(v)}")

    model_config = {
        "extra": "forbid",  # Prevent accidental extra fields
    }


def load_shared_config_from_env() -> SharedConfig:
    """Load configuration from environment variables.

    This is the ONLY place where os.getenv is allowed.

    Environment variables:
    - LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - LOG_JSON: Use JSON log format (true/false, default: false)
    - SERVICE_NAME: Service name
    - AUTH_*: see AuthSettings

    Returns:
        SharedConfig instance with values from environment or defaults.
    """
    import os

    auth = AuthSettings(
        algorithm=os.getenv("AUTH_ALGORITHM", "RS256"),
        private_key=os.getenv("AUTH_PRIVATE_KEY", ""),
        public_key=os.getenv("AUTH_PUBLIC_KEY", ""),
        private_key_path=os.getenv("AUTH_PRIVATE_KEY_PATH", ""),
        public_key_path=os.getenv("AUTH_PUBLIC_KEY_PATH", ""),
        shared_secret=os.getenv("AUTH_SHARED_SECRET", ""),
        issuer=os.getenv("AUTH_ISSUER", ""),
        audience=os.getenv("AUTH_AUDIENCE", ""),
        token_ttl=os.getenv("AUTH_TOKEN_TTL", "1 hour"),
        leeway_seconds=int(os.getenv("AUTH_LEEWAY_SECONDS", "0")),
    )

    return SharedConfig(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=os.getenv("LOG_JSON", "false").lower() in ("true", "1", "yes"),
        service_name=os.getenv("SERVICE_NAME"),
        auth=auth,
    )


__all__ = [
    "AuthSettings",
    "LogLevel",
    "SharedConfig",
    "load_shared_config_from_env",
]
