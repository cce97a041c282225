"""Key material and expiration helpers for session tokens.

Provides:
- ``SigningKeys``: lazily imported signing/verification keys, shared
  read-only for the life of the process.
- ``parse_duration()`` / ``resolve_expiration()``: turn "1 hour",
  ``timedelta``, ``datetime`` or unix timestamps into an ``exp`` claim.

Keys are the only shared, lazily initialised state in contextauth. Import
happens at most once per key, under a lock, so concurrent first use from
several threads or event loops results in a single imported key.
"""

from __future__ import annotations

import logging
import re
import threading
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Union

from cryptography.hazmat.primitives.serialization import load_pem_private_key, load_pem_public_key

from .exceptions import ConfigurationError

if TYPE_CHECKING:
    from .config import AuthSettings

logger = logging.getLogger(__name__)

HMAC_ALGORITHMS = frozenset({"HS256", "HS384", "HS512"})
ASYMMETRIC_ALGORITHMS = frozenset(
    {
        "RS256",
        "RS384",
        "RS512",
        "PS256",
        "PS384",
        "PS512",
        "ES256",
        "ES384",
        "ES512",
        "EdDSA",
    }
)
SUPPORTED_ALGORITHMS = HMAC_ALGORITHMS | ASYMMETRIC_ALGORITHMS

Expiration = Union[str, int, float, datetime, timedelta]


# =========================================
# Expiration
# =========================================

_MINUTE = 60
_HOUR = _MINUTE * 60
_DAY = _HOUR * 24
_WEEK = _DAY * 7
_YEAR = _DAY * 365.25

_DURATION = re.compile(
    r"^(?P<sign>[+-])? ?(?P<value>\d+|\d+\.\d+) ?"
    r"(?P<unit>seconds?|secs?|s|minutes?|mins?|m|hours?|hrs?|h|days?|d|weeks?|w|years?|yrs?|y)"
    r"(?: (?P<suffix>ago|from now))?$",
    re.IGNORECASE,
)


def parse_duration(value: str) -> int:
    """Parse a time span such as ``"5 minutes"`` or ``"2 days ago"`` into seconds.

    Valid units are: "sec", "secs", "second", "seconds", "s", "minute",
    "minutes", "min", "mins", "m", "hour", "hours", "hr", "hrs", "h", "day",
    "days", "d", "week", "weeks", "w", "year", "years", "yr", "yrs" and "y".
    Months are not supported; a year is 365.25 days.

    A ``-`` prefix or ``ago`` suffix makes the span negative. A ``from now``
    suffix is accepted for readability.

    Raises:
        ValueError: If the string is not a valid time span.
    """
    matched = _DURATION.match(value.strip())
    if matched is None or (matched.group("sign") and matched.group("suffix")):
        raise ValueError(f"Invalid time period format: {value!r}")

    amount = float(matched.group("value"))
    unit = matched.group("unit").lower()

    if unit.startswith("s"):
        seconds = round(amount)
    elif unit.startswith("m"):
        seconds = round(amount * _MINUTE)
    elif unit.startswith("h"):
        seconds = round(amount * _HOUR)
    elif unit.startswith("d"):
        seconds = round(amount * _DAY)
    elif unit.startswith("w"):
        seconds = round(amount * _WEEK)
    else:
        seconds = round(amount * _YEAR)

    if matched.group("sign") == "-" or (matched.group("suffix") or "").lower() == "ago":
        return -seconds
    return seconds


def resolve_expiration(expiration: Expiration, *, now: float | None = None) -> int:
    """Resolve an expiration argument to an absolute ``exp`` claim.

    - ``int`` / ``float``: absolute unix timestamp, used directly.
    - ``datetime``: converted to a unix timestamp (naive values are UTC).
    - ``timedelta``: added to the current time.
    - ``str``: parsed with :func:`parse_duration` and added to the current time.
    """
    t = time.time() if now is None else now
    if isinstance(expiration, bool):
        raise TypeError("Expiration must be a timestamp, datetime, timedelta or duration string")
    if isinstance(expiration, (int, float)):
        return int(expiration)
    if isinstance(expiration, datetime):
        if expiration.tzinfo is None:
            expiration = expiration.replace(tzinfo=timezone.utc)
        return int(expiration.timestamp())
    if isinstance(expiration, timedelta):
        return int(t + expiration.total_seconds())
    if isinstance(expiration, str):
        return int(t) + parse_duration(expiration)
    raise TypeError(f"Unsupported expiration type: {type(expiration).__name__}")


# =========================================
# Keys
# =========================================


class SigningKeys:
    """Signing and verification keys, imported once and cached.

    ``private_key`` / ``public_key`` import their PEM material on first
    access. Import is guarded by a lock with a double check, so only one
    thread ever performs it; afterwards the imported objects are shared
    read-only.

    For HS* algorithms both properties return the shared secret bytes.
    """

    def __init__(self, settings: AuthSettings) -> None:
        self._settings = settings
        self._lock = threading.Lock()
        self._private_key: Any = None
        self._public_key: Any = None

    @property
    def algorithm(self) -> str:
        return self._settings.algorithm

    @property
    def private_key(self) -> Any:
        """Key used to sign new tokens."""
        key = self._private_key
        if key is not None:
            return key
        with self._lock:
            if self._private_key is None:
                self._private_key = self._import_private_key()
            return self._private_key

    @property
    def public_key(self) -> Any:
        """Key used to verify tokens."""
        key = self._public_key
        if key is not None:
            return key
        with self._lock:
            if self._public_key is None:
                self._public_key = self._import_public_key()
            return self._public_key

    def _import_private_key(self) -> Any:
        if self._settings.is_symmetric:
            return self._shared_secret()
        pem = self._read_pem(self._settings.private_key, self._settings.private_key_path, "private")
        try:
            key = load_pem_private_key(pem, password=None)
        except (ValueError, TypeError) as e:
            raise ConfigurationError(f"Failed to import private key: {e}")
        logger.info("Imported %s private key", self._settings.algorithm)
        return key

    def _import_public_key(self) -> Any:
        if self._settings.is_symmetric:
            return self._shared_secret()
        pem = self._read_pem(self._settings.public_key, self._settings.public_key_path, "public")
        try:
            key = load_pem_public_key(pem)
        except (ValueError, TypeError) as e:
            raise ConfigurationError(f"Failed to import public key: {e}")
        logger.info("Imported %s public key", self._settings.algorithm)
        return key

    def _shared_secret(self) -> bytes:
        if not self._settings.shared_secret:
            raise ConfigurationError(
                f"{self._settings.algorithm} requires a shared secret (AUTH_SHARED_SECRET is not set)"
            )
        return self._settings.shared_secret.encode()

    @staticmethod
    def _read_pem(inline: str, path: str, kind: str) -> bytes:
        if inline:
            return inline.encode()
        if path:
            try:
                return Path(path).read_bytes()
            except OSError as e:
                raise ConfigurationError(f"Cannot read {kind} key file '{path}': {e}")
        raise ConfigurationError(f"No {kind} key configured")


__all__ = [
    "ASYMMETRIC_ALGORITHMS",
    "HMAC_ALGORITHMS",
    "SUPPORTED_ALGORITHMS",
    "Expiration",
    "SigningKeys",
    "parse_duration",
    "resolve_expiration",
]
