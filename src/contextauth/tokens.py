"""Signed session tokens.

Sessions are carried in compact JWS tokens (JWT). Every token has the
registered claims ``iss``, ``aud``, ``iat`` and ``exp`` plus the session
payload (``tenant_id``, ``entity_id`` and any extra session attributes).

Token lifecycle::

    unissued → signed → valid | expired | invalid

Tokens are never renewed in place; issue a new one instead.

Verification never raises: failures come back as :class:`TokenFailure`
with a stable :class:`TokenFailureCode`.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, Mapping, TypeVar, Union

import jwt
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from .exceptions import TokenError
from .signing import Expiration, SigningKeys, resolve_expiration

if TYPE_CHECKING:
    from .config import AuthSettings

logger = logging.getLogger(__name__)

REGISTERED_CLAIMS = frozenset({"iss", "aud", "iat", "exp", "nbf", "sub", "jti"})


class Session(BaseModel):
    """Identity claims carried by a session token.

    Extra attributes are kept, so applications can store arbitrary session
    data. Custom session types must derive from this class; unions of
    subclasses (e.g. discriminated on a ``type`` field) are supported.
    """

    model_config = ConfigDict(extra="allow")

    tenant_id: str
    entity_id: str


TSession = TypeVar("TSession", bound=Session)


class TokenFailureCode(str, Enum):
    """Stable failure codes for token verification."""

    EXPIRED = "EXPIRED"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    INVALID_CLAIM = "INVALID_CLAIM"
    MALFORMED = "MALFORMED"
    SCHEMA_MISMATCH = "SCHEMA_MISMATCH"
    INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass(frozen=True)
class TokenFailure:
    """Typed verification failure."""

    code: TokenFailureCode
    message: str
    valid: bool = field(default=False, init=False)


@dataclass(frozen=True)
class VerifiedToken(Generic[TSession]):
    """Successfully verified token."""

    session: TSession
    headers: dict[str, Any]
    claims: dict[str, Any]
    valid: bool = field(default=True, init=False)


class SessionTokens(Generic[TSession]):
    """Issue and verify session tokens.

    Args:
        settings: Algorithm, keys, issuer, audience and default TTL.
        session_type: Session model (or union of models) used to parse claims.
        keys: Pre-built key holder; by default one is created from settings.

    Example::

        tokens = SessionTokens(settings)
        token = tokens.issue(Session(tenant_id="t", entity_id="e"), "1 hour")
        result = tokens.verify(token)
        if result.valid:
            result.session.entity_id  # "e"
    """

    def __init__(
        self,
        settings: AuthSettings,
        session_type: Any = Session,
        *,
        keys: SigningKeys | None = None,
    ) -> None:
        self._settings = settings
        self._session_type = session_type
        self._adapter: TypeAdapter = TypeAdapter(session_type)
        self._keys = keys or SigningKeys(settings)

    @property
    def keys(self) -> SigningKeys:
        return self._keys

    @property
    def session_type(self) -> Any:
        return self._session_type

    def issue(self, session: TSession | Mapping[str, Any], expiration: Expiration | None = None) -> str:
        """Sign a new token for ``session``.

        Args:
            session: Session model instance, or a mapping validated against
                the session type.
            expiration: Absolute unix timestamp, ``datetime``, ``timedelta``
                or duration string such as ``"5 minutes"``. Defaults to
                ``settings.token_ttl``.

        Raises:
            TokenError: If the session is invalid or carries registered claims.
            ConfigurationError: If the signing key cannot be imported.
        """
        if not isinstance(session, BaseModel):
            try:
                session = self._adapter.validate_python(session)
            except ValidationError as e:
                raise TokenError(f"Session does not match the session schema: {e.error_count()} error(s)")

        claims = session.model_dump(mode="json")
        reserved = REGISTERED_CLAIMS.intersection(claims)
        if reserved:
            raise TokenError(f"Session must not define registered claims: {sorted(reserved)}")

        issued_at = int(time.time())
        claims.update(
            iss=self._settings.issuer,
            aud=self._settings.audience,
            iat=issued_at,
            exp=resolve_expiration(expiration if expiration is not None else self._settings.token_ttl, now=issued_at),
        )
        return jwt.encode(claims, self._keys.private_key, algorithm=self._settings.algorithm)

    def verify(self, token: str) -> Union[VerifiedToken[TSession], TokenFailure]:
        """Verify signature, issuer, audience and expiry, then parse the session.

        Returns:
            VerifiedToken on success, TokenFailure otherwise. Never raises.
        """
        try:
            decoded = jwt.api_jwt.decode_complete(
                token,
                self._keys.public_key,
                algorithms=[self._settings.algorithm],
                issuer=self._settings.issuer,
                audience=self._settings.audience,
                leeway=self._settings.leeway_seconds,
                options={"require": ["exp", "iat", "iss", "aud"]},
            )
        except jwt.ExpiredSignatureError as e:
            return TokenFailure(TokenFailureCode.EXPIRED, str(e))
        except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError) as e:
            return TokenFailure(TokenFailureCode.INVALID_SIGNATURE, str(e))
        except jwt.DecodeError as e:
            return TokenFailure(TokenFailureCode.MALFORMED, str(e))
        except jwt.InvalidTokenError as e:
            return TokenFailure(TokenFailureCode.INVALID_CLAIM, str(e))
        except Exception as e:
            logger.exception("Token verification failed unexpectedly")
            return TokenFailure(TokenFailureCode.INTERNAL_ERROR, str(e) or type(e).__name__)

        payload: dict[str, Any] = decoded["payload"]
        try:
            session = self._adapter.validate_python(
                {key: value for key, value in payload.items() if key not in REGISTERED_CLAIMS}
            )
        except ValidationError as e:
            return TokenFailure(
                TokenFailureCode.SCHEMA_MISMATCH,
                f"Token claims do not match the session schema: {e.error_count()} error(s)",
            )

        return VerifiedToken(session=session, headers=dict(decoded["header"]), claims=payload)


__all__ = [
    "REGISTERED_CLAIMS",
    "Session",
    "SessionTokens",
    "TokenFailure",
    "TokenFailureCode",
    "VerifiedToken",
]
