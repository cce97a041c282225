"""Auth facade.

Wires the permission schema, the role repository, session tokens and guards
into one object an application holds for its lifetime::

    auth = Auth(
        config.auth,
        permissions={"users": {"create": ..., "read": ActionFilter(["name"])}},
        repository=InMemoryRoleRepository(),
        guards=[Guard("account:own", OwnAccount, owns_account)],
    )

    token = auth.generate(Session(tenant_id="t", entity_id="e"), "1 day")
    session = await auth.resolve(token)
    if session.valid:
        session.has("users", "read")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Generic, Iterable, Mapping, Union

from .config import AuthSettings, SharedConfig, load_shared_config_from_env
from .guard import Guard, GuardRegistry
from .logging import get_auth_logger
from .permissions.access import Access
from .permissions.permission import Permission
from .permissions.schema import PermissionSchema
from .roles.repository import RoleRepository
from .roles.role import Role
from .signing import Expiration
from .tokens import Session, SessionTokens, TokenFailure, TokenFailureCode, TSession, VerifiedToken

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedSession(Generic[TSession]):
    """Verified session bound to the entity's current roles.

    Session attributes are readable directly on the resolved session
    (``resolved.tenant_id``, ``resolved.account_id``, ...).
    """

    session: TSession
    access: Access
    roles: tuple[Role, ...]
    headers: dict[str, Any] = field(default_factory=dict)
    claims: dict[str, Any] = field(default_factory=dict)
    valid: bool = field(default=True, init=False)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self.session, name)

    @property
    def tenant_id(self) -> str:
        return self.session.tenant_id

    @property
    def entity_id(self) -> str:
        return self.session.entity_id

    def has(self, resource: str, action: str, data: Any = None) -> bool:
        return self.access.has(resource, action, data)

    def check(self, resource: str, action: str, data: Any = None) -> Permission:
        return self.access.check(resource, action, data)

    def to_json(self) -> dict[str, Any]:
        """Session payload without registered claims."""
        return self.session.model_dump(mode="json")


SessionResolution = Union[ResolvedSession, TokenFailure]


class Auth(Generic[TSession]):
    """Entry point for token issuing, session resolution and access checks.

    Args:
        config: ``SharedConfig`` or its ``AuthSettings`` section.
        permissions: ``PermissionSchema`` or its raw declarations.
        repository: Role storage implementing ``RoleRepository``.
        guards: Guards registered by name.
        session_type: Session model (or union of models) carried by tokens.
    """

    def __init__(
        self,
        config: Union[SharedConfig, AuthSettings],
        permissions: Union[PermissionSchema, Mapping[str, Any]],
        repository: RoleRepository,
        guards: Iterable[Guard] = (),
        session_type: Any = Session,
    ) -> None:
        settings = config.auth if isinstance(config, SharedConfig) else config
        self._settings = settings
        self._schema = permissions if isinstance(permissions, PermissionSchema) else PermissionSchema(permissions)
        self._repository = repository
        self._tokens: SessionTokens[TSession] = SessionTokens(settings, session_type)
        self._guards = GuardRegistry(guards)

    @classmethod
    def from_env(
        cls,
        permissions: Union[PermissionSchema, Mapping[str, Any]],
        repository: RoleRepository,
        guards: Iterable[Guard] = (),
        session_type: Any = Session,
    ) -> Auth:
        """Build from ``AUTH_*`` environment variables."""
        return cls(load_shared_config_from_env(), permissions, repository, guards, session_type)

    # ── Components ───────────────────────────────────────────────

    @property
    def settings(self) -> AuthSettings:
        return self._settings

    @property
    def schema(self) -> PermissionSchema:
        return self._schema

    @property
    def roles(self) -> RoleRepository:
        return self._repository

    @property
    def tokens(self) -> SessionTokens[TSession]:
        return self._tokens

    @property
    def guards(self) -> GuardRegistry:
        return self._guards

    # ── Sessions ─────────────────────────────────────────────────

    def generate(self, session: Union[TSession, Mapping[str, Any]], expiration: Expiration | None = None) -> str:
        """Sign a session token. See :meth:`SessionTokens.issue`."""
        return self._tokens.issue(session, expiration)

    async def resolve(self, token: str) -> SessionResolution:
        """Verify ``token`` and bind the session to the entity's roles.

        Never raises: verification problems and repository errors are
        returned as :class:`TokenFailure`.
        """
        verified = self._tokens.verify(token)
        if isinstance(verified, TokenFailure):
            logger.info("Token rejected: %s", verified.code.value)
            return verified

        return await self._bind(verified)

    async def _bind(self, verified: VerifiedToken[TSession]) -> SessionResolution:
        session = verified.session
        log = get_auth_logger(__name__, tenant_id=session.tenant_id, entity_id=session.entity_id)
        try:
            roles = tuple(await self._repository.get_roles(session.tenant_id, session.entity_id))
        except Exception as e:
            log.exception("Failed to load roles")
            return TokenFailure(TokenFailureCode.INTERNAL_ERROR, str(e) or type(e).__name__)

        log.debug("Resolved session with %d role(s)", len(roles))
        return ResolvedSession(
            session=session,
            access=self.access(roles),
            roles=roles,
            headers=verified.headers,
            claims=verified.claims,
        )

    # ── Access ───────────────────────────────────────────────────

    def access(self, roles: Iterable[Role]) -> Access:
        """Evaluator over ``roles`` and the configured schema."""
        return Access(self._schema, roles)

    async def check(self, name: str, input: Any) -> bool:
        """Run the named guard; unknown names resolve to ``False``."""
        return await self._guards.check(name, input)


__all__ = ["Auth", "ResolvedSession", "SessionResolution"]
