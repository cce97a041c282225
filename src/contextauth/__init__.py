from .auth import Auth, ResolvedSession, SessionResolution
from .config import AuthSettings, LogLevel, SharedConfig, load_shared_config_from_env
from .exceptions import (
    ConfigurationError,
    ContextAuthError,
    PermissionSchemaError,
    PermissionViolationError,
    RoleMutationError,
    RoleNotFoundError,
    TokenError,
)
from .guard import Guard, GuardRegistry
from .logging import (
    AuthLogFormatter,
    AuthLoggerAdapter,
    get_auth_logger,
    redact_secrets,
    safe_log_value,
    safe_preview,
    setup_logging,
)
from .permissions import (
    Access,
    ActionFilter,
    ActionRule,
    ActionValidator,
    Always,
    Conditional,
    Grant,
    Permission,
    PermissionSchema,
)
from .roles import EntityAssignment, InMemoryRoleRepository, Role, RoleMutation, RolePayload, RoleRepository
from .signing import SigningKeys, parse_duration, resolve_expiration
from .tokens import Session, SessionTokens, TokenFailure, TokenFailureCode, VerifiedToken

__all__ = [
    'Auth',
    'ResolvedSession',
    'SessionResolution',
    'AuthSettings',
    'LogLevel',
    'SharedConfig',
    'load_shared_config_from_env',
    'ContextAuthError',
    'ConfigurationError',
    'PermissionSchemaError',
    'PermissionViolationError',
    'RoleNotFoundError',
    'RoleMutationError',
    'TokenError',
    'Guard',
    'GuardRegistry',
    'safe_preview',
    'redact_secrets',
    'safe_log_value',
    'AuthLogFormatter',
    'AuthLoggerAdapter',
    'setup_logging',
    'get_auth_logger',
    'Access',
    'ActionFilter',
    'ActionRule',
    'ActionValidator',
    'Always',
    'Conditional',
    'Grant',
    'Permission',
    'PermissionSchema',
    'EntityAssignment',
    'InMemoryRoleRepository',
    'Role',
    'RoleMutation',
    'RolePayload',
    'RoleRepository',
    'SigningKeys',
    'parse_duration',
    'resolve_expiration',
    'Session',
    'SessionTokens',
    'TokenFailure',
    'TokenFailureCode',
    'VerifiedToken',
]
