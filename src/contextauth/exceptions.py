"""Unified exception hierarchy for contextauth.

All raised errors inherit from ContextAuthError. This module provides:
- Base exception hierarchy with stable error codes
- ErrorRegistry for mapping codes back to error classes

Only programming and integration errors are raised. Expected runtime
outcomes are not exceptions:
- undeclared resource/action pairs resolve to a denied Permission,
- token verification failures are returned as ``TokenFailure`` results,
- guard failures resolve to ``False``.

Usage:
    from contextauth.exceptions import (
        ContextAuthError,
        ConfigurationError,
        RoleNotFoundError,
    )
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar, cast

__all__ = [
    # Base hierarchy
    "ContextAuthError",
    "ConfigurationError",
    "PermissionSchemaError",
    "PermissionViolationError",
    "RoleNotFoundError",
    "RoleMutationError",
    "TokenError",
    # Registry
    "ErrorRegistry",
    "error_registry",
    "register_error",
]


# ---- Exception Hierarchy ----------------------------------------------------


class ContextAuthError(Exception):
    """Base exception for contextauth.

    Attributes:
        code: Stable error code string (e.g. "ROLE_NOT_FOUND").
        message: Human-readable error description.
        details: Additional context as keyword arguments.
    """

    code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"

    def __init__(self, message: str | None = None, code: str | None = None, **kwargs: Any) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = kwargs
        super().__init__(self.message)


class ConfigurationError(ContextAuthError):
    """Invalid or missing configuration (keys, settings, guard registry)."""

    code: str = "CONFIGURATION_ERROR"


class PermissionSchemaError(ConfigurationError):
    """Permission schema declaration is malformed."""

    code: str = "PERMISSION_SCHEMA_ERROR"


class PermissionViolationError(ContextAuthError):
    """Repository was asked to do something that cannot be done."""

    code: str = "PERMISSION_VIOLATION"


class RoleNotFoundError(PermissionViolationError):
    """Mutation targeted a role that does not exist."""

    code: str = "ROLE_NOT_FOUND"

    def __init__(self, role_id: str, action: str = "set permissions") -> None:
        super().__init__(
            f"Permission Violation: Cannot {action}, role '{role_id}' does not exist.",
            role_id=role_id,
        )
        self.role_id = role_id


class RoleMutationError(ContextAuthError):
    """Role mutation builder was reused after commit."""

    code: str = "ROLE_MUTATION_ERROR"


class TokenError(ContextAuthError):
    """Token could not be issued."""

    code: str = "TOKEN_ERROR"


# ---- Error Registry ---------------------------------------------------------

_E = TypeVar("_E", bound=type[ContextAuthError])


class ErrorRegistry:
    """Registry for mapping error codes to error classes."""

    def __init__(self) -> None:
        self._errors: dict[str, type[ContextAuthError]] = {}

    def register(self, code: str, error_cls: type[ContextAuthError]) -> None:
        self._errors[code] = error_cls

    def get(self, code: str) -> type[ContextAuthError] | None:
        return self._errors.get(code)

    def all(self) -> dict[str, type[ContextAuthError]]:
        return dict(self._errors)


error_registry = ErrorRegistry()


def register_error(code: str) -> Callable[[_E], _E]:
    """Decorator to register a custom error type.

    Usage:
        @register_error("TENANT_LOCKED")
        class TenantLockedError(ContextAuthError):
            code = "TENANT_LOCKED"
    """

    def decorator(cls: _E) -> _E:
        error_registry.register(code, cls)
        return cls

    return cast(Callable[[_E], _E], decorator)


# Register base errors
error_registry.register("INTERNAL_ERROR", ContextAuthError)
error_registry.register("CONFIGURATION_ERROR", ConfigurationError)
error_registry.register("PERMISSION_SCHEMA_ERROR", PermissionSchemaError)
error_registry.register("PERMISSION_VIOLATION", PermissionViolationError)
error_registry.register("ROLE_NOT_FOUND", RoleNotFoundError)
error_registry.register("ROLE_MUTATION_ERROR", RoleMutationError)
error_registry.register("TOKEN_ERROR", TokenError)
