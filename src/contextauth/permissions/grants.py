"""Grant values stored on roles.

A role grants an action either unconditionally or conditionally::

    Grant = Always | Conditional(conditions?, filter?)

Stored (JSON) form, as persisted by repositories::

    {"users": {"update": True,
               "create": {"conditions": {"tenant_id": "tenant-a"}},
               "read": {"filter": ["name", "email"]}}}
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Union

from pydantic import BaseModel


@dataclass(frozen=True)
class Always:
    """Unconditional grant."""

    def __repr__(self) -> str:
        return "Always()"


@dataclass(frozen=True)
class Conditional:
    """Grant that defers to the schema validator and/or carries a filter.

    Attributes:
        conditions: Conditions passed to the action validator (``None`` when
            the grant only carries a filter).
        filter: Attribute paths overriding the schema filter.
    """

    conditions: Any = None
    filter: tuple[str, ...] | None = None

    @property
    def has_conditions(self) -> bool:
        return self.conditions is not None

    @property
    def has_filter(self) -> bool:
        return self.filter is not None


Grant = Union[Always, Conditional]
RolePermissions = dict[str, dict[str, Grant]]

ALWAYS = Always()


def parse_grant(value: Any) -> Grant:
    """Normalise a stored or user supplied grant value.

    Accepts ``True``, ``None`` (same as ``True``), :class:`Always`,
    :class:`Conditional`, or a mapping with ``conditions`` and/or ``filter``.
    """
    if value is True or value is None or isinstance(value, Always):
        return ALWAYS
    if isinstance(value, Conditional):
        return value
    if isinstance(value, Mapping):
        unknown = set(value) - {"conditions", "filter"}
        if unknown:
            raise ValueError(f"Unknown grant keys: {sorted(unknown)}")
        return Conditional(
            conditions=_plain(value.get("conditions")),
            filter=_paths(value.get("filter")),
        )
    raise ValueError(f"Invalid grant value: {value!r}")


def dump_grant(grant: Grant) -> Any:
    """Return the stored form of a grant: ``True`` or a dict."""
    if isinstance(grant, Always):
        return True
    data: dict[str, Any] = {}
    if grant.conditions is not None:
        data["conditions"] = grant.conditions
    if grant.filter is not None:
        data["filter"] = list(grant.filter)
    return data


def parse_permissions(raw: Mapping[str, Mapping[str, Any]] | None) -> RolePermissions:
    """Parse a stored permissions mapping into grants."""
    result: RolePermissions = {}
    for resource, actions in (raw or {}).items():
        result[resource] = {action: parse_grant(value) for action, value in actions.items()}
    return result


def dump_permissions(permissions: Mapping[str, Mapping[str, Grant]]) -> dict[str, dict[str, Any]]:
    return {
        resource: {action: dump_grant(grant) for action, grant in actions.items()}
        for resource, actions in permissions.items()
    }


def copy_permissions(permissions: Mapping[str, Mapping[str, Grant]]) -> RolePermissions:
    """Shallow copy both levels; grants themselves are immutable."""
    return {resource: dict(actions) for resource, actions in permissions.items()}


def _plain(conditions: Any) -> Any:
    if isinstance(conditions, BaseModel):
        return conditions.model_dump(mode="json")
    return conditions


def _paths(paths: Iterable[str] | None) -> tuple[str, ...] | None:
    if paths is None:
        return None
    if isinstance(paths, str):
        raise ValueError("Grant filter must be a list of attribute paths, not a string")
    return tuple(paths)


__all__ = [
    "ALWAYS",
    "Always",
    "Conditional",
    "Grant",
    "RolePermissions",
    "copy_permissions",
    "dump_grant",
    "dump_permissions",
    "parse_grant",
    "parse_permissions",
]
