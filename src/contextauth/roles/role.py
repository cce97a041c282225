"""Roles and role permission mutations.

A ``Role`` is an immutable snapshot of what a tenant-scoped role grants.
Changes go through a ``RoleMutation`` builder which batches grant/deny
operations and sends them to the repository on ``commit()``; the result is a
new ``Role`` instance, the original is never modified.

Example::

    role = await repository.add_role(RolePayload(tenant_id="t", name="admin"))
    role = await role.grant("users", "read").grant("users", "update").commit()
    role = await role.deny("users").commit()  # drop every users action
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping, Optional, Union

from ..exceptions import RoleMutationError
from ..permissions.grants import (
    Always,
    Conditional,
    Grant,
    RolePermissions,
    copy_permissions,
    dump_permissions,
    parse_grant,
)

if TYPE_CHECKING:
    from .repository import EntityAssignment, EntityConditions, EntityFilters, RoleRepository

logger = logging.getLogger(__name__)


# ── Operations ───────────────────────────────────────────────────


@dataclass(frozen=True)
class SetOperation:
    """Grant ``action`` on ``resource``; ``data`` is the stored grant value."""

    resource: str
    action: str
    data: Any = None
    type: str = field(default="set", init=False)


@dataclass(frozen=True)
class UnsetOperation:
    """Remove ``action`` from ``resource``, or the whole resource when no action."""

    resource: str
    action: Optional[str] = None
    type: str = field(default="unset", init=False)


Operation = Union[SetOperation, UnsetOperation]


def apply_operations(permissions: Mapping[str, Mapping[str, Any]], operations: list[Operation]) -> RolePermissions:
    """Apply a batch of operations, in order, to a copy of ``permissions``."""
    result = copy_permissions(permissions)
    for operation in operations:
        if isinstance(operation, SetOperation):
            result.setdefault(operation.resource, {})[operation.action] = parse_grant(operation.data)
        elif isinstance(operation, UnsetOperation):
            if operation.action is None:
                result.pop(operation.resource, None)
                continue
            actions = result.get(operation.resource)
            if actions is None:
                continue
            actions.pop(operation.action, None)
            if not actions:
                del result[operation.resource]
        else:
            raise TypeError(f"Unknown operation: {operation!r}")
    return result


def apply_entity_overrides(permissions: Mapping[str, Mapping[str, Any]], assignment: EntityAssignment) -> RolePermissions:
    """Fold an entity's condition and filter overrides into a role's permissions.

    Overrides replace the entry's conditions or filter. Entries that did not
    exist are created; unconditional entries become conditional.
    """
    result = copy_permissions(permissions)

    def _entry(resource: str, action: str) -> Conditional:
        current = result.setdefault(resource, {}).get(action)
        if current is None or isinstance(current, Always):
            return Conditional()
        return current

    for resource, actions in (assignment.conditions or {}).items():
        for action, conditions in actions.items():
            entry = _entry(resource, action)
            result[resource][action] = dataclasses.replace(entry, conditions=parse_grant({"conditions": conditions}).conditions)

    for resource, actions in (assignment.filters or {}).items():
        for action, paths in actions.items():
            entry = _entry(resource, action)
            result[resource][action] = dataclasses.replace(entry, filter=parse_grant({"filter": paths}).filter)

    return result


# ── Role ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Role:
    """Named, tenant-scoped bundle of granted actions.

    Attributes:
        role_id: Repository assigned identifier.
        tenant_id: Tenant the role belongs to.
        name: Display name.
        permissions: resource → action → Grant.
        repository: Repository used by mutations (not part of equality).
    """

    role_id: str
    tenant_id: str
    name: str
    permissions: Mapping[str, Mapping[str, Grant]] = field(default_factory=dict)
    repository: Optional[RoleRepository] = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        # Read-only at both levels; copy_permissions() gives a writable copy.
        permissions = MappingProxyType(
            {
                resource: MappingProxyType({action: parse_grant(value) for action, value in actions.items()})
                for resource, actions in (self.permissions or {}).items()
            }
        )
        object.__setattr__(self, "permissions", permissions)

    # -- Mutations --------------------------------------------------------

    def mutate(self) -> RoleMutation:
        """Start an empty mutation batch for this role."""
        return RoleMutation(self)

    def grant(self, resource: str, action: str, data: Any = None) -> RoleMutation:
        """Start a mutation batch with a grant. See :meth:`RoleMutation.grant`."""
        return RoleMutation(self).grant(resource, action, data)

    def deny(self, resource: str, action: Optional[str] = None) -> RoleMutation:
        """Start a mutation batch with a denial. See :meth:`RoleMutation.deny`."""
        return RoleMutation(self).deny(resource, action)

    def update(self, **changes: Any) -> Role:
        """Return a copy of this role with ``changes`` applied."""
        return dataclasses.replace(self, **changes)

    # -- Entity assignments ----------------------------------------------

    async def add_entity(
        self,
        entity_id: str,
        conditions: Optional[EntityConditions] = None,
        filters: Optional[EntityFilters] = None,
    ) -> None:
        await self._repository.add_entity(self.role_id, entity_id, conditions=conditions, filters=filters)

    async def set_conditions(self, entity_id: str, conditions: EntityConditions) -> None:
        await self._repository.set_conditions(self.role_id, entity_id, conditions)

    async def set_filters(self, entity_id: str, filters: EntityFilters) -> None:
        await self._repository.set_filters(self.role_id, entity_id, filters)

    async def del_entity(self, entity_id: str) -> None:
        await self._repository.del_entity(self.role_id, entity_id)

    # -- Serialization ---------------------------------------------------

    def to_json(self) -> dict[str, Any]:
        return {
            "role_id": self.role_id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "permissions": dump_permissions(self.permissions),
        }

    @property
    def _repository(self) -> RoleRepository:
        if self.repository is None:
            raise RoleMutationError(f"Role '{self.role_id}' is not bound to a repository", role_id=self.role_id)
        return self.repository


class RoleMutation:
    """Batch of grant/deny operations for one role, committed once.

    ``grant`` and ``deny`` only record operations; nothing is written until
    :meth:`commit`. Operations apply in submission order, so a later grant
    of the same resource/action overwrites an earlier one.

    Concurrent commits against the same role are last-write-wins unless the
    repository adds its own locking.
    """

    def __init__(self, role: Role) -> None:
        self._role = role
        self._operations: list[Operation] = []
        self._committed = False

    @property
    def role(self) -> Role:
        return self._role

    @property
    def operations(self) -> list[Operation]:
        """Recorded operations (copy)."""
        return list(self._operations)

    def grant(self, resource: str, action: str, data: Any = None) -> RoleMutation:
        """Grant ``action`` on ``resource``.

        Args:
            resource: Resource to grant action for.
            action: Action to grant for the resource.
            data: ``None`` for an unconditional grant, or a mapping with
                ``conditions`` and/or ``filter`` (or a ``Conditional``).
        """
        self._ensure_open()
        parse_grant(data)  # reject malformed values before commit
        self._operations.append(SetOperation(resource, action, data))
        return self

    def deny(self, resource: str, action: Optional[str] = None) -> RoleMutation:
        """Remove ``action`` from ``resource``, or the whole resource if no action."""
        self._ensure_open()
        self._operations.append(UnsetOperation(resource, action))
        return self

    async def commit(self) -> Role:
        """Send the batch to the repository and return the updated role."""
        self._ensure_open()
        permissions = await self._role._repository.set_permissions(self._role.role_id, list(self._operations))
        self._committed = True
        logger.debug("Committed %d operation(s) on role %s", len(self._operations), self._role.role_id)
        return self._role.update(permissions=permissions)

    def _ensure_open(self) -> None:
        if self._committed:
            raise RoleMutationError(
                f"Mutation for role '{self._role.role_id}' was already committed",
                role_id=self._role.role_id,
            )


__all__ = [
    "Operation",
    "Role",
    "RoleMutation",
    "SetOperation",
    "UnsetOperation",
    "apply_entity_overrides",
    "apply_operations",
]
