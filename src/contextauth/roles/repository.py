"""Role repository interface.

Persistence is owned by the host application. contextauth only depends on
the ``RoleRepository`` protocol below; ``InMemoryRoleRepository`` in
``contextauth.roles.memory`` is the reference implementation.

Contract highlights:
- ``get_roles`` / ``get_roles_by_entity_id`` return roles already merged
  with the entity's assignment overrides (``apply_entity_overrides``).
- ``set_permissions`` applies a batch atomically per role and raises
  ``RoleNotFoundError`` for unknown roles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, Protocol, runtime_checkable

from ..permissions.grants import RolePermissions

if TYPE_CHECKING:
    from .role import Operation, Role

EntityConditions = dict[str, dict[str, Any]]
"""resource → action → conditions"""

EntityFilters = dict[str, dict[str, list[str]]]
"""resource → action → attribute paths"""


@dataclass(frozen=True)
class RolePayload:
    """Data needed to create a role."""

    tenant_id: str
    name: str
    permissions: dict[str, dict[str, Any]] = field(default_factory=dict)


@dataclass(frozen=True)
class EntityAssignment:
    """Link between one role and one entity, with optional overrides."""

    role_id: str
    entity_id: str
    conditions: EntityConditions = field(default_factory=dict)
    filters: EntityFilters = field(default_factory=dict)


@runtime_checkable
class RoleRepository(Protocol):
    """Storage for roles and entity assignments."""

    async def add_role(self, payload: RolePayload) -> Role: ...

    async def get_role(self, role_id: str) -> Optional[Role]: ...

    async def get_roles(self, tenant_id: str, entity_id: str) -> list[Role]:
        """Roles assigned to ``entity_id`` under ``tenant_id``, merged with overrides."""
        ...

    async def get_roles_by_tenant_id(self, tenant_id: str) -> list[Role]: ...

    async def get_roles_by_entity_id(self, entity_id: str) -> list[Role]:
        """Roles assigned to ``entity_id`` in any tenant, merged with overrides."""
        ...

    async def del_role(self, role_id: str) -> None: ...

    async def add_entity(
        self,
        role_id: str,
        entity_id: str,
        conditions: Optional[EntityConditions] = None,
        filters: Optional[EntityFilters] = None,
    ) -> None: ...

    async def set_conditions(self, role_id: str, entity_id: str, conditions: EntityConditions) -> None: ...

    async def set_filters(self, role_id: str, entity_id: str, filters: EntityFilters) -> None: ...

    async def del_entity(self, role_id: str, entity_id: str) -> None: ...

    async def set_permissions(self, role_id: str, operations: list[Operation]) -> RolePermissions:
        """Apply grant/deny operations atomically and return the new permissions.

        Raises:
            RoleNotFoundError: If the role does not exist.
        """
        ...


__all__ = [
    "EntityAssignment",
    "EntityConditions",
    "EntityFilters",
    "RolePayload",
    "RoleRepository",
]
