"""In-process role repository.

Keeps roles and entity assignments in dictionaries. Suitable for tests,
single-process services and as a template for real storage backends.

Thread-safe: every method runs under one lock, which makes
``set_permissions`` an atomic read-modify-write per role. Concurrent
commits on the same role are still last-write-wins.
"""

from __future__ import annotations

import logging
import secrets
import threading
from typing import Optional

from ..exceptions import PermissionViolationError, RoleNotFoundError
from ..permissions.grants import RolePermissions, parse_permissions
from .repository import EntityAssignment, EntityConditions, EntityFilters, RolePayload
from .role import Operation, Role, apply_entity_overrides, apply_operations

logger = logging.getLogger(__name__)


class InMemoryRoleRepository:
    """Dictionary backed :class:`~contextauth.roles.repository.RoleRepository`."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._roles: dict[str, Role] = {}
        # (role_id, entity_id) → assignment, in insertion order
        self._entities: dict[tuple[str, str], EntityAssignment] = {}

    # ── Roles ────────────────────────────────────────────────────

    async def add_role(self, payload: RolePayload) -> Role:
        role = Role(
            role_id=secrets.token_urlsafe(12),
            tenant_id=payload.tenant_id,
            name=payload.name,
            permissions=parse_permissions(payload.permissions),
            repository=self,
        )
        with self._lock:
            self._roles[role.role_id] = role
        logger.info("Added role %s (%s) to tenant %s", role.role_id, role.name, role.tenant_id)
        return role

    async def get_role(self, role_id: str) -> Optional[Role]:
        with self._lock:
            return self._roles.get(role_id)

    async def get_roles(self, tenant_id: str, entity_id: str) -> list[Role]:
        with self._lock:
            return [
                self._merged(assignment)
                for assignment in self._entities.values()
                if assignment.entity_id == entity_id and self._roles[assignment.role_id].tenant_id == tenant_id
            ]

    async def get_roles_by_tenant_id(self, tenant_id: str) -> list[Role]:
        with self._lock:
            return [role for role in self._roles.values() if role.tenant_id == tenant_id]

    async def get_roles_by_entity_id(self, entity_id: str) -> list[Role]:
        with self._lock:
            return [self._merged(assignment) for assignment in self._entities.values() if assignment.entity_id == entity_id]

    async def del_role(self, role_id: str) -> None:
        with self._lock:
            if self._roles.pop(role_id, None) is None:
                raise RoleNotFoundError(role_id, action="delete role")
            for key in [key for key in self._entities if key[0] == role_id]:
                del self._entities[key]

    async def set_permissions(self, role_id: str, operations: list[Operation]) -> RolePermissions:
        with self._lock:
            role = self._roles.get(role_id)
            if role is None:
                raise RoleNotFoundError(role_id)
            permissions = apply_operations(role.permissions, operations)
            self._roles[role_id] = role.update(permissions=permissions)
            return self._roles[role_id].permissions

    # ── Entities ─────────────────────────────────────────────────

    async def add_entity(
        self,
        role_id: str,
        entity_id: str,
        conditions: Optional[EntityConditions] = None,
        filters: Optional[EntityFilters] = None,
    ) -> None:
        with self._lock:
            if role_id not in self._roles:
                raise RoleNotFoundError(role_id, action="add entity")
            if (role_id, entity_id) in self._entities:
                raise PermissionViolationError(
                    f"Permission Violation: Entity '{entity_id}' is already assigned to role '{role_id}'.",
                    role_id=role_id,
                    entity_id=entity_id,
                )
            self._store(
                EntityAssignment(
                    role_id=role_id,
                    entity_id=entity_id,
                    conditions=dict(conditions or {}),
                    filters=dict(filters or {}),
                )
            )

    async def set_conditions(self, role_id: str, entity_id: str, conditions: EntityConditions) -> None:
        self._replace(role_id, entity_id, conditions=dict(conditions))

    async def set_filters(self, role_id: str, entity_id: str, filters: EntityFilters) -> None:
        self._replace(role_id, entity_id, filters=dict(filters))

    async def del_entity(self, role_id: str, entity_id: str) -> None:
        with self._lock:
            self._entities.pop((role_id, entity_id), None)

    async def get_entity(self, role_id: str, entity_id: str) -> Optional[EntityAssignment]:
        with self._lock:
            return self._entities.get((role_id, entity_id))

    # ── Internals ────────────────────────────────────────────────

    def _replace(self, role_id: str, entity_id: str, **changes) -> None:
        with self._lock:
            current = self._entities.get((role_id, entity_id))
            if current is None:
                raise PermissionViolationError(
                    f"Permission Violation: Entity '{entity_id}' is not assigned to role '{role_id}'.",
                    role_id=role_id,
                    entity_id=entity_id,
                )
            self._store(
                EntityAssignment(
                    role_id=role_id,
                    entity_id=entity_id,
                    conditions=changes.get("conditions", current.conditions),
                    filters=changes.get("filters", current.filters),
                )
            )

    def _store(self, assignment: EntityAssignment) -> None:
        # Malformed overrides raise ValueError here, before anything is stored.
        apply_entity_overrides(self._roles[assignment.role_id].permissions, assignment)
        self._entities[(assignment.role_id, assignment.entity_id)] = assignment

    def _merged(self, assignment: EntityAssignment) -> Role:
        role = self._roles[assignment.role_id]
        if not assignment.conditions and not assignment.filters:
            return role
        return role.update(permissions=apply_entity_overrides(role.permissions, assignment))


__all__ = ["InMemoryRoleRepository"]
