"""Roles, entity assignments and role storage."""

from .memory import InMemoryRoleRepository
from .repository import EntityAssignment, EntityConditions, EntityFilters, RolePayload, RoleRepository
from .role import (
    Operation,
    Role,
    RoleMutation,
    SetOperation,
    UnsetOperation,
    apply_entity_overrides,
    apply_operations,
)

__all__ = [
    "EntityAssignment",
    "EntityConditions",
    "EntityFilters",
    "InMemoryRoleRepository",
    "Operation",
    "Role",
    "RoleMutation",
    "RolePayload",
    "RoleRepository",
    "SetOperation",
    "UnsetOperation",
    "apply_entity_overrides",
    "apply_operations",
]
