"""Access evaluator over an entity's role assignments.

An ``Access`` is built per resolved session from the permission schema and
the entity's roles (already merged with entity-specific overrides by the
repository). It never touches storage and holds no mutable state, so
``has`` / ``check`` are safe to call concurrently.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable

from .grants import Always, Conditional
from .permission import Permission
from .schema import PermissionSchema

if TYPE_CHECKING:
    from ..roles.role import Role

logger = logging.getLogger(__name__)

DEFAULT_DENIAL_MESSAGE = "Session is missing one, or more access permissions."


class Access:
    """Request-scoped evaluator combining multiple role grants.

    Roles are OR-ed: one satisfied grant is enough. Filters from entity or
    role overrides are unioned, so holding more roles never narrows what an
    entity can see.

    Example::

        access = Access(schema, roles)
        access.has("users", "update")                               # True
        access.has("users", "create", {"tenant_id": "tenant-b"})    # False

        permission = access.check("users", "read")
        permission.filter({"name": "Jane", "email": "j@x", "password": "…"})
        # {"name": "Jane", "email": "j@x"}
    """

    __slots__ = ("_schema", "_assignments")

    def __init__(self, schema: PermissionSchema, assignments: Iterable[Role]) -> None:
        self._schema = schema
        self._assignments = tuple(assignments)

    @property
    def schema(self) -> PermissionSchema:
        return self._schema

    @property
    def assignments(self) -> tuple[Role, ...]:
        return self._assignments

    def has(self, resource: str, action: str, data: Any = None) -> bool:
        """Check if any assignment grants ``action`` on ``resource``.

        Checks in order:
        1. Undeclared resource/action, or no assignment holds it → False
        2. Any assignment holds it unconditionally → True
        3. Conditional holdings: with a schema validator, the holding must
           carry conditions that satisfy ``validate(data, conditions)``;
           without one, holding the action is sufficient
        4. Otherwise → False

        Args:
            resource: Resource name (e.g. ``"users"``).
            action: Action name (e.g. ``"create"``).
            data: Check-time data for validated actions.
        """
        rule = self._schema.rule(resource, action)
        if rule is None:
            return False

        conditional: list[Conditional] = []
        for assignment in self._assignments:
            grant = assignment.permissions.get(resource, {}).get(action)
            if grant is None:
                continue
            if isinstance(grant, Always):
                return True
            conditional.append(grant)

        if not conditional:
            return False

        validator = rule.validator
        if validator is None:
            return True

        for grant in conditional:
            if grant.has_conditions and validator.is_satisfied(data, grant.conditions):
                return True
        return False

    def check(self, resource: str, action: str, data: Any = None) -> Permission:
        """Evaluate ``has`` and wrap the outcome in a :class:`Permission`.

        Denied verdicts carry the schema validator's error message (or a
        generic one); granted verdicts carry the merged attribute filter.
        """
        if not self.has(resource, action, data):
            logger.debug("Denied %s.%s", resource, action)
            return Permission.deny(self._schema.error(resource, action) or DEFAULT_DENIAL_MESSAGE)
        return Permission.allow(self.merged_filter(resource, action))

    def merged_filter(self, resource: str, action: str) -> tuple[str, ...] | None:
        """Attribute filter for a granted action.

        Every assignment carrying an explicit filter contributes its paths to
        a union (first-seen order). When no assignment carries one, the schema
        filter applies; with neither, there is no projection (``None``).
        """
        merged: dict[str, None] = {}
        overridden = False
        for assignment in self._assignments:
            grant = assignment.permissions.get(resource, {}).get(action)
            if isinstance(grant, Conditional) and grant.has_filter:
                overridden = True
                merged.update(dict.fromkeys(grant.filter))

        if overridden:
            return tuple(merged)

        action_filter = self._schema.filter(resource, action)
        return None if action_filter is None else action_filter.attributes


__all__ = ["DEFAULT_DENIAL_MESSAGE", "Access"]
