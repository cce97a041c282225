"""Permission schema: resources → actions → validator and/or filter.

A schema is declared once at startup and never changes. Each action is
one of:

- ``True``: boolean gate, granted whenever a role holds the action.
- :class:`ActionValidator`: conditional grant, the role stores
  ``conditions`` and callers supply ``data`` at check time.
- :class:`ActionFilter`: attribute allowlist applied to granted payloads.
- :class:`ActionRule`: validator and filter together.

Example::

    class TenantScope(BaseModel):
        tenant_id: str

    schema = PermissionSchema({
        "users": {
            "create": ActionValidator(
                data=TenantScope,
                conditions=TenantScope,
                validate=lambda data, conditions: data.tenant_id == conditions.tenant_id,
                error="You do not have required permissions to add new users to this tenant.",
            ),
            "read": ActionFilter(["name", "email"]),
            "update": True,
            "delete": True,
        },
        "account": ["create", "read", "update", "delete"],
    })
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Callable, Iterable, Mapping, Union

from pydantic import TypeAdapter, ValidationError

from ..exceptions import PermissionSchemaError

logger = logging.getLogger(__name__)

ValidateFn = Callable[[Any, Any], bool]


@dataclass(frozen=True)
class ActionValidator:
    """Condition under which a conditional action grant is satisfied.

    Attributes:
        data: Schema of the data supplied at check time (pydantic model or
            any type ``TypeAdapter`` accepts). ``None`` passes data through.
        conditions: Schema of the conditions stored on the role.
        validate: Pure function ``(data, conditions) -> bool``.
        error: Denial message used when no assignment satisfies the validator.
    """

    validate: ValidateFn
    data: Any = None
    conditions: Any = None
    error: str | None = None

    @cached_property
    def _data_adapter(self) -> TypeAdapter | None:
        return None if self.data is None else TypeAdapter(self.data)

    @cached_property
    def _conditions_adapter(self) -> TypeAdapter | None:
        return None if self.conditions is None else TypeAdapter(self.conditions)

    def is_satisfied(self, data: Any, conditions: Any) -> bool:
        """Parse both sides and run ``validate``. Never raises.

        Data or conditions that do not match their schemas, and validators
        that raise, count as not satisfied.
        """
        try:
            parsed_data = data if self._data_adapter is None else self._data_adapter.validate_python(data)
            parsed_conditions = (
                conditions if self._conditions_adapter is None else self._conditions_adapter.validate_python(conditions)
            )
        except ValidationError as e:
            logger.debug("Validator input rejected: %d error(s)", e.error_count())
            return False
        except Exception as e:
            logger.warning("Validator input parsing raised %s, treating as not satisfied", type(e).__name__)
            return False
        try:
            return self.validate(parsed_data, parsed_conditions) is True
        except Exception as e:
            logger.warning("Action validator raised %s, treating as not satisfied", type(e).__name__)
            return False


@dataclass(frozen=True)
class ActionFilter:
    """Ordered allowlist of dot-notation attribute paths."""

    attributes: tuple[str, ...] = field(default_factory=tuple)

    def __init__(self, attributes: Iterable[str]) -> None:
        object.__setattr__(self, "attributes", tuple(attributes))


@dataclass(frozen=True)
class ActionRule:
    """Schema entry for a single action: optional validator, optional filter."""

    validator: ActionValidator | None = None
    filter: ActionFilter | None = None

    @property
    def is_gate(self) -> bool:
        """True when the action is a plain boolean gate."""
        return self.validator is None and self.filter is None


ActionDeclaration = Union[bool, ActionValidator, ActionFilter, ActionRule, Mapping[str, Any]]

_GATE = ActionRule()


class PermissionSchema:
    """Immutable registry of declared actions keyed by ``(resource, action)``.

    Declarations are validated and normalised at construction;
    malformed declarations raise :class:`PermissionSchemaError`.
    """

    def __init__(self, declarations: Mapping[str, Mapping[str, ActionDeclaration] | Iterable[str]]) -> None:
        if not isinstance(declarations, Mapping):
            raise PermissionSchemaError("Permission schema must be a mapping of resources")

        rules: dict[tuple[str, str], ActionRule] = {}
        resources: dict[str, tuple[str, ...]] = {}

        for resource, actions in declarations.items():
            if not isinstance(resource, str) or not resource:
                raise PermissionSchemaError(f"Invalid resource name: {resource!r}")
            if isinstance(actions, Mapping):
                items = list(actions.items())
            elif isinstance(actions, (list, tuple, set, frozenset)):
                items = [(action, True) for action in actions]
            else:
                raise PermissionSchemaError(
                    f"Resource '{resource}' must map to actions, got {type(actions).__name__}",
                    resource=resource,
                )

            names = []
            for action, declaration in items:
                if not isinstance(action, str) or not action:
                    raise PermissionSchemaError(f"Invalid action name on '{resource}': {action!r}", resource=resource)
                rules[(resource, action)] = _normalize(resource, action, declaration)
                names.append(action)
            resources[resource] = tuple(names)

        self._rules = rules
        self._resources = resources

    def __contains__(self, key: object) -> bool:
        return key in self._rules

    def __repr__(self) -> str:
        return f"PermissionSchema(resources={list(self._resources)!r})"

    def resources(self) -> tuple[str, ...]:
        return tuple(self._resources)

    def actions(self, resource: str) -> tuple[str, ...]:
        return self._resources.get(resource, ())

    def declares(self, resource: str, action: str) -> bool:
        return (resource, action) in self._rules

    def rule(self, resource: str, action: str) -> ActionRule | None:
        return self._rules.get((resource, action))

    def validator(self, resource: str, action: str) -> ActionValidator | None:
        rule = self._rules.get((resource, action))
        return None if rule is None else rule.validator

    def filter(self, resource: str, action: str) -> ActionFilter | None:
        rule = self._rules.get((resource, action))
        return None if rule is None else rule.filter

    def error(self, resource: str, action: str) -> str | None:
        validator = self.validator(resource, action)
        return None if validator is None else validator.error


def _normalize(resource: str, action: str, declaration: Any) -> ActionRule:
    if declaration is True:
        return _GATE
    if isinstance(declaration, ActionRule):
        rule = declaration
    elif isinstance(declaration, ActionValidator):
        rule = ActionRule(validator=declaration)
    elif isinstance(declaration, ActionFilter):
        rule = ActionRule(filter=declaration)
    elif isinstance(declaration, Mapping):
        unknown = set(declaration) - {"validator", "filter"}
        if unknown:
            raise PermissionSchemaError(
                f"Unknown keys {sorted(unknown)} on '{resource}.{action}'",
                resource=resource,
                action=action,
            )
        validator = declaration.get("validator")
        action_filter = declaration.get("filter")
        if isinstance(action_filter, (list, tuple)):
            action_filter = ActionFilter(action_filter)
        rule = ActionRule(validator=validator, filter=action_filter)
    else:
        raise PermissionSchemaError(
            f"Invalid declaration for '{resource}.{action}': {type(declaration).__name__}",
            resource=resource,
            action=action,
        )

    if rule.validator is not None:
        if not isinstance(rule.validator, ActionValidator) or not callable(rule.validator.validate):
            raise PermissionSchemaError(f"'{resource}.{action}' validator must be an ActionValidator")
    if rule.filter is not None:
        if not isinstance(rule.filter, ActionFilter):
            raise PermissionSchemaError(f"'{resource}.{action}' filter must be an ActionFilter")
        for path in rule.filter.attributes:
            if not isinstance(path, str) or not path or "" in path.split("."):
                raise PermissionSchemaError(f"Invalid filter path on '{resource}.{action}': {path!r}")
    return rule


__all__ = [
    "ActionDeclaration",
    "ActionFilter",
    "ActionRule",
    "ActionValidator",
    "PermissionSchema",
]
