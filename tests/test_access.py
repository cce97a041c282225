"""Tests for contextauth.permissions.access."""

from __future__ import annotations

import pytest
from pydantic import BaseModel, field_validator

from contextauth import Access, ActionValidator, Permission, PermissionSchema, Role
from contextauth.permissions.access import DEFAULT_DENIAL_MESSAGE

from conftest import CREATE_USER_ERROR


def make_role(permissions: dict, role_id: str = "role", tenant_id: str = "tenant-a") -> Role:
    return Role(role_id=role_id, tenant_id=tenant_id, name=role_id, permissions=permissions)


class TestAccessHas:
    """Grant resolution across roles."""

    def test_boolean_gate(self, schema: PermissionSchema) -> None:
        access = Access(schema, [make_role({"users": {"update": True}})])
        assert access.has("users", "update") is True
        assert access.has("users", "delete") is False

    def test_no_roles(self, schema: PermissionSchema) -> None:
        access = Access(schema, [])
        assert access.has("users", "update") is False

    def test_undeclared_action_is_denied(self, schema: PermissionSchema) -> None:
        access = Access(schema, [make_role({"users": {"archive": True}, "orders": {"read": True}})])
        assert access.has("users", "archive") is False
        assert access.has("orders", "read") is False

    def test_validator_conditions(self, schema: PermissionSchema) -> None:
        access = Access(schema, [make_role({"users": {"create": {"conditions": {"tenant_id": "tenant-a"}}}})])
        assert access.has("users", "create", {"tenant_id": "tenant-a"}) is True
        assert access.has("users", "create", {"tenant_id": "tenant-b"}) is False

    def test_validator_rejects_invalid_data(self, schema: PermissionSchema) -> None:
        access = Access(schema, [make_role({"users": {"create": {"conditions": {"tenant_id": "tenant-a"}}}})])
        assert access.has("users", "create") is False
        assert access.has("users", "create", {"tenant": "tenant-a"}) is False

    def test_validator_rejects_invalid_conditions(self, schema: PermissionSchema) -> None:
        access = Access(schema, [make_role({"users": {"create": {"conditions": {"tenant": "tenant-a"}}}})])
        assert access.has("users", "create", {"tenant_id": "tenant-a"}) is False

    def test_roles_are_or_ed(self, schema: PermissionSchema) -> None:
        access = Access(
            schema,
            [
                make_role({"users": {"create": {"conditions": {"tenant_id": "tenant-a"}}}}, role_id="a"),
                make_role({"users": {"create": {"conditions": {"tenant_id": "tenant-b"}}}}, role_id="b"),
            ],
        )
        assert access.has("users", "create", {"tenant_id": "tenant-a"}) is True
        assert access.has("users", "create", {"tenant_id": "tenant-b"}) is True
        assert access.has("users", "create", {"tenant_id": "tenant-c"}) is False

    def test_unconditional_grant_skips_validator(self, schema: PermissionSchema) -> None:
        access = Access(
            schema,
            [
                make_role({"users": {"create": {"conditions": {"tenant_id": "tenant-a"}}}}, role_id="a"),
                make_role({"users": {"create": True}}, role_id="b"),
            ],
        )
        assert access.has("users", "create", {"tenant_id": "tenant-z"}) is True
        assert access.has("users", "create") is True

    def test_validated_action_needs_conditions(self, schema: PermissionSchema) -> None:
        access = Access(schema, [make_role({"users": {"create": {"filter": ["name"]}}})])
        assert access.has("users", "create", {"tenant_id": "tenant-a"}) is False

    def test_conditional_grant_without_validator(self, schema: PermissionSchema) -> None:
        access = Access(schema, [make_role({"users": {"read": {"filter": ["name"]}, "update": {"conditions": {}}}})])
        assert access.has("users", "read") is True
        assert access.has("users", "update") is True

    def test_validator_error_is_denial(self) -> None:
        def explode(data, conditions):
            raise KeyError("tenant_id")

        schema = PermissionSchema({"users": {"create": ActionValidator(validate=explode)}})
        access = Access(schema, [make_role({"users": {"create": {"conditions": {}}}})])
        assert access.has("users", "create", {}) is False

    def test_data_parsing_error_is_denial(self) -> None:
        class StrictAccount(BaseModel):
            account_id: str

            @field_validator("account_id")
            @classmethod
            def alphanumeric(cls, value: str) -> str:
                if not value.isalnum():
                    raise TypeError("account_id must be alphanumeric")
                return value

        validator = ActionValidator(data=StrictAccount, validate=lambda data, conditions: True)
        schema = PermissionSchema({"account": {"read": validator}})
        access = Access(schema, [make_role({"account": {"read": {"conditions": {}}}})])
        assert access.has("account", "read", {"account_id": "a-b"}) is False
        assert access.has("account", "read", {"account_id": "ab1"}) is True

    def test_repeated_calls_are_stable(self, schema: PermissionSchema) -> None:
        access = Access(schema, [make_role({"users": {"create": {"conditions": {"tenant_id": "tenant-a"}}}})])
        results = {access.has("users", "create", {"tenant_id": "tenant-a"}) for _ in range(5)}
        assert results == {True}


class TestAccessCheck:
    """Permission verdicts and filters."""

    def test_denied_with_validator_error(self, schema: PermissionSchema) -> None:
        access = Access(schema, [make_role({"users": {"create": {"conditions": {"tenant_id": "tenant-a"}}}})])
        permission = access.check("users", "create", {"tenant_id": "tenant-b"})
        assert permission.granted is False
        assert permission.message == CREATE_USER_ERROR
        assert permission.attributes is None

    def test_denied_with_default_message(self, schema: PermissionSchema) -> None:
        permission = Access(schema, []).check("account", "read")
        assert permission == Permission(granted=False, message=DEFAULT_DENIAL_MESSAGE)

    def test_granted_without_filter(self, schema: PermissionSchema) -> None:
        permission = Access(schema, [make_role({"users": {"update": True}})]).check("users", "update")
        assert permission.granted is True
        assert permission.attributes is None
        assert permission.filter({"name": "Jane", "password": "x"}) == {"name": "Jane", "password": "x"}

    def test_schema_filter(self, schema: PermissionSchema) -> None:
        permission = Access(schema, [make_role({"users": {"read": True}})]).check("users", "read")
        assert permission.attributes == ("name", "email")
        assert permission.filter({"name": "Jane", "email": "jane@example.test", "password": "x"}) == {
            "name": "Jane",
            "email": "jane@example.test",
        }

    def test_override_replaces_schema_filter(self, schema: PermissionSchema) -> None:
        access = Access(schema, [make_role({"users": {"read": {"filter": ["name"]}}})])
        assert access.check("users", "read").attributes == ("name",)

    def test_override_filters_are_unioned(self, schema: PermissionSchema) -> None:
        access = Access(
            schema,
            [
                make_role({"users": {"read": {"filter": ["name", "id"]}}}, role_id="a"),
                make_role({"users": {"read": True}}, role_id="b"),
                make_role({"users": {"read": {"filter": ["email", "name"]}}}, role_id="c"),
            ],
        )
        assert access.merged_filter("users", "read") == ("name", "id", "email")

    def test_union_filter_law(self) -> None:
        schema = PermissionSchema({"docs": ["read"]})
        access = Access(
            schema,
            [
                make_role({"docs": {"read": {"filter": ["a"]}}}, role_id="x"),
                make_role({"docs": {"read": {"filter": ["a", "b"]}}}, role_id="y"),
            ],
        )
        permission = access.check("docs", "read")
        assert set(permission.attributes) == {"a", "b"}
        assert permission.filter({"a": 1, "b": 2, "c": 3}) == {"a": 1, "b": 2}

    def test_roles_combined_per_action(self, schema: PermissionSchema) -> None:
        access = Access(
            schema,
            [
                make_role({"account": {"read": True}}, role_id="a"),
                make_role({"users": {"update": True}}, role_id="b"),
            ],
        )
        assert access.check("account", "read").granted is True
        assert access.check("account", "create").granted is False

    def test_empty_override_filter(self, schema: PermissionSchema) -> None:
        access = Access(schema, [make_role({"users": {"read": {"filter": []}}})])
        permission = access.check("users", "read")
        assert permission.attributes == ()
        assert permission.filter({"name": "Jane"}) == {}

    @pytest.mark.parametrize("resource,action", [("users", "update"), ("orders", "read")])
    def test_merged_filter_without_filters(self, schema: PermissionSchema, resource: str, action: str) -> None:
        assert Access(schema, []).merged_filter(resource, action) is None
