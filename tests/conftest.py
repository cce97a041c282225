"""Shared fixtures: signing keys, settings, permission schema, repositories."""

from __future__ import annotations

import logging

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from pydantic import BaseModel

from contextauth import (
    ActionFilter,
    ActionValidator,
    AuthLogFormatter,
    AuthSettings,
    InMemoryRoleRepository,
    PermissionSchema,
)

ISSUER = "https://auth.example.test"
AUDIENCE = "https://api.example.test"
SHARED_SECRET = "a-shared-secret-that-is-long-enough-for-hs256-signing-0123456789"

CREATE_USER_ERROR = "You do not have required permissions to add new users to this tenant."


def _rsa_pem_pair() -> tuple[str, str]:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_pem = key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    return private_pem, public_pem


class TenantScope(BaseModel):
    tenant_id: str


def same_tenant(data: TenantScope, conditions: TenantScope) -> bool:
    return data.tenant_id == conditions.tenant_id


@pytest.fixture(scope="session")
def rsa_keys() -> tuple[str, str]:
    return _rsa_pem_pair()


@pytest.fixture(scope="session")
def other_rsa_keys() -> tuple[str, str]:
    return _rsa_pem_pair()


@pytest.fixture
def settings(rsa_keys: tuple[str, str]) -> AuthSettings:
    private_pem, public_pem = rsa_keys
    return AuthSettings(
        private_key=private_pem,
        public_key=public_pem,
        issuer=ISSUER,
        audience=AUDIENCE,
    )


@pytest.fixture
def hmac_settings() -> AuthSettings:
    return AuthSettings(algorithm="HS256", shared_secret=SHARED_SECRET, issuer=ISSUER, audience=AUDIENCE)


@pytest.fixture
def schema() -> PermissionSchema:
    return PermissionSchema(
        {
            "users": {
                "create": ActionValidator(
                    data=TenantScope,
                    conditions=TenantScope,
                    validate=same_tenant,
                    error=CREATE_USER_ERROR,
                ),
                "read": ActionFilter(["name", "email"]),
                "update": True,
                "delete": True,
            },
            "account": ["create", "read", "update", "delete"],
        }
    )


@pytest.fixture
def repository() -> InMemoryRoleRepository:
    return InMemoryRoleRepository()


@pytest.fixture
def restore_root_logger():
    """Undo handler and level changes made by setup_logging."""
    root = logging.getLogger()
    level = root.level
    yield root
    for handler in root.handlers[:]:
        if isinstance(handler.formatter, AuthLogFormatter):
            root.removeHandler(handler)
    root.setLevel(level)
