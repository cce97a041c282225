"""Permission schema, grants and access evaluation.

Defines:
- PermissionSchema: resource → action → validator/filter declarations
- Grant (Always | Conditional): what a role holds for an action
- Access: evaluator over an entity's roles
- Permission: grant/deny verdict with attribute projection
"""

from .access import DEFAULT_DENIAL_MESSAGE, Access
from .grants import (
    ALWAYS,
    Always,
    Conditional,
    Grant,
    RolePermissions,
    dump_grant,
    dump_permissions,
    parse_grant,
    parse_permissions,
)
from .permission import PERMISSION_DENIED_MESSAGE, Permission, get_path
from .schema import ActionFilter, ActionRule, ActionValidator, PermissionSchema

__all__ = [
    "ALWAYS",
    "DEFAULT_DENIAL_MESSAGE",
    "PERMISSION_DENIED_MESSAGE",
    "Access",
    "ActionFilter",
    "ActionRule",
    "ActionValidator",
    "Always",
    "Conditional",
    "Grant",
    "Permission",
    "PermissionSchema",
    "RolePermissions",
    "dump_grant",
    "dump_permissions",
    "get_path",
    "parse_grant",
    "parse_permissions",
]
