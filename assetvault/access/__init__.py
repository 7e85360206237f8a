from assetvault.access.controller import (
    INTERNAL,
    PRIVATE,
    PUBLIC,
    AccessController,
    AccessDecision,
    Operation,
    Principal,
    RoleAccessController,
)
from assetvault.access.roles import RoleDefinition, create_role, default_roles, register_role

__all__ = [
    "INTERNAL",
    "PRIVATE",
    "PUBLIC",
    "AccessController",
    "AccessDecision",
    "Operation",
    "Principal",
    "RoleAccessController",
    "RoleDefinition",
    "create_role",
    "default_roles",
    "register_role",
]
