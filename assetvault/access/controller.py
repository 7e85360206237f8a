"""Access decisions for asset operations."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from assetvault.access.roles import (
    ADMINISTRATOR,
    DELETE_ASSETS,
    LIST_ASSETS,
    MANAGE_ASSETS,
    READ_ASSETS,
    READ_PRIVATE_ASSETS,
    UPDATE_ASSETS,
    WRITE_ASSETS,
    RoleDefinition,
    default_roles,
)


class Operation(str, enum.Enum):
    READ = "read"
    WRITE = "write"
    DELETE = "delete"
    UPDATE = "update"
    LIST = "list"


PUBLIC = "public"
INTERNAL = "internal"
PRIVATE = "private"


@dataclass(frozen=True)
class Principal:
    """The identity an operation is performed for."""

    id: str
    roles: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: str

    def __bool__(self) -> bool:
        return self.allowed


@runtime_checkable
class AccessController(Protocol):
    """Decides whether a principal may perform an operation on an asset."""

    def check_access(
        self,
        principal: Principal,
        asset_id: str | None,
        operation: Operation,
        classification: str | None = None,
        owner: str | None = None,
    ) -> AccessDecision: ...


_OWNER_PERMISSIONS = {
    Operation.WRITE: WRITE_ASSETS,
    Operation.UPDATE: UPDATE_ASSETS,
    Operation.DELETE: DELETE_ASSETS,
}


class RoleAccessController:
    """Grant operations from the permissions of the principal's roles.

    ``classification`` and ``owner`` describe the target asset; both are
    ``None`` when the asset does not exist yet. Unknown classifications
    are treated as private.
    """

    def __init__(self, roles: dict[str, RoleDefinition] | None = None) -> None:
        self._roles = roles if roles is not None else default_roles()

    def permissions_for(self, principal: Principal) -> set[str]:
        permissions: set[str] = set()
        for name in principal.roles:
            role = self._roles.get(name)
            if role is not None:
                permissions |= role.permissions
        return permissions

    def check_access(
        self,
        principal: Principal,
        asset_id: str | None,
        operation: Operation,
        classification: str | None = None,
        owner: str | None = None,
    ) -> AccessDecision:
        operation = Operation(operation)

        if operation is Operation.LIST:
            if asset_id is not None:
                return AccessDecision(False, "list does not take an asset")
        elif asset_id is None:
            return AccessDecision(False, f"{operation.value} requires an asset")

        permissions = self.permissions_for(principal)
        if ADMINISTRATOR in permissions:
            return AccessDecision(True, "administrator")

        if operation is Operation.LIST:
            return _require(permissions, LIST_ASSETS)

        is_owner = owner is not None and owner == principal.id

        if operation is Operation.READ:
            if classification == PUBLIC:
                return AccessDecision(True, "public asset")
            if classification == INTERNAL:
                return _require(permissions, READ_ASSETS)
            if is_owner:
                return AccessDecision(True, "owner")
            return _require(permissions, READ_PRIVATE_ASSETS)

        required = _OWNER_PERMISSIONS[operation]
        if owner is None and operation is Operation.WRITE:
            return _require(permissions, required)
        if MANAGE_ASSETS in permissions:
            return AccessDecision(True, MANAGE_ASSETS)
        if is_owner:
            return _require(permissions, required)
        return AccessDecision(False, f"{operation.value} on another principal's asset requires {MANAGE_ASSETS}")


def _require(permissions: set[str], permission: str) -> AccessDecision:
    if permission in permissions:
        return AccessDecision(True, permission)
    return AccessDecision(False, f"missing permission {permission}")
