"""Role definitions for asset access."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class RoleDefinition:
    """Definition of a role with its permissions."""

    name: str
    permissions: set[str] = field(default_factory=set)
    display_name: str | None = None
    description: str | None = None


def create_role(
    name: str,
    *permissions: str,
    display_name: str | None = None,
    description: str | None = None,
) -> RoleDefinition:
    """Create a role definition with the given permissions.

    Args:
        name: The unique identifier for the role
        *permissions: Permission strings granted by this role
        display_name: Human-readable name for the role
        description: Description of the role's purpose

    Returns:
        A RoleDefinition instance
    """
    return RoleDefinition(
        name=name,
        permissions=set(permissions),
        display_name=display_name or name.title(),
        description=description,
    )


# The "administrator" permission is special - it bypasses all permission checks
ADMINISTRATOR = "administrator"

READ_ASSETS = "read-assets"
READ_PRIVATE_ASSETS = "read-private-assets"
WRITE_ASSETS = "write-assets"
UPDATE_ASSETS = "update-assets"
DELETE_ASSETS = "delete-assets"
LIST_ASSETS = "list-assets"
MANAGE_ASSETS = "manage-assets"

ADMIN = create_role(
    "admin",
    ADMINISTRATOR,
    display_name="Administrator",
    description="Full access to every asset",
)

VIEWER = create_role(
    "viewer",
    READ_ASSETS,
    LIST_ASSETS,
    display_name="Viewer",
    description="Can list assets and read public and internal ones",
)

CONTRIBUTOR = create_role(
    "contributor",
    READ_ASSETS,
    LIST_ASSETS,
    WRITE_ASSETS,
    UPDATE_ASSETS,
    DELETE_ASSETS,
    display_name="Contributor",
    description="Can store assets and manage their own",
)

CURATOR = create_role(
    "curator",
    READ_ASSETS,
    READ_PRIVATE_ASSETS,
    LIST_ASSETS,
    WRITE_ASSETS,
    UPDATE_ASSETS,
    DELETE_ASSETS,
    MANAGE_ASSETS,
    display_name="Curator",
    description="Can read and manage every asset",
)


def default_roles() -> dict[str, RoleDefinition]:
    """Return a fresh registry holding the built-in roles."""
    return {role.name: role for role in [ADMIN, VIEWER, CONTRIBUTOR, CURATOR]}


def register_role(
    registry: dict[str, RoleDefinition],
    name: str,
    *permissions: str,
    display_name: str | None = None,
    description: str | None = None,
) -> RoleDefinition:
    """Add a custom role to ``registry``.

    Example:
        roles = default_roles()
        register_role(roles, "auditor", READ_ASSETS, READ_PRIVATE_ASSETS, LIST_ASSETS)
        controller = RoleAccessController(roles)
    """
    role = create_role(
        name,
        *permissions,
        display_name=display_name,
        description=description,
    )
    registry[role.name] = role
    return role
