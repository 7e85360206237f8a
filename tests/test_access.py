"""Tests for role-based access decisions."""

import pytest

from assetvault.access import (
    INTERNAL,
    PRIVATE,
    PUBLIC,
    AccessController,
    Operation,
    Principal,
    RoleAccessController,
    default_roles,
    register_role,
)
from assetvault.access.roles import LIST_ASSETS, READ_ASSETS, READ_PRIVATE_ASSETS


@pytest.fixture
def controller():
    return RoleAccessController()


def principal(name, *roles):
    return Principal(id=name, roles=frozenset(roles))


class TestRoleAccessController:
    def test_satisfies_protocol(self, controller):
        assert isinstance(controller, AccessController)

    def test_admin_may_do_anything(self, controller):
        admin = principal("root", "admin")
        for operation in (Operation.READ, Operation.WRITE, Operation.DELETE, Operation.UPDATE):
            assert controller.check_access(admin, "asset-1", operation, PRIVATE, "someone")
        assert controller.check_access(admin, None, Operation.LIST)

    def test_anonymous_reads_only_public(self, controller):
        anonymous = principal("anonymous")
        assert controller.check_access(anonymous, "a", Operation.READ, PUBLIC, "alice")
        assert not controller.check_access(anonymous, "a", Operation.READ, INTERNAL, "alice")
        assert not controller.check_access(anonymous, "a", Operation.READ, PRIVATE, "alice")
        assert not controller.check_access(anonymous, None, Operation.LIST)
        assert not controller.check_access(anonymous, "new", Operation.WRITE)

    def test_viewer_reads_internal_but_not_private(self, controller):
        viewer = principal("bob", "viewer")
        assert controller.check_access(viewer, "a", Operation.READ, INTERNAL, "alice")
        decision = controller.check_access(viewer, "a", Operation.READ, PRIVATE, "alice")
        assert not decision
        assert READ_PRIVATE_ASSETS in decision.reason

    def test_unknown_classification_is_private(self, controller):
        viewer = principal("bob", "viewer")
        assert not controller.check_access(viewer, "a", Operation.READ, "secret-ish", "alice")

    def test_owner_reads_own_private_asset(self, controller):
        alice = principal("alice", "contributor")
        assert controller.check_access(alice, "a", Operation.READ, PRIVATE, "alice")

    def test_contributor_creates_and_manages_own_assets(self, controller):
        alice = principal("alice", "contributor")
        assert controller.check_access(alice, "new", Operation.WRITE)
        for operation in (Operation.WRITE, Operation.UPDATE, Operation.DELETE):
            assert controller.check_access(alice, "a", operation, PRIVATE, "alice")

    def test_contributor_cannot_touch_others_assets(self, controller):
        alice = principal("alice", "contributor")
        for operation in (Operation.WRITE, Operation.UPDATE, Operation.DELETE):
            assert not controller.check_access(alice, "a", operation, PUBLIC, "bob")

    def test_viewer_cannot_write(self, controller):
        viewer = principal("bob", "viewer")
        assert not controller.check_access(viewer, "new", Operation.WRITE)
        assert not controller.check_access(viewer, "a", Operation.DELETE, PRIVATE, "bob")

    def test_curator_manages_everything(self, controller):
        curator = principal("carol", "curator")
        assert controller.check_access(curator, "a", Operation.READ, PRIVATE, "alice")
        assert controller.check_access(curator, "a", Operation.DELETE, PRIVATE, "alice")
        assert controller.check_access(curator, "a", Operation.UPDATE, INTERNAL, "alice")

    def test_list_is_collection_level(self, controller):
        viewer = principal("bob", "viewer")
        assert controller.check_access(viewer, None, Operation.LIST)
        assert not controller.check_access(viewer, "a", Operation.LIST)

    def test_asset_operations_require_an_asset(self, controller):
        admin = principal("root", "admin")
        assert not controller.check_access(admin, None, Operation.READ)

    def test_operation_accepts_plain_strings(self, controller):
        viewer = principal("bob", "viewer")
        assert controller.check_access(viewer, "a", "read", PUBLIC)

    def test_unknown_roles_grant_nothing(self, controller):
        ghost = principal("ghost", "does-not-exist")
        assert controller.permissions_for(ghost) == set()


class TestCustomRoles:
    def test_registered_role_is_honoured(self):
        roles = default_roles()
        register_role(roles, "auditor", READ_ASSETS, READ_PRIVATE_ASSETS, LIST_ASSETS)
        controller = RoleAccessController(roles)

        auditor = principal("dana", "auditor")
        assert controller.check_access(auditor, "a", Operation.READ, PRIVATE, "alice")
        assert not controller.check_access(auditor, "a", Operation.DELETE, PRIVATE, "alice")

    def test_default_roles_are_fresh_copies(self):
        roles = default_roles()
        register_role(roles, "extra")
        assert "extra" not in default_roles()
