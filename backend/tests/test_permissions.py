"""
Role-permission resolver tests.

Verifies:
- Every role x permission pair matches the static table
- Custom grants are additive; unknown tags and roles fail closed
- Venue-scoped permissions follow venue assignments unless the global
  counterpart is held
"""

from types import SimpleNamespace

import pytest

from shiftsync.permissions import Permission, Role, DEFAULT_ROLE_PERMISSIONS
from shiftsync.services import permission_service
from shiftsync.errors import Forbidden, ValidationError


P = Permission

EXPECTED = {
    Role.SUPER_ADMIN: set(Permission),
    Role.ADMIN: {
        P.MANAGE_USERS, P.VIEW_ALL_USERS, P.MANAGE_VENUES, P.VIEW_ALL_VENUES,
        P.MANAGE_ALL_SHIFTS, P.VIEW_ALL_SHIFTS, P.MANAGE_ALL_TIME, P.VIEW_ALL_TIME,
        P.SEND_MASS_MESSAGES, P.MANAGE_ALL_TILLS, P.VIEW_ALL_TILLS,
    },
    Role.MANAGER: {
        P.VIEW_ALL_USERS, P.VIEW_ALL_VENUES, P.MANAGE_VENUE_SHIFTS, P.VIEW_ALL_SHIFTS,
        P.MANAGE_VENUE_TIME, P.VIEW_ALL_TIME, P.MANAGE_VENUE_TILLS, P.VIEW_ALL_TILLS,
    },
    Role.SUPERVISOR: {P.VIEW_ALL_SHIFTS, P.MANAGE_VENUE_TIME, P.VIEW_ALL_TIME, P.MANAGE_VENUE_TILLS},
    Role.EMPLOYEE: set(),
    Role.IT: {
        P.SYSTEM_SETTINGS, P.VIEW_ALL_USERS, P.VIEW_ALL_VENUES, P.VIEW_ALL_SHIFTS,
        P.VIEW_ALL_TIME, P.VIEW_ALL_TILLS,
    },
}


def user_with(role, *, custom=(), venues=(), user_id=1):
    role_value = role.value if isinstance(role, Role) else role
    return SimpleNamespace(
        id=user_id,
        role=role_value,
        custom_permissions=frozenset(custom),
        assigned_venue_ids=frozenset(venues),
    )


# =============================================================================
# STATIC TABLE
# =============================================================================


class TestRolePermissionTable:

    def test_closed_sets(self):
        assert len(Role) == 6
        assert len(Permission) == 15
        assert set(DEFAULT_ROLE_PERMISSIONS) == set(Role)

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_ROLE_PERMISSIONS[Role.EMPLOYEE] = (P.MANAGE_USERS,)

    @pytest.mark.parametrize("role", list(Role), ids=lambda r: r.value)
    @pytest.mark.parametrize("permission", list(Permission), ids=lambda p: p.value)
    def test_has_permission_matches_table(self, role, permission):
        assert permission_service.has_permission(user_with(role), permission) == (permission in EXPECTED[role])

    def test_super_admin_holds_everything(self):
        assert permission_service.effective_permissions(user_with(Role.SUPER_ADMIN)) == frozenset(Permission)

    def test_employee_holds_nothing(self):
        assert permission_service.effective_permissions(user_with(Role.EMPLOYEE)) == frozenset()

    def test_accepts_string_tags(self):
        assert permission_service.has_permission(user_with("admin"), "manage_users")


# =============================================================================
# CUSTOM GRANTS & FAIL-CLOSED
# =============================================================================


class TestCustomPermissions:

    def test_custom_grant_is_additive(self):
        user = user_with(Role.EMPLOYEE, custom={"view_all_tills"})
        assert permission_service.effective_permissions(user) == frozenset({P.VIEW_ALL_TILLS})
        assert permission_service.has_permission(user, P.VIEW_ALL_TILLS)
        assert not permission_service.has_permission(user, P.MANAGE_ALL_TILLS)

    def test_custom_grant_unions_with_role(self):
        user = user_with(Role.SUPERVISOR, custom={"send_mass_messages"})
        assert permission_service.effective_permissions(user) == frozenset(EXPECTED[Role.SUPERVISOR] | {P.SEND_MASS_MESSAGES})

    def test_unknown_custom_tag_ignored(self):
        user = user_with(Role.EMPLOYEE, custom={"launch_rockets"})
        assert permission_service.effective_permissions(user) == frozenset()

    def test_unknown_permission_denied(self):
        assert permission_service.has_permission(user_with(Role.SUPER_ADMIN), "launch_rockets") is False
        assert permission_service.has_scoped_permission(user_with(Role.SUPER_ADMIN), "launch_rockets", 1) is False

    def test_unknown_role_denied(self):
        user = user_with("janitor")
        assert permission_service.effective_permissions(user) == frozenset()
        assert permission_service.has_permission(user, P.VIEW_ALL_SHIFTS) is False
        assert permission_service.has_venue_access(user, 1) is False

    def test_unknown_role_keeps_custom_grants(self):
        user = user_with("janitor", custom={"view_all_shifts"})
        assert permission_service.has_permission(user, P.VIEW_ALL_SHIFTS)

    def test_parse_permission_tags_rejects_unknown(self):
        with pytest.raises(ValidationError):
            permission_service.parse_permission_tags(["view_all_tills", "launch_rockets"])

    def test_parse_permission_tags_dedupes(self):
        assert permission_service.parse_permission_tags(["view_all_tills", "view_all_tills"]) == [P.VIEW_ALL_TILLS]

    def test_parse_permission_tags_rejects_non_list(self):
        with pytest.raises(ValidationError):
            permission_service.parse_permission_tags("view_all_tills")


# =============================================================================
# VENUE SCOPE
# =============================================================================


class TestScopedPermissions:

    def test_manager_scoped_to_assigned_venue(self):
        manager = user_with(Role.MANAGER, venues={4})
        assert permission_service.has_scoped_permission(manager, P.MANAGE_VENUE_TILLS, 4)
        assert not permission_service.has_scoped_permission(manager, P.MANAGE_VENUE_TILLS, 7)

    def test_global_counterpart_bypasses_assignment(self):
        admin = user_with(Role.ADMIN)
        for perm in (P.MANAGE_VENUE_TILLS, P.MANAGE_VENUE_SHIFTS, P.MANAGE_VENUE_TIME):
            assert permission_service.has_scoped_permission(admin, perm, 7)

    def test_supervisor_cannot_manage_shifts_anywhere(self):
        supervisor = user_with(Role.SUPERVISOR, venues={4})
        assert not permission_service.has_scoped_permission(supervisor, P.MANAGE_VENUE_SHIFTS, 4)

    def test_view_all_in_venue_context(self):
        manager = user_with(Role.MANAGER, venues={4})
        assert permission_service.has_scoped_permission(manager, P.VIEW_ALL_TILLS, 4)
        assert not permission_service.has_scoped_permission(manager, P.VIEW_ALL_TILLS, 7)

    @pytest.mark.parametrize("perm", [P.VIEW_ALL_TILLS, P.VIEW_ALL_SHIFTS, P.VIEW_ALL_TIME])
    def test_it_views_every_venue(self, perm):
        it_user = user_with(Role.IT)
        assert permission_service.has_venue_access(it_user, 7)
        assert permission_service.has_scoped_permission(it_user, perm, 7)

    def test_it_view_does_not_widen_manage(self):
        it_user = user_with(Role.IT, custom={"manage_venue_tills"})
        assert not permission_service.has_scoped_permission(it_user, P.MANAGE_VENUE_TILLS, 7)

    def test_custom_global_grant_bypasses_assignment(self):
        supervisor = user_with(Role.SUPERVISOR, venues={4}, custom={"manage_all_tills"})
        assert permission_service.has_scoped_permission(supervisor, P.MANAGE_VENUE_TILLS, 7)

    def test_missing_venue_denied(self):
        manager = user_with(Role.MANAGER, venues={4})
        assert not permission_service.has_scoped_permission(manager, P.MANAGE_VENUE_TILLS, None)

    def test_unscoped_permission_falls_back(self):
        admin = user_with(Role.ADMIN)
        assert permission_service.has_scoped_permission(admin, P.MANAGE_USERS, 99)

    def test_venue_access(self):
        assert permission_service.has_venue_access(user_with(Role.IT), 7)
        assert permission_service.has_venue_access(user_with(Role.ADMIN), 7)
        assert permission_service.has_venue_access(user_with(Role.EMPLOYEE, venues={7}), 7)
        assert not permission_service.has_venue_access(user_with(Role.MANAGER, venues={4}), 7)

    def test_require_scoped_raises_forbidden(self):
        with pytest.raises(Forbidden) as exc:
            permission_service.require_scoped_permission(user_with(Role.MANAGER, venues={4}), P.MANAGE_VENUE_TILLS, 7)
        assert exc.value.kind == "Forbidden"
        assert exc.value.status_code == 403
