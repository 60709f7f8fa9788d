"""
Tests for role permission lookups
"""
from docketwise.utils.permissions import (
    get_role_permissions,
    has_permission,
    has_any_permission,
    has_all_permissions,
)


class TestPermissions:

    def test_admin_has_everything(self):
        for permission in ('builders.view', 'builders.delete', 'contractors.edit', 'users.manage', 'admin.access'):
            assert has_permission('ADMIN', permission)

    def test_supervisor_is_read_only(self):
        assert has_permission('SUPERVISOR', 'builders.view')
        assert has_permission('SUPERVISOR', 'contractors.view')
        assert not has_permission('SUPERVISOR', 'builders.create')
        assert not has_permission('SUPERVISOR', 'contractors.delete')

    def test_worker_has_nothing(self):
        assert get_role_permissions('WORKER') == []
        assert not has_permission('WORKER', 'builders.view')

    def test_role_names_are_case_insensitive(self):
        assert has_permission('admin', 'builders.view')
        assert has_permission('Supervisor', 'contractors.view')

    def test_unknown_or_missing_role(self):
        assert get_role_permissions(None) == []
        assert not has_permission('GUEST', 'builders.view')

    def test_any_and_all(self):
        assert has_any_permission('SUPERVISOR', ['builders.create', 'builders.view'])
        assert not has_all_permissions('SUPERVISOR', ['builders.create', 'builders.view'])
        assert has_all_permissions('ADMIN', ['builders.create', 'builders.view'])

    def test_returned_list_is_a_copy(self):
        permissions = get_role_permissions('SUPERVISOR')
        permissions.append('builders.delete')
        assert not has_permission('SUPERVISOR', 'builders.delete')
