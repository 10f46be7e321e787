import logging

import pytest

from tenancy.context import TenantScope, establish_scope, require_scope, tenant_scope
from tenancy.errors import ScopeError
from tenancy.models import CallerIdentity, UserRole


def test_member_is_pinned_to_own_organization():
    scope = establish_scope(CallerIdentity.new(7, "ADMIN", 3))
    assert scope.organization_id == "3"
    assert scope.user_id == "7"
    assert scope.role == UserRole.ADMIN


def test_member_asking_for_other_organization_is_refused(caplog):
    identity = CallerIdentity.new("u1", UserRole.ADMIN, "org-1")
    with caplog.at_level(logging.WARNING, logger="tenancy.security"):
        with pytest.raises(ScopeError):
            establish_scope(identity, "org-2")
    assert any(record.name == "tenancy.security" for record in caplog.records)


def test_member_may_name_own_organization():
    identity = CallerIdentity.new("u1", UserRole.TRANSPORTATION_TEAM, "org-1")
    assert establish_scope(identity, "org-1").organization_id == "org-1"


def test_platform_user_may_choose_organization():
    identity = CallerIdentity.new("p1", UserRole.PLATFORM_ADMIN, None)
    assert establish_scope(identity, "org-2").organization_id == "org-2"


def test_no_organization_at_all_is_refused():
    with pytest.raises(ScopeError):
        establish_scope(CallerIdentity.new("p1", UserRole.PLATFORM_USER, None))


def test_scope_is_closed_after_the_block():
    identity = CallerIdentity.new("u1", UserRole.ADMIN, "org-1")
    with tenant_scope(identity) as scope:
        assert require_scope(scope) == "org-1"
    assert not scope.is_active
    with pytest.raises(ScopeError):
        require_scope(scope)


def test_scope_is_closed_when_the_block_raises():
    identity = CallerIdentity.new("u1", UserRole.ADMIN, "org-1")
    with pytest.raises(RuntimeError):
        with tenant_scope(identity) as scope:
            raise RuntimeError("boom")
    assert not scope.is_active


@pytest.mark.parametrize("bad_scope", [None, "org-1", {"organization_id": "org-1"}])
def test_require_scope_rejects_anything_but_an_open_scope(bad_scope):
    with pytest.raises(ScopeError):
        require_scope(bad_scope)


def test_concurrent_scopes_are_independent():
    first = establish_scope(CallerIdentity.new("u1", UserRole.ADMIN, "org-1"))
    second = establish_scope(CallerIdentity.new("u2", UserRole.ADMIN, "org-2"))
    first.close()
    assert require_scope(second) == "org-2"
    assert isinstance(second, TenantScope)


def test_unknown_role_is_rejected():
    with pytest.raises(ValueError):
        CallerIdentity.new("u1", "SUPERUSER", "org-1")
