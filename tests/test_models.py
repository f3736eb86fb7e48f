import pytest

from bubbleadmin import authctx, models
from bubbleadmin.snowflake import Snowflake


class _FixedGenerator:
    def __init__(self, value):
        self.value = value
        self.calls = 0

    def next_id(self):
        self.calls += 1
        return self.value


class _FailingGenerator:
    def next_id(self):
        raise RuntimeError("clock")


@pytest.fixture(autouse=True)
def _reset_generator():
    models.set_id_generator(None)
    yield
    models.set_id_generator(None)


def test_next_id_without_generator_is_zero():
    assert models.next_id() == 0


def test_next_id_uses_installed_generator():
    gen = _FixedGenerator(42)
    models.set_id_generator(gen)
    assert models.next_id() == 42
    assert gen.calls == 1


def test_before_create_assigns_snowflake_id():
    models.set_id_generator(Snowflake(1))
    first = models.SysRole(name="r1")
    second = models.SysRole(name="r2")
    first.before_create()
    second.before_create()
    assert first.id > 0
    assert second.id > first.id


def test_before_create_keeps_existing_id():
    gen = _FixedGenerator(99)
    models.set_id_generator(gen)
    dept = models.SysDept(id=7)
    dept.before_create()
    assert dept.id == 7
    assert gen.calls == 0


def test_zero_from_generator_leaves_id_unset():
    models.set_id_generator(_FixedGenerator(0))
    user = models.SysUser()
    user.before_create()
    assert user.id == 0


def test_generator_error_propagates():
    models.set_id_generator(_FailingGenerator())
    with pytest.raises(RuntimeError):
        models.SysUser().before_create()


def test_before_create_stamps_times():
    user = models.SysUser()
    user.before_create()
    assert user.created_at is not None
    assert user.updated_at == user.created_at


@pytest.mark.parametrize(
    "cls",
    [
        models.SysDept,
        models.SysPackage,
        models.SysPermission,
        models.SysRole,
        models.SysRolePermission,
        models.SysUser,
        models.SysUserRole,
    ],
)
def test_auth_models_fill_ownership_from_context(cls):
    info = authctx.ContextInfo(user_id=11, tenant_id=22, dept_id=33)
    with authctx.auth_context(info):
        row = cls()
        row.before_create()
    assert (row.created_by, row.tenant_id, row.dept_id) == (11, 22, 33)


def test_explicit_ownership_is_not_overwritten():
    info = authctx.ContextInfo(user_id=11, tenant_id=22, dept_id=33)
    with authctx.auth_context(info):
        user = models.SysUser(tenant_id=5, dept_id=6, created_by=4)
        user.before_create()
    assert (user.created_by, user.tenant_id, user.dept_id) == (4, 5, 6)


def test_ownership_without_identity_stays_zero():
    user = models.SysUser()
    user.before_create()
    assert (user.created_by, user.tenant_id, user.dept_id) == (0, 0, 0)


def test_tenant_only_gets_base_hook():
    models.set_id_generator(_FixedGenerator(5))
    with authctx.auth_context(authctx.ContextInfo(user_id=11)):
        tenant = models.SysTenant(code="t")
        tenant.before_create()
    assert tenant.id == 5
    assert tenant.created_by == 0


def test_column_defaults_follow_schema():
    assert models.SysUser().status == 1
    assert models.SysRolePermission().data_scope == "SELF"
    assert models.SysPermission().api_method == "V"