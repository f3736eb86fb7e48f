import contextvars

import pytest

from bubbleadmin import authctx
from bubbleadmin.authctx import ContextInfo


def test_defaults_without_context():
    assert authctx.get_context_info() == ContextInfo(0, 0, 0, "", 0)
    assert authctx.get_data_scope() == ""


def test_auth_context_binds_and_restores():
    info = ContextInfo(user_id=7, tenant_id=2, dept_id=9, data_scope="DEPT", auth_version=4)
    with authctx.auth_context(info):
        assert authctx.get_user_id() == 7
        assert authctx.get_tenant_id() == 2
        assert authctx.get_dept_id() == 9
        assert authctx.get_data_scope() == "DEPT"
        assert authctx.get_auth_version() == 4
        assert authctx.get_context_info() == info
    assert authctx.get_context_info() == ContextInfo()


def test_single_value_overrides_nest():
    with authctx.auth_context(ContextInfo(user_id=1, tenant_id=5)):
        with authctx.with_tenant_id(8):
            assert authctx.get_tenant_id() == 8
            assert authctx.get_user_id() == 1
        assert authctx.get_tenant_id() == 5


def test_each_with_helper():
    with authctx.with_user_id(11), authctx.with_dept_id(12), \
            authctx.with_data_scope("SELF"), authctx.with_auth_version(13):
        assert authctx.get_context_info() == ContextInfo(11, 0, 12, "SELF", 13)
    assert authctx.get_user_id() == 0


def test_values_are_isolated_between_contexts():
    def inside():
        with authctx.with_user_id(42):
            return authctx.get_user_id()

    assert contextvars.copy_context().run(inside) == 42
    assert authctx.get_user_id() == 0


@pytest.mark.parametrize(
    "old, new, expected",
    [
        ("SELF", "DEPT", "DEPT"),
        ("ALL", "DEPT", "ALL"),
        ("", "SELF", "SELF"),
        ("DEPT", "DEPT_SUB", "DEPT_SUB"),
        ("SELF", "UNKNOWN", "SELF"),
        ("", "", ""),
    ],
)
def test_get_greater_scope(old, new, expected):
    assert authctx.get_greater_scope(old, new) == expected