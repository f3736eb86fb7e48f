from bubbleadmin.tenant_perms import (
    ApiPermission,
    TenantPermRow,
    group_api_permissions,
    group_tenant_package_perms,
)


def test_group_tenant_perms_dedupes_and_skips_empty():
    rows = [
        TenantPermRow(1, "a"),
        TenantPermRow(1, "a"),
        TenantPermRow(1, ""),
        TenantPermRow(2, "b"),
        TenantPermRow(1, "c"),
    ]
    assert group_tenant_package_perms(rows) == {1: ["a", "c"], 2: ["b"]}


def test_tenant_with_only_empty_codes_is_absent():
    assert group_tenant_package_perms([TenantPermRow(3, "")]) == {}


def test_group_tenant_perms_codes_are_unique():
    rows = [TenantPermRow(1, code) for code in ["x", "y", "x", "y", "z"]]
    codes = group_tenant_package_perms(rows)[1]
    assert len(codes) == len(set(codes))
    assert set(codes) == {"x", "y", "z"}


def test_group_api_permissions_by_path():
    perms = [
        ApiPermission("user:view", "/api.User/Get"),
        ApiPermission("user:admin", "/api.User/Get"),
        ApiPermission("order:view", "/api.Order/List"),
    ]
    assert group_api_permissions(perms) == {
        "/api.User/Get": ["user:view", "user:admin"],
        "/api.Order/List": ["order:view"],
    }


def test_group_api_permissions_ignores_non_api():
    perms = [
        ApiPermission("menu:home", "/home", type="MENU"),
        ApiPermission("btn:save", "/home", type="BUTTON"),
    ]
    assert group_api_permissions(perms) == {}


def test_group_api_permissions_empty():
    assert group_api_permissions([]) == {}