import pytest

from bubbleadmin import env


@pytest.fixture(autouse=True)
def fresh_env(monkeypatch):
    monkeypatch.setattr(env, "_current", env.Env.DEV.value)
    monkeypatch.setattr(env, "_initialized", False)


def test_default_is_dev():
    assert env.is_dev()
    assert not env.is_prod()
    assert not env.is_test()
    assert env.get() is env.Env.DEV


def test_init_sets_environment():
    env.init("prod")
    assert env.is_prod()
    assert not env.is_dev()
    assert env.get() is env.Env.PROD


def test_init_only_applies_once():
    env.init("test")
    env.init("prod")
    assert env.is_test()
    assert env.get() is env.Env.TEST


def test_init_accepts_enum_member():
    env.init(env.Env.PROD)
    assert env.is_prod()


def test_unknown_name_is_kept_raw():
    env.init("staging")
    assert env.get() == "staging"
    assert not env.is_dev()
    assert not env.is_prod()