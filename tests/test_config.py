"""
Tests for settings loading
"""

import pytest

from storefront.config import DEFAULT_API_URL, LoginPolicy, StoreSettings


def test_defaults(monkeypatch):
    for name in ("STORE_API_URL", "STORE_TIMEOUT", "STORE_CONNECT_TIMEOUT", "CART_LOGIN_POLICY", "CART_KEEP_INDEX_ON_FAILED_DELETE"):
        monkeypatch.delenv(name, raising=False)

    settings = StoreSettings.from_env()

    assert settings.api_url == DEFAULT_API_URL
    assert settings.timeout == 10.0
    assert settings.connect_timeout == 5.0
    assert settings.login_policy is LoginPolicy.REPLACE
    assert settings.keep_index_on_failed_delete is False


def test_overrides(monkeypatch):
    monkeypatch.setenv("STORE_API_URL", "https://api.shop.test/")
    monkeypatch.setenv("STORE_TIMEOUT", "2.5")
    monkeypatch.setenv("CART_LOGIN_POLICY", "MERGE")
    monkeypatch.setenv("CART_KEEP_INDEX_ON_FAILED_DELETE", "yes")

    settings = StoreSettings.from_env()

    assert settings.api_url == "https://api.shop.test"
    assert settings.timeout == 2.5
    assert settings.login_policy is LoginPolicy.MERGE
    assert settings.keep_index_on_failed_delete is True


@pytest.mark.parametrize(
    "name,value",
    [
        ("STORE_TIMEOUT", "soon"),
        ("STORE_CONNECT_TIMEOUT", "-1"),
        ("CART_LOGIN_POLICY", "union"),
        ("CART_KEEP_INDEX_ON_FAILED_DELETE", "maybe"),
    ],
)
def test_invalid_values(monkeypatch, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(ValueError) as exc_info:
        StoreSettings.from_env()

    assert name in str(exc_info.value)
