"""
Tests for artifact naming rules.
"""

import pytest

from sketchforge.project.naming import (
    artifact_key,
    component_import_path,
    component_symbol,
    nav_label,
    route_path,
    service_symbol,
    to_kebab,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("LoginForm", "login-form"),
        ("login_form", "login-form"),
        ("Login Form", "login-form"),
        ("user2FA", "user2-fa"),
    ],
)
def test_to_kebab(raw, expected):
    assert to_kebab(raw) == expected


def test_artifact_key_drops_suffixes_and_extensions():
    assert artifact_key("LoginFormComponent", ("component",)) == "login-form"
    assert artifact_key("login-form.component.ts", ("component",)) == "login-form"
    assert artifact_key("user.service", ("service",)) == "user"
    assert artifact_key("component", ("component",)) == "component"


def test_symbols():
    assert component_symbol("login-form") == "LoginFormComponent"
    assert component_symbol("app-dashboard") == "AppDashboardComponent"
    assert service_symbol("user") == "UserService"
    assert component_import_path("login-form") == "./components/login-form/login-form.component"


def test_routes_and_labels_strip_prefix():
    assert route_path("app-dashboard") == "dashboard"
    assert route_path("settings") == "settings"
    assert route_path("app") == "app"
    assert nav_label("app-user-settings") == "User Settings"
