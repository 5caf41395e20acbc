"""
Deterministic naming rules shared by the merger and the architecture adapter.
"""

import re
from typing import Iterable

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_NON_KEBAB = re.compile(r"[^a-z0-9]+")


def to_kebab(name: str) -> str:
    """Turn ``LoginForm``, ``login_form`` or ``Login Form`` into ``login-form``."""
    name = _CAMEL_BOUNDARY.sub("-", (name or "").strip())
    return _NON_KEBAB.sub("-", name.lower()).strip("-")


def artifact_key(name: str, suffixes: Iterable[str] = ()) -> str:
    """
    Normalize a generated artifact name to a kebab-case key.

    File extensions and a trailing kind suffix (``-component``, ``.service``)
    are dropped so that ``LoginFormComponent`` and ``login-form.component.ts``
    both map to ``login-form``.
    """
    key = re.sub(r"\.(ts|html|s?css|sass|less)$", "", (name or "").strip(), flags=re.IGNORECASE)
    key = to_kebab(key)
    for suffix in suffixes:
        if key.endswith("-" + suffix) and key != suffix:
            key = key[: -len(suffix) - 1]
    return key


def to_pascal(name: str) -> str:
    return "".join(part.capitalize() for part in to_kebab(name).split("-") if part)


def component_symbol(name: str) -> str:
    """``login-form`` -> ``LoginFormComponent``."""
    pascal = to_pascal(name)
    return pascal if pascal.endswith("Component") else pascal + "Component"


def service_symbol(name: str) -> str:
    """``user`` -> ``UserService``."""
    pascal = to_pascal(name)
    return pascal if pascal.endswith("Service") else pascal + "Service"


def strip_prefix(name: str, prefix: str = "app") -> str:
    """Drop a conventional selector prefix: ``app-dashboard`` -> ``dashboard``."""
    if prefix and name.startswith(prefix + "-") and len(name) > len(prefix) + 1:
        return name[len(prefix) + 1:]
    return name


def route_path(name: str, prefix: str = "app") -> str:
    return strip_prefix(name, prefix)


def nav_label(name: str, prefix: str = "app") -> str:
    """``app-user-settings`` -> ``User Settings``."""
    return " ".join(word.capitalize() for word in strip_prefix(name, prefix).split("-") if word)


def component_selector(name: str) -> str:
    return name


def component_import_path(name: str) -> str:
    """Import path of a generated component, relative to ``src/app``."""
    return f"./components/{name}/{name}.component"


def service_import_path(name: str) -> str:
    return f"./services/{name}.service"
