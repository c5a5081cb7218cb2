"""Loading of the general and restriction settings file."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any

import yaml

CONFIG_FILE = "config.yml"

_TRUE = frozenset({"y", "yes", "true", "on"})
_FALSE = frozenset({"n", "no", "false", "off"})


@dataclass
class GeneralConf:
    """Options added to every container that is started."""

    security_options: list[str] = field(default_factory=list)
    drop_linux_capabilities: list[str] = field(default_factory=list)
    add_linux_capabilities: list[str] = field(default_factory=list)
    memory: str = ""
    cpu: str = ""
    environment: list[str] = field(default_factory=list)
    user: str = ""


@dataclass
class RestrictionsConf:
    """Values that a container request may not use."""

    ports: list[str] = field(default_factory=list)
    mounts: list[str] = field(default_factory=list)
    users: list[str] = field(default_factory=list)
    environment: list[str] = field(default_factory=list)
    security_policies: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)
    privileged: bool = False


@dataclass
class Config:
    """All restriction and general settings."""

    plugins: list[str] = field(default_factory=list)
    docker_api: str = ""
    general: GeneralConf = field(default_factory=GeneralConf)
    restrictions: RestrictionsConf = field(default_factory=RestrictionsConf)


def _string(value: Any, key: str) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    raise ValueError(f"{key}: expected a scalar value")


def _string_list(value: Any, key: str) -> list[str]:
    if value is None or value == "":
        return []
    if not isinstance(value, list):
        raise ValueError(f"{key}: expected a list")
    return [_string(item, key) for item in value]


def _boolean(value: Any, key: str) -> bool:
    text = _string(value, key).strip().lower()
    if text == "" or text in _FALSE:
        return False
    if text in _TRUE:
        return True
    raise ValueError(f"{key}: {value!r} is not a boolean")


def _section(value: Any, key: str) -> dict:
    if value is None or value == "":
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{key}: expected a mapping")
    return value


def parse_config(text: str) -> Config:
    """Build a Config from YAML text."""
    data = yaml.load(text, Loader=yaml.BaseLoader)
    if data is None:
        raise ValueError("configuration is empty")
    data = _section(data, "configuration")
    general = _section(data.get("general"), "general")
    restrictions = _section(data.get("restrictions"), "restrictions")
    return Config(
        plugins=_string_list(data.get("plugins"), "plugins"),
        docker_api=_string(data.get("dockerapi"), "dockerapi"),
        general=GeneralConf(
            security_options=_string_list(general.get("secopts"), "secopts"),
            drop_linux_capabilities=_string_list(general.get("capdrop"), "capdrop"),
            add_linux_capabilities=_string_list(general.get("capadd"), "capadd"),
            memory=_string(general.get("memory"), "memory"),
            cpu=_string(general.get("cpu"), "cpu"),
            environment=_string_list(general.get("environment"), "environment"),
            user=_string(general.get("user"), "user"),
        ),
        restrictions=RestrictionsConf(
            ports=_string_list(restrictions.get("ports"), "ports"),
            mounts=_string_list(restrictions.get("mounts"), "mounts"),
            users=_string_list(restrictions.get("users"), "users"),
            environment=_string_list(restrictions.get("environment"), "environment"),
            security_policies=_string_list(
                restrictions.get("securitypolicies"), "securitypolicies"
            ),
            images=_string_list(restrictions.get("images"), "images"),
            privileged=_boolean(restrictions.get("privileged"), "privileged"),
        ),
    )


def load_config(path: str | os.PathLike = CONFIG_FILE) -> Config:
    """Read and parse the YAML settings file at ``path``."""
    with open(path, encoding="utf-8") as handle:
        return parse_config(handle.read())