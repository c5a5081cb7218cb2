"""Checking and rewriting of container creation requests for the Docker API."""

from __future__ import annotations

import copy
import json
import logging
import os
from collections.abc import Mapping
from typing import Any
from urllib.parse import parse_qs, urlsplit

from secdocker.config import Config, load_config
from secdocker.docker import (
    ContainerOpts,
    add_general_restrictions,
    process_api_create_request,
)
from secdocker.plugins.registry import DEFAULT_PLUGINS_DIR

logger = logging.getLogger(__name__)

DOCKER_ENGINE_VERSION = "v1.24"


def _text(value: Any, key: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{key}: expected a string")
    return value


def _strings(value: Any, key: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"{key}: expected a list of strings")
    return list(value)


def _mapping(value: Any, key: str) -> Mapping:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"{key}: expected an object")
    return value


def _flag(value: Any, key: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"{key}: expected a boolean")
    return value


def _port_bindings(bindings: Mapping) -> list[str]:
    ports: list[str] = []
    for entries in bindings.values():
        if entries is None:
            continue
        if not isinstance(entries, list):
            raise ValueError("PortBindings: expected a list of bindings")
        for entry in entries:
            entry = _mapping(entry, "PortBindings")
            host_ip = _text(entry.get("HostIp"), "HostIp")
            host_port = _text(entry.get("HostPort"), "HostPort")
            ports.append(f"{host_ip}:{host_port}" if host_ip else host_port)
    return ports


def create_opts_from_api_data(raw_opts: Mapping) -> ContainerOpts:
    """Extract the restricted options from a Docker API create body."""
    raw_opts = _mapping(raw_opts, "request")
    host = _mapping(raw_opts.get("HostConfig"), "HostConfig")
    return ContainerOpts(
        mounts=_strings(host.get("Binds"), "Binds"),
        ports=_port_bindings(_mapping(host.get("PortBindings"), "PortBindings")),
        env=_strings(raw_opts.get("Env"), "Env"),
        security_policies=_strings(host.get("SecurityOpt"), "SecurityOpt"),
        image=_text(raw_opts.get("Image"), "Image"),
        entrypoint=_text(raw_opts.get("Entrypoint"), "Entrypoint"),
        user=_text(raw_opts.get("User"), "User"),
        privileged=_flag(host.get("Privileged"), "Privileged"),
    )


def create_run_data_from_opts(raw_opts: Mapping, opts: ContainerOpts) -> dict:
    """Return a copy of the create body with the options from ``opts`` written in."""
    data = copy.deepcopy(dict(_mapping(raw_opts, "request")))
    host = dict(_mapping(data.get("HostConfig"), "HostConfig"))
    host["Binds"] = list(opts.mounts)
    host["SecurityOpt"] = list(opts.security_policies)
    host["Privileged"] = opts.privileged
    data["HostConfig"] = host
    data["Env"] = list(opts.env)
    if opts.entrypoint:
        data["Entrypoint"] = opts.entrypoint
    else:
        data.pop("Entrypoint", None)
    data["Image"] = opts.image
    data["User"] = opts.user
    if not data.get("Cmd"):
        data["Cmd"] = None
    return data


def _query_value(query: Mapping[str, list[str]], name: str) -> str:
    values = query.get(name)
    if not values:
        raise ValueError(f"missing {name!r} query parameter")
    return values[0]


def process_create_container(
    method: str,
    target: str,
    body: bytes | str,
    config: Config | None = None,
    plugins_dir: str | os.PathLike = DEFAULT_PLUGINS_DIR,
) -> bytes:
    """Check a container creation request.

    Returns the rewritten JSON body, or empty bytes if the request is forbidden.
    """
    logger.info("New create request received: %s %s", method, target)
    if config is None:
        config = load_config()

    if not body:
        query = parse_qs(urlsplit(target).query, keep_blank_values=True)
        raw_opts: dict = {
            "Image": f"{_query_value(query, 'fromImage')}:{_query_value(query, 'tag')}"
        }
    else:
        parsed = json.loads(body)
        if not isinstance(parsed, dict):
            raise ValueError("request body must be a JSON object")
        raw_opts = parsed

    opts = create_opts_from_api_data(raw_opts)
    if not process_api_create_request(opts, config, plugins_dir):
        logger.info("Request is not valid")
        return b""

    logger.info("Request is valid")
    opts = add_general_restrictions(opts, config)
    final = create_run_data_from_opts(raw_opts, opts)
    return json.dumps(final, separators=(",", ":")).encode("utf-8")