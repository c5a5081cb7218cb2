"""Container options, merging of general settings and command execution."""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace

from secdocker.plugins.registry import DEFAULT_PLUGINS_DIR, process_plugins
from secdocker.security import check_permissions

logger = logging.getLogger(__name__)


@dataclass
class ContainerOpts:
    """The parts of a container request that restrictions apply to."""

    mounts: list[str] = field(default_factory=list)
    ports: list[str] = field(default_factory=list)
    env: list[str] = field(default_factory=list)
    security_policies: list[str] = field(default_factory=list)
    image: str = ""
    entrypoint: str = ""
    user: str = ""
    privileged: bool = False


def _split_pair(item: str, separator: str) -> tuple[str, str]:
    parts = item.split(separator)
    if len(parts) < 2:
        raise ValueError(f"{item!r} has no {separator!r} separator")
    return parts[0], parts[1]


def solve_collisions(
    first: Iterable[str], second: Iterable[str], separator: str
) -> list[str]:
    """Merge two lists of ``key<separator>value`` items; ``first`` wins on equal keys.

    With an empty separator, items are compared whole and duplicates dropped.
    """
    unique: dict[str, str] = {}
    for item in (*second, *first):
        if separator:
            key, value = _split_pair(item, separator)
        else:
            key, value = item, ""
        unique[key] = value
    return [f"{key}{separator}{value}" for key, value in unique.items()]


def add_general_restrictions(data: ContainerOpts, config) -> ContainerOpts:
    """Return ``data`` with the configured user and environment applied."""
    general = config.general
    return replace(
        data,
        user=general.user or data.user,
        env=solve_collisions(general.environment, data.env, "="),
    )


def process_api_create_request(
    data: ContainerOpts, config, plugins_dir: str | os.PathLike = DEFAULT_PLUGINS_DIR
) -> bool:
    """Return True if the image passes every plugin and the options every restriction."""
    return process_plugins(data.image, config, plugins_dir) and check_permissions(
        data, config
    )


def execute_command(command: str, args: Sequence[str]) -> str:
    """Run ``command`` with ``args``, print and return its combined output."""
    logger.info("Running [%s %s]", command, " ".join(args))
    try:
        result = subprocess.run(
            [command, *args],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            check=False,
        )
    except OSError as exc:
        logger.error("%s", exc)
        output = ""
    else:
        if result.returncode != 0:
            logger.error("%s exited with status %d", command, result.returncode)
        output = result.stdout or ""
    print(output)
    return output