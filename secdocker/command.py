"""Command-line front end that checks ``docker run`` options before running them."""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence
from enum import Enum

from secdocker.config import load_config
from secdocker.docker import ContainerOpts, execute_command
from secdocker.security import check_permissions

logger = logging.getLogger(__name__)


class Flag(Enum):
    """Option whose value is expected next on the command line."""

    PORT = "-p"
    MOUNT = "-v"
    ENV = "-e"
    ENTRYPOINT = "--entrypoint"
    USER = "-u"
    NONE = ""


_FLAGS = {
    "-p": Flag.PORT,
    "-P": Flag.PORT,
    "-v": Flag.MOUNT,
    "--volume": Flag.MOUNT,
    "-e": Flag.ENV,
    "-u": Flag.USER,
    "--user": Flag.USER,
    "--entrypoint": Flag.ENTRYPOINT,
}


def clean_equal_args(args: Sequence[str]) -> list[str]:
    """Split ``--flag=value`` arguments into separate flag and value."""
    result: list[str] = []
    is_flag = False
    for arg in args:
        if not is_flag and "=" in arg:
            parts = arg.split("=")
            result.extend((parts[0], parts[1]))
        else:
            result.append(arg)
            is_flag = not is_flag
    return result


def generate_args_from_config(config) -> list[str]:
    """Return the docker options that the general settings add to every run."""
    general = config.general
    args: list[str] = []
    if general.cpu:
        args += ["--cpus", general.cpu]
    if general.user:
        args += ["-u", general.user]
    if general.memory:
        args += ["-m", general.memory]
    for option, values in (
        ("-e", general.environment),
        ("--cap-add", general.add_linux_capabilities),
        ("--cap-drop", general.drop_linux_capabilities),
        ("--security-opt", general.security_options),
    ):
        for value in values:
            args += [option, value]
    return args


def parse_run_args(args: Sequence[str]) -> ContainerOpts:
    """Collect the restricted options from ``docker run`` arguments."""
    opts = ContainerOpts()
    active = Flag.NONE
    for arg in clean_equal_args(args):
        flag = _FLAGS.get(arg)
        if flag is not None:
            active = flag
            continue
        if active is Flag.PORT:
            # ip:hostPort:containerPort | ip::containerPort | hostPort:containerPort | containerPort
            ports = arg.split(":")
            if len(ports) == 3:
                opts.ports.append(ports[1])
            elif len(ports) == 2:
                opts.ports.append(ports[0])
        elif active is Flag.MOUNT:
            opts.mounts.append(arg.split(":")[0])
        elif active is Flag.ENV:
            opts.env.append(arg)
        elif active is Flag.USER:
            opts.user = arg
        elif active is Flag.ENTRYPOINT:
            opts.entrypoint = arg
        else:
            opts.image = arg
        active = Flag.NONE
    return opts


def parse_command_line_args(args: Sequence[str]) -> ContainerOpts:
    """Parse a docker command line; only ``run`` carries restricted options."""
    if not args:
        raise ValueError("no docker command given")
    if args[0] == "run":
        return parse_run_args(args[1:])
    return ContainerOpts()


def main(argv: Sequence[str] | None = None) -> int:
    """Check a docker command line and run it detached if it is allowed."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) < 2:
        print("Usage: secdocker run (docker options) image")
        return 1

    logger.info("Received %s", args)
    config = load_config()
    opts = parse_command_line_args(args)
    if not check_permissions(opts, config):
        logger.error("Command contains invalid or forbidden values. Aborting.")
        return 1

    logger.info("Executing...")
    docker_args = [args[0], *generate_args_from_config(config), "-d", *args[1:]]
    execute_command("docker", docker_args)
    return 0