"""Image signature check through an external script."""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("./plugins/notary/config.yml")
DEFAULT_SHELL = "/bin/bash"


def split_image(image: str) -> tuple[str, str]:
    """Split ``name[:tag]`` into name and tag, defaulting the tag to latest."""
    parts = image.split(":")
    if len(parts) == 1:
        return parts[0], "latest"
    if len(parts) == 2:
        return parts[0], parts[1]
    raise ValueError(f"invalid image: {image!r}")


def _load_script_path(path: Path) -> str:
    with open(path, encoding="utf-8") as handle:
        data = yaml.load(handle, Loader=yaml.BaseLoader)
    if data is None:
        raise ValueError("notary configuration is empty")
    if not isinstance(data, dict):
        raise ValueError("notary configuration must be a mapping")
    return str(data.get("scriptpath") or "")


class NotaryPlugin:
    """Runs the configured script to compare local and signed image digests."""

    def __init__(self, config_path: str | os.PathLike = DEFAULT_CONFIG_PATH, shell: str = DEFAULT_SHELL):
        self.config_path = Path(config_path)
        self.shell = shell

    def process(self, image: str) -> bool:
        """Check ``image``; return True if it may be used."""
        logger.info("Notary image analysis initialized")
        script_path = _load_script_path(self.config_path)
        try:
            name, tag = split_image(image)
        except ValueError:
            logger.error("Image invalid")
            return False

        result = subprocess.run(
            [self.shell, script_path, name, tag],
            capture_output=True,
            text=True,
            check=False,
        )
        code = result.returncode
        if code == 0:
            logger.info("They match")
            return True
        if code == 1:
            logger.error("They don't match")
            return False
        if code == 2:
            logger.info("Image is not present locally")
            return True
        logger.error("Unexpected return code %s", code)
        logger.error("%s%s", result.stdout, result.stderr)
        return True