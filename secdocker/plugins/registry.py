"""Lookup and execution of the configured image plugins."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Protocol

from secdocker.plugins.anchore import AnchorePlugin
from secdocker.plugins.notary import NotaryPlugin

logger = logging.getLogger(__name__)

DEFAULT_PLUGINS_DIR = "./plugins"


class _Plugin(Protocol):
    def process(self, image: str) -> bool: ...


_PLUGINS = {
    "anchore": AnchorePlugin,
    "notary": NotaryPlugin,
}


class UnknownPluginError(LookupError):
    """Raised when a configured plugin does not exist."""


def get_plugin(name: str, plugins_dir: str | os.PathLike = DEFAULT_PLUGINS_DIR) -> _Plugin:
    """Return the plugin called ``name``, configured from its directory."""
    try:
        factory = _PLUGINS[name]
    except KeyError:
        raise UnknownPluginError(name) from None
    return factory(Path(plugins_dir) / name / "config.yml")


def process_plugins(image: str, config, plugins_dir: str | os.PathLike = DEFAULT_PLUGINS_DIR) -> bool:
    """Run every configured plugin on ``image``; True if all accept it."""
    result = True
    for name in config.plugins:
        plugin = get_plugin(name, plugins_dir)
        if not plugin.process(image):
            logger.error("Plugin %s exited with errors", name)
            result = False
    return result