"""Image vulnerability check through an Anchore Engine service."""

from __future__ import annotations

import base64
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path

import requests
import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("./plugins/anchore/config.yml")


@dataclass
class AnchoreSettings:
    """Connection settings and vulnerability threshold."""

    url: str = ""
    username: str = ""
    password: str = ""
    amount_vulns: int = 0


def load_anchore_settings(path: str | os.PathLike = DEFAULT_CONFIG_PATH) -> AnchoreSettings:
    """Read the plugin settings from a YAML file."""
    with open(path, encoding="utf-8") as handle:
        data = yaml.load(handle, Loader=yaml.BaseLoader)
    if data is None:
        raise ValueError("anchore configuration is empty")
    if not isinstance(data, dict):
        raise ValueError("anchore configuration must be a mapping")
    amount = data.get("amountvulns") or "0"
    return AnchoreSettings(
        url=str(data.get("url") or ""),
        username=str(data.get("username") or ""),
        password=str(data.get("password") or ""),
        amount_vulns=int(amount),
    )


class AnchorePlugin:
    """Rejects images with more vulnerabilities than allowed."""

    def __init__(
        self,
        config_path: str | os.PathLike = DEFAULT_CONFIG_PATH,
        session: requests.Session | None = None,
        poll_interval: float = 1.0,
    ):
        self.config_path = Path(config_path)
        self.session = session if session is not None else requests.Session()
        self.poll_interval = poll_interval

    def process(self, image: str) -> bool:
        """Analyse ``image``; return True if it may be used."""
        logger.info("Anchore analysis initialized")
        settings = load_anchore_settings(self.config_path)
        credentials = f"{settings.username}:{settings.password}".encode()
        headers = {"Authorization": "Basic " + base64.b64encode(credentials).decode("ascii")}

        try:
            self.session.post(
                f"{settings.url}/v1/images", json={"tag": image}, headers=headers
            )
        except requests.ConnectionError as exc:
            if "connection refused" in str(exc).lower():
                logger.error("Anchore is offline")
                return True
            raise

        image_url = f"{settings.url}/v1/images/by_id/{image}"
        while True:
            status = self.session.get(image_url, headers=headers).json()
            if status[0].get("analysis_status") == "analyzed":
                break
            time.sleep(self.poll_interval)

        response = self.session.get(f"{image_url}/vuln/all", headers=headers)
        try:
            vulnerabilities = response.json().get("vulnerabilities") or []
        except ValueError:
            vulnerabilities = []

        logger.info("Vulnerabilities:")
        logger.info("%s", vulnerabilities)
        return len(vulnerabilities) <= settings.amount_vulns