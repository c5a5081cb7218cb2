"""Checks of container options against the configured restrictions."""

from __future__ import annotations

import logging
from collections.abc import Iterable

logger = logging.getLogger(__name__)


def check_intersection(
    user_items: Iterable[str], security_items: Iterable[str], item_type: str
) -> bool:
    """Return True if any requested item is forbidden, logging each match."""
    user_items = list(user_items)
    found = False
    for forbidden in security_items:
        for item in user_items:
            if forbidden == item:
                logger.error("Forbidden %s: %s", item_type, forbidden)
                found = True
    return found


def check_permissions(data, config) -> bool:
    """Return True if the container options pass every restriction."""
    restrictions = config.restrictions
    # Every check runs so that all violations get logged.
    checks = [
        check_intersection(data.ports, restrictions.ports, "port"),
        check_intersection(data.mounts, restrictions.mounts, "mount"),
        check_intersection(data.env, restrictions.environment, "environment"),
        check_intersection([data.user], restrictions.users, "users"),
        check_intersection([data.image], restrictions.images, "images"),
    ]
    if data.privileged == restrictions.privileged:
        logger.error("Forbidden privileged")
        checks.append(True)
    checks.append(
        check_intersection(
            data.security_policies, restrictions.security_policies, "securityPolicies"
        )
    )
    return not any(checks)