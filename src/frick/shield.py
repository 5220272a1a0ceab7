"""
Shield appliers.

A shield applicator receives the active profile's targets and whether
blocking is on. `ProcessShield` is the desktop implementation: it terminates
running processes whose names match a blocked app, or an app listed under a
blocked category in `settings.category_apps`.
"""

from collections.abc import Iterable
from typing import Protocol

import psutil
from loguru import logger

from frick.errors import ShieldError
from frick.settings import settings
from frick.utils.notifications import send_notification


class ShieldApplicator(Protocol):
    def apply(
        self,
        target_apps: frozenset[str],
        target_categories: frozenset[str],
        blocking: bool,
    ) -> None:
        """Applies (or with blocking=False clears) the shield. Raises ShieldError."""
        ...


def kill_processes(process_names: Iterable[str]) -> tuple[set[str], set[str]]:
    """
    Kills every running process whose name is in `process_names`.

    Returns the names that were killed and the names that could not be
    killed because access was denied.
    """
    killed: set[str] = set()
    denied: set[str] = set()
    process_names_set = set(process_names)
    if not process_names_set:
        return killed, denied

    for proc in psutil.process_iter(["name"]):
        name = proc.info["name"]
        if name not in process_names_set:
            continue
        try:
            logger.info(f"Killing {name} (PID: {proc.pid})")
            proc.kill()
            killed.add(name)
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            logger.warning(f"Access denied killing {name} (PID: {proc.pid})")
            denied.add(name)

    return killed, denied


class ProcessShield:
    """Blocks apps by terminating their processes while blocking is on."""

    def __init__(self, category_apps: dict[str, list[str]] | None = None, notify: bool = True):
        self.category_apps = (
            settings.category_apps if category_apps is None else category_apps
        )
        self.notify = notify
        self.targets: frozenset[str] = frozenset()

    def resolve(
        self, target_apps: frozenset[str], target_categories: frozenset[str]
    ) -> frozenset[str]:
        names = set(target_apps)
        for category in target_categories:
            apps = self.category_apps.get(category)
            if apps is None:
                logger.warning(f"Unknown category '{category}', nothing to block for it")
                continue
            names.update(apps)
        return frozenset(names)

    def apply(
        self,
        target_apps: frozenset[str],
        target_categories: frozenset[str],
        blocking: bool,
    ) -> None:
        if not blocking:
            logger.info("Unblocking all apps")
            self.targets = frozenset()
            return

        self.targets = self.resolve(target_apps, target_categories)
        logger.info(
            f"Blocking {len(target_apps)} apps and {len(target_categories)} categories"
        )
        self.enforce()

    def enforce(self) -> None:
        """Kills any currently running target. Called again periodically by the daemon."""
        killed, denied = kill_processes(self.targets)

        if self.notify:
            for name in sorted(killed):
                send_notification(f"Blocked {name}", "App closed while Frick is blocking.")

        if denied:
            raise ShieldError(f"Not permitted to close: {', '.join(sorted(denied))}")
