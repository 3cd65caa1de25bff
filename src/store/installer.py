"""
App Installer - Per-package install lifecycle.

A package is in exactly one of three states:

    IDLE        not installing, not installed
    INSTALLING  has a progress entry (0-99)
    INSTALLED   listed in the installed set, no progress entry

An install run goes IDLE -> INSTALLING -> INSTALLED and always runs to
completion once started. Only uninstall() leads from INSTALLED back to
IDLE.
"""

from __future__ import annotations

import logging
import math
import random
import webbrowser
from abc import ABC, abstractmethod
from enum import Enum
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from common.decorators import handle_errors
from common.exceptions import SideEffectFailure

from .models import PackageRecord
from .persistence import PersistenceGateway
from .scheduler import Scheduler, TaskHandle

logger = logging.getLogger(__name__)

COMPLETE_PERCENT = 100.0


class InstallState(Enum):
    """Install status of a package."""
    IDLE = "idle"
    INSTALLING = "installing"
    INSTALLED = "installed"


# (package_id, state, percent) - percent is None outside INSTALLING
InstallListener = Callable[[str, InstallState, Optional[int]], None]


class ResourceOpener(ABC):
    """Opens a package's link outside the store."""

    @abstractmethod
    def open_url(self, url: str) -> None:
        """
        Open url.

        Raises:
            SideEffectFailure: If the link could not be opened.
        """
        pass


class BrowserOpener(ResourceOpener):
    """Opens links in the user's web browser."""

    def open_url(self, url: str) -> None:
        try:
            opened = webbrowser.open(url, new=2)
        except webbrowser.Error as e:
            raise SideEffectFailure(url, str(e), cause=e) from e
        if not opened:
            raise SideEffectFailure(url, "no browser available")


class NullOpener(ResourceOpener):
    """Ignores open requests (headless sessions, --no-open)."""

    def open_url(self, url: str) -> None:
        logger.debug(f"Not opening {url}")


class InstallTask:
    """
    Handle of one running install.

    Holds the timer of the next step; cancel() stops the run without
    reporting completion.
    """

    def __init__(self, package_id: str):
        self.package_id = package_id
        self.handle: Optional[TaskHandle] = None
        self.accumulated = 0.0
        self.done = False
        self.cancelled = False

    def cancel(self) -> None:
        if self.done or self.cancelled:
            return
        self.cancelled = True
        if self.handle is not None:
            self.handle.cancel()


class InstallBackend(ABC):
    """Base class for install backends."""

    @abstractmethod
    def start(
        self,
        package: PackageRecord,
        on_progress: Callable[[float], None],
        on_complete: Callable[[], None],
    ) -> InstallTask:
        """
        Begin installing a package.

        on_progress receives the raw percentage (below 100) after each
        step; on_complete is called exactly once when the run finishes.
        """
        pass


class SimulatedInstallBackend(InstallBackend):
    """
    Timer-driven stand-in for a download.

    Every tick adds a random amount in [0, max_increment) to the run's
    accumulator until it reaches 100.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        interval: float = 0.3,
        max_increment: float = 40.0,
        rng: Optional[random.Random] = None,
    ):
        self.scheduler = scheduler
        self.interval = interval
        self.max_increment = max_increment
        self.rng = rng or random.Random()

    def start(self, package, on_progress, on_complete) -> InstallTask:
        task = InstallTask(package.id)
        self._schedule(task, on_progress, on_complete)
        return task

    def _schedule(self, task, on_progress, on_complete) -> None:
        task.handle = self.scheduler.call_later(
            self.interval, lambda: self._tick(task, on_progress, on_complete)
        )

    def _tick(self, task, on_progress, on_complete) -> None:
        if task.cancelled:
            return

        task.accumulated += self.rng.random() * self.max_increment
        if task.accumulated >= COMPLETE_PERCENT:
            task.done = True
            on_complete()
            return

        on_progress(task.accumulated)
        self._schedule(task, on_progress, on_complete)


class InstallManager:
    """
    Tracks install state for every package.

    The progress map and installed set are replaced as a whole on every
    change, so a snapshot obtained from progress or installed_ids never
    changes underneath its holder.
    """

    def __init__(
        self,
        backend: InstallBackend,
        opener: Optional[ResourceOpener] = None,
        installed_ids: Iterable[str] = (),
        gateway: Optional[PersistenceGateway] = None,
    ):
        self.backend = backend
        self.opener = opener or NullOpener()
        self._gateway = gateway
        self._installed: Tuple[str, ...] = tuple(dict.fromkeys(installed_ids))
        self._progress: Dict[str, int] = {}
        self._tasks: Dict[str, InstallTask] = {}
        self._listeners: List[InstallListener] = []

    # -- observation ------------------------------------------------------

    @property
    def progress(self) -> Mapping[str, int]:
        """Read-only view of the current progress snapshot."""
        return MappingProxyType(self._progress)

    @property
    def installed_ids(self) -> Tuple[str, ...]:
        return self._installed

    @property
    def active_count(self) -> int:
        return len(self._progress)

    def is_installing(self, package_id: str) -> bool:
        return package_id in self._progress

    def is_installed(self, package_id: str) -> bool:
        return package_id in self._installed

    def state_of(self, package_id: str) -> InstallState:
        if package_id in self._progress:
            return InstallState.INSTALLING
        if package_id in self._installed:
            return InstallState.INSTALLED
        return InstallState.IDLE

    def progress_of(self, package_id: str) -> Optional[int]:
        return self._progress.get(package_id)

    def add_listener(self, listener: InstallListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: InstallListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, package_id: str, state: InstallState, percent: Optional[int]) -> None:
        for listener in list(self._listeners):
            try:
                listener(package_id, state, percent)
            except Exception as e:
                logger.warning(f"Install listener error: {e}")

    def _save_installed(self) -> None:
        if self._gateway is not None:
            self._gateway.save_installed_ids(self._installed)

    # -- operations -------------------------------------------------------

    @handle_errors(Exception, default=False, log_level=logging.WARNING,
                   message="Could not open package link")
    def _open_resource(self, url: str) -> bool:
        self.opener.open_url(url)
        return True

    def start_install(self, package: PackageRecord) -> bool:
        """
        Start installing a package.

        Does nothing if the package is already installing or installed.

        Returns:
            True if a new install run was started.
        """
        state = self.state_of(package.id)
        if state is not InstallState.IDLE:
            logger.debug(f"Ignoring install of {package.id}: already {state.value}")
            return False

        if package.has_link:
            self._open_resource(package.url)

        self._progress = {**self._progress, package.id: 0}
        logger.info(f"Installing {package.name} ({package.id})")
        self._notify(package.id, InstallState.INSTALLING, 0)

        try:
            task = self.backend.start(
                package,
                on_progress=lambda value: self._on_progress(package.id, value),
                on_complete=lambda: self._on_complete(package.id),
            )
        except Exception:
            self._progress = {k: v for k, v in self._progress.items() if k != package.id}
            self._notify(package.id, InstallState.IDLE, None)
            raise

        self._tasks[package.id] = task
        return True

    def _on_progress(self, package_id: str, value: float) -> None:
        if package_id not in self._progress:
            return
        percent = min(math.floor(value), 99)
        self._progress = {**self._progress, package_id: percent}
        self._notify(package_id, InstallState.INSTALLING, percent)

    def _on_complete(self, package_id: str) -> None:
        # both replacements happen before anyone is notified
        self._progress = {k: v for k, v in self._progress.items() if k != package_id}
        if package_id not in self._installed:
            self._installed = self._installed + (package_id,)
        self._tasks.pop(package_id, None)

        logger.info(f"Installed {package_id}")
        self._save_installed()
        self._notify(package_id, InstallState.INSTALLED, None)

    def uninstall(self, package_id: str) -> bool:
        """
        Remove a package from the installed set.

        Works for ids whose source has since been removed.

        Returns:
            True if the id was installed.
        """
        if package_id not in self._installed:
            return False

        self._installed = tuple(pid for pid in self._installed if pid != package_id)
        logger.info(f"Uninstalled {package_id}")
        self._save_installed()
        self._notify(package_id, self.state_of(package_id), self.progress_of(package_id))
        return True

    def open(self, package: PackageRecord) -> bool:
        """
        Open a package's link.

        Returns:
            True if the link was handed to the opener successfully.
        """
        if not package.has_link:
            return False
        return self._open_resource(package.url)
