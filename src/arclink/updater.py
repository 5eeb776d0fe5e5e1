import logging
import threading

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable

import requests

from pydantic import BaseModel

from arclink.components import CATALOG, Component, ComponentRegistry, ComponentType
from arclink.errors import InstallError, InUseError, NetworkError, NotFoundError, UninstallError
from arclink.models import UPDATE_COOLDOWN, ArcLinkConfig, save_config
from arclink.process_monitor import ProcessMonitor
from arclink.sources import download_file, fetch_remote_version

logger = logging.getLogger(__name__)

NOTIFY_TITLE = "arcdps plugin manager"


class UpdateState(str, Enum):
    IDLE = "idle"
    CHECKING = "checking"
    INSTALLING = "installing"
    WAITING_FOR_PROCESS_EXIT = "waiting_for_process_exit"


class UpdateStatus(str, Enum):
    UPDATED = "updated"
    WAITING = "waiting"
    NO_UPDATE = "no_update"
    BUSY = "busy"
    SKIPPED = "skipped"


class UpdateResult(BaseModel):
    status: UpdateStatus
    updated: list[ComponentType] = []
    failed: list[ComponentType] = []
    pending: list[ComponentType] = []


def _ordered(components: Iterable[Component]) -> list[Component]:
    order = list(ComponentType)
    return sorted(components, key=lambda c: order.index(c.type))


class UpdateEngine:
    """
    Keeps installed arcdps components current.

    Only one check/apply cycle runs at a time. While the game is running,
    updates are parked until every tracked instance has exited, then applied
    once.
    """

    def __init__(
        self,
        config: ArcLinkConfig,
        registry: ComponentRegistry,
        monitor: ProcessMonitor | None = None,
        session: requests.Session | None = None,
        config_path: str | Path | None = None,
        on_notify: Callable[[str, str], None] | None = None,
    ):
        self.config = config
        self.registry = registry
        self.monitor = monitor or ProcessMonitor(config.game_executable)
        self.session = session or requests.Session()
        self.config_path = config_path
        self.on_notify = on_notify
        self.state = UpdateState.IDLE
        self.deferred_result: UpdateResult | None = None
        self._lock = threading.Lock()
        self._idle = threading.Event()
        self._idle.set()
        self._pending: set[Component] = set()
        self._instances = 0
        self._manual = False
        # Bumped whenever a thread takes over the running cycle
        self._generation = 0

    @property
    def game_root(self) -> str:
        return self.config.game_location

    @property
    def timeout(self) -> float:
        return self.config.http_timeout

    def _enter(self, state: UpdateState) -> int | None:
        with self._lock:
            if self.state is not UpdateState.IDLE:
                return None
            self._generation += 1
            self.state = state
            self._idle.clear()
            return self._generation

    def _leave(self, token: int):
        with self._lock:
            if token != self._generation or self.state is UpdateState.WAITING_FOR_PROCESS_EXIT:
                return
            self.state = UpdateState.IDLE
            self._idle.set()

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        return self._idle.wait(timeout)

    def run_cycle(self, manual: bool = False) -> UpdateResult:
        settings = self.config.arc_update
        if not manual:
            if not settings.enabled:
                return UpdateResult(status=UpdateStatus.SKIPPED)
            if datetime.now() - settings.last_update_check < UPDATE_COOLDOWN:
                logger.debug("Last update check is too recent, skipping")
                return UpdateResult(status=UpdateStatus.SKIPPED)

        token = self._enter(UpdateState.CHECKING)
        if token is None:
            logger.info("Update cycle already running, skipping")
            return UpdateResult(status=UpdateStatus.BUSY)

        self._manual = manual
        try:
            logger.info("Update check started.")
            needed = self._check()
            if needed:
                result = self._apply(needed)
            else:
                logger.info("Update check ended, no updates found.")
                result = UpdateResult(status=UpdateStatus.NO_UPDATE)
        finally:
            settings.last_update_check = datetime.now()
            self._save_config()
            self._leave(token)
        return result

    def check_for_updates(self) -> set[Component]:
        token = self._enter(UpdateState.CHECKING)
        if token is None:
            logger.info("Update cycle already running, check rejected")
            return set()
        try:
            return self._check()
        finally:
            self._leave(token)

    def apply_updates(self, components: Iterable[Component]) -> UpdateResult:
        token = self._enter(UpdateState.INSTALLING)
        if token is None:
            logger.info("Update cycle already running, apply rejected")
            return UpdateResult(status=UpdateStatus.BUSY)
        try:
            return self._apply(set(components))
        finally:
            self._leave(token)

    def cancel_wait(self):
        self.monitor.cancel()
        with self._lock:
            if self.state is not UpdateState.WAITING_FOR_PROCESS_EXIT:
                return
            self._pending = set()
            self._instances = 0
            self._generation += 1
            self.state = UpdateState.IDLE
            self._idle.set()
        logger.info("Deferred update cancelled")

    def _check(self) -> set[Component]:
        needed = set()
        for component in self.registry:
            try:
                remote = fetch_remote_version(self.session, component.info, self.timeout)
                component.remote_version = remote
                installed = component.installed_version(self.game_root)
            except (NetworkError, OSError) as e:
                logger.warning(f"Version check for {component.info.name} failed: {e}")
                continue
            if installed != remote:
                logger.info(f"{component.info.name}: installed {installed}, available {remote}")
                needed.add(component)
        return needed

    def _apply(self, components: set[Component]) -> UpdateResult:
        pending = {
            c for c in components
            if c.remote_version is None or c.installed_version(self.game_root) != c.remote_version
        }
        if not pending:
            return UpdateResult(status=UpdateStatus.NO_UPDATE)

        processes = self.monitor.running()
        if processes:
            with self._lock:
                self._pending = set(pending)
                self._instances = len(processes)
                self.state = UpdateState.WAITING_FOR_PROCESS_EXIT
            logger.info("Updates for installed plugins found, waiting for the game to close...")
            self._notify("An update for installed plugins has been found.\nPlease close the game to enable the update.")
            try:
                self.monitor.subscribe_exit(processes, self._on_process_exit)
            except Exception:
                with self._lock:
                    self._pending = set()
                    self._instances = 0
                    self.state = UpdateState.IDLE
                raise
            return UpdateResult(
                status=UpdateStatus.WAITING,
                pending=[c.type for c in _ordered(pending)],
            )

        with self._lock:
            self.state = UpdateState.INSTALLING
        logger.info("Updates for installed plugins found, updating...")
        result = UpdateResult(status=UpdateStatus.UPDATED)
        for component in _ordered(pending):
            try:
                self._download(component)
            except (NetworkError, InstallError) as e:
                logger.warning(f"Update of {component.info.name} failed: {e}")
                result.failed.append(component.type)
                continue
            result.updated.append(component.type)
        self._save_registry()
        if result.updated:
            logger.info("Updates successfully installed.")
            self._notify("An update for an installed plugin has been found and has been installed.")
        return result

    def _on_process_exit(self, pid: int):
        with self._lock:
            self._instances -= 1
            if self._instances > 0 or self.state is not UpdateState.WAITING_FOR_PROCESS_EXIT:
                return
            pending = self._pending
            self._pending = set()
            self._generation += 1
            token = self._generation
            self.state = UpdateState.INSTALLING
        logger.info("Game closed, applying deferred updates")
        try:
            self.deferred_result = self._apply(pending)
        finally:
            self._leave(token)

    def _download(self, component: Component):
        if not self.game_root:
            raise InstallError("Game location is not set")
        target = component.target_path(self.game_root)
        try:
            download_file(self.session, component.info.download_url, target, self.timeout)
        except OSError as e:
            raise InstallError(f"Unable to write {target}: {e}") from e
        component.version = component.remote_version

    def install(self, component_type: ComponentType) -> Component:
        if not self.game_root:
            raise InstallError("Game location is not set")
        info = CATALOG[component_type]
        component = self.registry.get(component_type) or Component(
            type=component_type,
            relative_install_path=info.relative_path(self.config.arc_update.use_addon_loader),
        )
        try:
            component.remote_version = fetch_remote_version(self.session, info, self.timeout)
        except NetworkError as e:
            logger.warning(f"Unable to read the current version of {info.name}: {e}")
        try:
            self._download(component)
        except NetworkError as e:
            raise InstallError(f"Unable to download {info.name}: {e}") from e
        self.registry.add(component)
        self._save_registry()
        logger.info(f"Installed {info.name} to {component.target_path(self.game_root)}")
        return component

    def uninstall(self, component_type: ComponentType):
        if self.state is not UpdateState.IDLE:
            raise InUseError("Unable to uninstall an arcdps plugin while an update is in progress")
        if self.monitor.is_running():
            raise InUseError("Unable to uninstall an arcdps plugin while the game is still running")
        component = self.registry.get(component_type)
        if component is None:
            raise NotFoundError(f"{component_type.value} is not installed")
        if self.game_root:
            target = component.target_path(self.game_root)
            try:
                target.unlink(missing_ok=True)
            except OSError as e:
                raise UninstallError(f"Unable to delete {target}: {e}") from e
        self.registry.remove(component_type)
        self._save_registry()
        logger.info(f"Uninstalled {component.info.name}")

    def reconcile(self):
        """Drop components whose file has gone missing."""
        for component in self.registry:
            if not component.is_installed(self.game_root):
                logger.info(f"{component.info.name} is no longer installed, forgetting it")
                self.registry.remove(component.type)
        if ComponentType.ARCDPS not in self.registry and self.config.game_location:
            logger.warning("arcdps is not installed, clearing the game location")
            self.config.game_location = ""
            self.config.arc_update.enabled = False
            self._save_config()
        self._save_registry()

    def set_game_location(self, path: str | Path):
        location = Path(path)
        if location.suffix.lower() == ".exe":
            location = location.parent
        if not location.is_dir():
            raise InstallError(f"{location} is not a directory")
        if (location / "addonLoader.dll").is_file():
            logger.info("Addon Loader found. Using Addon Loader")
            self.config.arc_update.use_addon_loader = True
        self.config.game_location = str(location)
        self.config.arc_update.enabled = True
        self._save_config()

        arcdps = self.registry.get(ComponentType.ARCDPS)
        if arcdps is None or not arcdps.is_installed(self.game_root):
            self.install(ComponentType.ARCDPS)
        for component in self.registry:
            if component.is_installed(self.game_root):
                continue
            try:
                self.install(component.type)
            except InstallError as e:
                logger.warning(f"Unable to install {component.info.name}: {e}")

    def _notify(self, message: str):
        if self.on_notify and self.config.arc_update.notifications and not self._manual:
            self.on_notify(NOTIFY_TITLE, message)

    def _save_registry(self):
        try:
            self.registry.save()
        except OSError as e:
            logger.warning(f"Unable to save component registry: {e}")

    def _save_config(self):
        if self.config_path is None:
            return
        try:
            save_config(self.config, self.config_path)
        except OSError as e:
            logger.warning(f"Unable to save config: {e}")
