import logging
import threading

from typing import Callable

import psutil

logger = logging.getLogger(__name__)

POLL_INTERVAL = 1.0


class ProcessMonitor:
    """Finds running game instances and reports when they exit."""

    def __init__(self, executable: str, poll_interval: float = POLL_INTERVAL):
        self.executable = executable.lower()
        self.poll_interval = poll_interval
        self._subscriptions: list[threading.Event] = []
        self._watchers: list[threading.Thread] = []

    def running(self) -> list[psutil.Process]:
        processes = []
        for p in psutil.process_iter(["pid", "name"]):
            try:
                name = (p.info["name"] or "").lower()
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
            if name == self.executable:
                processes.append(p)
        return processes

    def is_running(self) -> bool:
        return len(self.running()) > 0

    def subscribe_exit(self, processes: list[psutil.Process], callback: Callable[[int], None]):
        # one flag per subscription, set by cancel()
        cancelled = threading.Event()
        self._subscriptions.append(cancelled)
        self._watchers = [w for w in self._watchers if w.is_alive()]
        for process in processes:
            watcher = threading.Thread(
                target=self._watch,
                args=(process, callback, cancelled),
                name=f"exit-watch-{process.pid}",
                daemon=True,
            )
            self._watchers.append(watcher)
            watcher.start()

    def cancel(self):
        for cancelled in self._subscriptions:
            cancelled.set()
        self._subscriptions = []

    def _watch(self, process: psutil.Process, callback: Callable[[int], None], cancelled: threading.Event):
        while not cancelled.is_set():
            try:
                process.wait(timeout=self.poll_interval)
            except psutil.TimeoutExpired:
                continue
            except psutil.NoSuchProcess:
                pass
            break
        if cancelled.is_set():
            logger.debug(f"Stopped watching process {process.pid}")
            return
        logger.info(f"Game process {process.pid} exited")
        try:
            callback(process.pid)
        except Exception:
            logger.exception(f"Exit handler for process {process.pid} failed")
