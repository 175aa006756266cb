"""
Hot reload of the API definition.

Polls the definition file's modification time and rebuilds the route table
when it changes. A definition that fails to load leaves the previous routes
in place.
"""

import logging
import os
import stat
import threading
from typing import Callable, Optional

logger = logging.getLogger("gateway.config_reloader")

MIN_INTERVAL = 0.5


class ConfigFileWatcher:
    """
    Watches a single file for changes using modification time.
    """

    def __init__(self, file_path: str):
        self.file_path = file_path
        self._last_mtime: Optional[float] = None
        self._lock = threading.RLock()

    def has_changed(self) -> bool:
        """
        Check if the file has been modified since last check.
        """
        try:
            current_mtime = os.stat(self.file_path)[stat.ST_MTIME]
        except FileNotFoundError:
            logger.warning(f"API definition not found: {self.file_path}")
            return False
        except OSError as e:
            logger.error(f"Error checking API definition {self.file_path}: {e}")
            return False

        with self._lock:
            if self._last_mtime is None:
                self._last_mtime = current_mtime
                return False
            if current_mtime != self._last_mtime:
                self._last_mtime = current_mtime
                return True
            return False

    def update_mtime(self) -> None:
        try:
            with self._lock:
                self._last_mtime = os.stat(self.file_path)[stat.ST_MTIME]
        except OSError:
            self._last_mtime = None


class ApiSpecReloader:
    """
    Background thread calling `reload_callback` whenever the API definition changes.
    """

    def __init__(
        self,
        file_path: str,
        reload_callback: Callable[[], bool],
        interval: float = 1.0,
        enabled: bool = True,
    ):
        """
        Args:
            file_path: API definition to watch
            reload_callback: rebuilds the route table, returns False when the
                new definition was rejected
            interval: polling interval in seconds
            enabled: when False, start() is a no-op
        """
        self.watcher = ConfigFileWatcher(file_path)
        self._reload_callback = reload_callback
        self._interval = max(MIN_INTERVAL, interval)
        self._enabled = enabled
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if not self._enabled:
            logger.info("API definition reloader is disabled")
            return
        if self.running:
            logger.warning("API definition reloader already running")
            return

        self.watcher.update_mtime()
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop, daemon=True, name="api-spec-reloader"
        )
        self._thread.start()
        logger.info(f"API definition reloader started (interval={self._interval}s)")

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=self._interval + 1.0)
            self._thread = None
            logger.info("API definition reloader stopped")

    def check_and_reload(self) -> bool:
        """
        Reload when the file changed.

        Returns:
            True when a changed definition was applied
        """
        if not self.watcher.has_changed():
            return False
        logger.info(f"Detected changes in {self.watcher.file_path}, reloading...")
        applied = self._reload_callback()
        if applied:
            logger.info("API definition reloaded successfully")
        return applied

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.check_and_reload()
            except Exception as e:
                logger.error(f"Error in API definition reload loop: {e}")
            self._stop_event.wait(timeout=self._interval)
