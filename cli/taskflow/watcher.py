"""
Vault watcher

Watches the vault for Markdown changes with watchdog and forwards each
changed note to the plugin's change handler on the asyncio event loop.
Events are debounced per path, since editors often write a file in
several steps.
"""

import asyncio
import logging
import threading
from concurrent.futures import Future
from pathlib import Path
from typing import Dict, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .plugin import TaskflowPlugin
from .settings_store import ObsidianConfigReader

logger = logging.getLogger(__name__)


class VaultFileHandler(FileSystemEventHandler):
    """Handle file system events for markdown files in the vault"""

    def __init__(self, plugin: TaskflowPlugin, loop: asyncio.AbstractEventLoop,
                 debounce_delay: float = 0.25):
        self.plugin = plugin
        self.vault_path = plugin.vault_path.resolve()
        self.loop = loop
        self.debounce_delay = debounce_delay
        self.timers: Dict[str, threading.Timer] = {}
        self.lock = threading.Lock()

        obsidian_config = ObsidianConfigReader(self.vault_path)
        self.template_folder = obsidian_config.get_template_folder()
        if self.template_folder:
            logger.info("Templates enabled, excluding folder: %s", self.template_folder)

    def relative_note_path(self, file_path: Path) -> Optional[str]:
        """Vault-relative path if the file should be processed, else None"""
        if file_path.suffix.lower() != '.md':
            return None

        try:
            relative_path = file_path.resolve().relative_to(self.vault_path)
        except ValueError:
            return None

        # Skip hidden directories
        if any(part.startswith('.') for part in relative_path.parts):
            return None

        path = relative_path.as_posix()
        if self.template_folder and path.startswith(self.template_folder + "/"):
            return None
        if path == self.plugin.settings.template_path:
            return None
        return path

    def on_modified(self, event: FileSystemEvent):
        if not event.is_directory:
            self.notify(Path(event.src_path))

    def on_created(self, event: FileSystemEvent):
        if not event.is_directory:
            self.notify(Path(event.src_path))

    def on_moved(self, event: FileSystemEvent):
        if not event.is_directory:
            self.notify(Path(event.dest_path))

    def notify(self, file_path: Path):
        path = self.relative_note_path(file_path)
        if path is None:
            return
        with self.lock:
            existing = self.timers.get(path)
            if existing is not None:
                existing.cancel()
            timer = threading.Timer(self.debounce_delay, self._dispatch, args=(path,))
            timer.daemon = True
            self.timers[path] = timer
            timer.start()

    def _dispatch(self, path: str):
        with self.lock:
            self.timers.pop(path, None)
        if self.loop.is_closed():
            return
        coro = self.plugin.on_file_changed(path)
        try:
            future = asyncio.run_coroutine_threadsafe(coro, self.loop)
        except RuntimeError:
            # Loop shut down between the check and the call
            coro.close()
            return
        future.add_done_callback(lambda f: self._log_failure(path, f))

    @staticmethod
    def _log_failure(path: str, future: Future):
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error("Change handler failed for %s: %s", path, error)

    def cancel_pending(self):
        with self.lock:
            for timer in self.timers.values():
                timer.cancel()
            self.timers.clear()


class VaultWatcher:
    """Runs a watchdog observer over the vault for one plugin instance"""

    def __init__(self, plugin: TaskflowPlugin, debounce_delay: float = 0.25):
        self.plugin = plugin
        self.debounce_delay = debounce_delay
        self.observer: Optional[Observer] = None
        self.handler: Optional[VaultFileHandler] = None

    @property
    def running(self) -> bool:
        return self.observer is not None

    def start(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        if self.running:
            logger.warning("Watcher is already running")
            return
        loop = loop or asyncio.get_running_loop()
        self.handler = VaultFileHandler(self.plugin, loop, self.debounce_delay)
        self.observer = Observer()
        self.observer.schedule(self.handler, str(self.plugin.vault_path), recursive=True)
        self.observer.start()
        logger.info("Watching %s for note changes", self.plugin.vault_path)

    def stop(self):
        if not self.running:
            return
        self.handler.cancel_pending()
        self.observer.stop()
        self.observer.join()
        self.observer = None
        self.handler = None
        logger.info("Watcher stopped")
