"""
Watchdog monitor for rule files

Reloads changed rule files into the index and tells the IgnoreManager, which
coalesces the changes into one debounced status notification.
"""

from pathlib import Path
from typing import Callable, List, Optional, Set

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ignore_status.ignore import IgnoreManager, RuleFileIndex
from ignore_status.utils import get_logger

logger = get_logger("watchdog-monitor")


class RuleFileHandler(FileSystemEventHandler):
    """
    Watches for changes to rule files and updates the index
    """

    def __init__(self, ignore_manager: IgnoreManager,
                 index: RuleFileIndex,
                 on_change_callback: Optional[Callable[[str], None]] = None):
        """
        Initialize the rule file handler

        Args:
            ignore_manager: The IgnoreManager to notify
            index: Index that reloads changed rule files
            on_change_callback: Optional callback when rule files change
        """
        super().__init__()
        self.ignore_manager = ignore_manager
        self.index = index
        self.on_change_callback = on_change_callback

    def _is_rule_file(self, path: str) -> bool:
        return self.index.kind_for_path(Path(path)) is not None

    def _handle(self, path: str, description: str):
        logger.info(f"Detected {description} of rule file: {path}")
        self.index.reload_file(Path(path))
        self.ignore_manager.notify_rule_file_changed(path)

        if self.on_change_callback:
            self.on_change_callback(path)

    def on_created(self, event: FileSystemEvent):
        if not event.is_directory and self._is_rule_file(event.src_path):
            self._handle(event.src_path, "creation")

    def on_modified(self, event: FileSystemEvent):
        if not event.is_directory and self._is_rule_file(event.src_path):
            self._handle(event.src_path, "change")

    def on_deleted(self, event: FileSystemEvent):
        if not event.is_directory and self._is_rule_file(event.src_path):
            self._handle(event.src_path, "deletion")

    def on_moved(self, event: FileSystemEvent):
        if event.is_directory:
            return
        dest_path = getattr(event, 'dest_path', None)
        if self._is_rule_file(event.src_path):
            self._handle(event.src_path, "move")
        if dest_path and dest_path != event.src_path and self._is_rule_file(dest_path):
            self._handle(dest_path, "move")


class WatchdogMonitor:
    """
    Manages file system watching for one project
    """

    def __init__(self, ignore_manager: IgnoreManager,
                 index: RuleFileIndex,
                 recursive: bool = True):
        """
        Initialize the watchdog monitor

        Args:
            ignore_manager: The IgnoreManager to integrate with
            index: Index that reloads changed rule files
            recursive: Whether to watch subdirectories
        """
        self.ignore_manager = ignore_manager
        self.index = index
        self.recursive = recursive

        self._observer: Optional[Observer] = None
        self._handler: Optional[RuleFileHandler] = None
        self._watched_paths: Set[Path] = set()

    def start(self, paths: Optional[List[str]] = None,
              on_change_callback: Optional[Callable[[str], None]] = None):
        """
        Start monitoring for changes

        Args:
            paths: Paths to watch (defaults to the project root)
            on_change_callback: Optional callback for changes
        """
        if self._observer is not None:
            logger.warning("Monitor already running")
            return

        if paths is None:
            paths = [str(self.ignore_manager.root_path)]

        self._handler = RuleFileHandler(
            self.ignore_manager,
            self.index,
            on_change_callback=on_change_callback
        )
        self._observer = Observer()

        for path in paths:
            path_obj = Path(path)
            if path_obj.is_dir():
                self._observer.schedule(
                    self._handler,
                    str(path_obj),
                    recursive=self.recursive
                )
                self._watched_paths.add(path_obj)
                logger.info(f"Watching directory: {path_obj}")
            else:
                logger.warning(f"Path does not exist or is not a directory: {path}")

        self._observer.start()
        logger.info("Watchdog monitor started")

    def stop(self):
        """Stop monitoring for changes"""
        if self._observer is None:
            logger.warning("Monitor not running")
            return

        self._observer.stop()
        self._observer.join()
        self._observer = None
        self._handler = None
        self._watched_paths.clear()

        logger.info("Watchdog monitor stopped")

    def is_running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    def get_watched_paths(self) -> List[str]:
        return [str(p) for p in self._watched_paths]

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
