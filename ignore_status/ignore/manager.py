"""
Main ignore status API: resolution, lifecycle and debounced notifications
"""

import itertools
import logging
import os
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .channels import Channel, Subscription
from .debounce import Debouncer
from .registry import IgnoreFileRegistry, RuleFileChange, RuleSourceRegistry
from .resolver import Decision, HierarchicalResolver, ResolutionContext
from .settings import IgnoreSettings, SettingChange, SettingKey
from ignore_status.utils import get_logger, log_with_context

logger = get_logger(__name__)


@dataclass(frozen=True)
class StatusChanged:
    """Delivered once per quiet window on the status channel"""
    sequence: int
    timestamp: float


class IgnoreManager:
    """
    Ignore status context for one project.

    Owns the enabled state, the subscriptions to rule file and settings
    changes, and the debounced "file statuses changed" notification.
    Lifecycle transitions (enable, disable, toggle, open, close) are
    serialized by one lock; queries never take it.
    """

    def __init__(self,
                 root_path: Union[str, Path],
                 registry: Optional[RuleSourceRegistry] = None,
                 settings: Optional[IgnoreSettings] = None,
                 resolver: Optional[HierarchicalResolver] = None,
                 debounce_seconds: Optional[float] = None,
                 ready: bool = True):
        """
        Initialize the ignore manager

        Args:
            root_path: Project root; nothing above it is ever evaluated
            registry: Source of rule entries (in-memory registry by default)
            settings: Settings store (defaults to IgnoreSettings())
            resolver: Resolver implementation
            debounce_seconds: Quiet window (defaults to the settings value)
            ready: Whether the environment is ready for queries
        """
        self.root_path = Path(os.path.normpath(os.path.abspath(str(root_path))))
        self.registry = registry if registry is not None else IgnoreFileRegistry()
        self.settings = settings if settings is not None else IgnoreSettings()
        self._resolver = resolver or HierarchicalResolver()

        self._lock = threading.RLock()
        self._working = False
        self._opened = False
        self._ready = ready
        self._when_ready: List[Callable[[], None]] = []
        self._rule_subscription: Optional[Subscription] = None
        self._settings_subscription: Optional[Subscription] = None
        self._sequence = itertools.count(1)

        self.status_changed_channel = Channel("file-statuses-changed")
        # Never populated; kept so consumers can subscribe today
        self.tracked_ignored_channel = Channel("tracked-ignored-files")
        self.view_refresh_channel = Channel("view-refresh")

        delay = self.settings.debounce_seconds if debounce_seconds is None else debounce_seconds
        self._debouncer = Debouncer(self._file_statuses_changed, delay=delay, name="file-statuses")

    @property
    def working(self) -> bool:
        return self._working

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def enabled(self) -> bool:
        """Whether ignored file status is switched on in the settings"""
        return self.settings.ignored_file_status

    @property
    def notification_pending(self) -> bool:
        return self._debouncer.pending

    def context(self) -> ResolutionContext:
        """Snapshot of the state a resolution reads"""
        return ResolutionContext(
            root=self.root_path,
            registry=self.registry,
            enabled_kinds=self.settings.enabled_kinds(),
            active=self._working and self.enabled,
            ready=self._ready,
            outer_rules=self.settings.outer_ignore_rules,
        )

    def is_file_ignored(self, path: Union[str, Path], is_dir: Optional[bool] = None) -> bool:
        """
        Check if a file is ignored

        Args:
            path: Path to check (absolute, or relative to the project root)
            is_dir: Whether the path is a directory (checked on disk when None)

        Returns:
            True if ignored. False when not ignored, and also when the manager
            is disabled, not ready or the path lies outside the project root.
        """
        try:
            return self._resolver.is_ignored(self.context(), path, is_dir)
        except Exception as e:
            logger.error(f"Ignore resolution failed for {path}: {e}", exc_info=True)
            return False

    def explain(self, path: Union[str, Path],
                is_dir: Optional[bool] = None) -> Tuple[bool, List[Decision]]:
        """
        Resolve a path and report the per-entry verdicts behind the answer

        Returns:
            Tuple of (ignored, decisions)
        """
        try:
            return self._resolver.explain(self.context(), path, is_dir)
        except Exception as e:
            logger.error(f"Ignore resolution failed for {path}: {e}", exc_info=True)
            return False, []

    def is_file_ignored_and_tracked(self, path: Union[str, Path]) -> bool:
        """
        Check if a file is ignored and tracked by version control.

        Tracked file correlation is not implemented; always False.
        """
        return False

    def get_tracked_ignored_files(self) -> Dict[Path, Any]:
        """Tracked and ignored files; always empty (see is_file_ignored_and_tracked)"""
        return {}

    def enable(self) -> bool:
        """
        Start tracking ignore status

        Requests an index rebuild, subscribes to rule file changes and
        schedules the initial status broadcast for when the environment is
        ready. Calling it while already enabled does nothing.

        Returns:
            True if the manager transitioned to enabled
        """
        with self._lock:
            if self._working:
                return False

            try:
                self.registry.request_rebuild()
            except Exception as e:
                logger.error(f"Rule file index rebuild failed: {e}", exc_info=True)

            self._rule_subscription = self.registry.changes.subscribe(self._on_rule_files_changed)
            self._working = True
            self._invoke_when_ready(self._debouncer.signal)

        logger.info(f"Ignore status tracking enabled for {self.root_path}")
        return True

    def disable(self) -> bool:
        """
        Stop tracking ignore status

        Safe to call at any time and any number of times. A pending status
        notification is dropped and none is delivered after this returns.

        Returns:
            True if the manager transitioned to disabled
        """
        with self._lock:
            if self._rule_subscription is not None:
                self._rule_subscription.close()
                self._rule_subscription = None
            self._debouncer.cancel()
            self._when_ready = []

            was_working = self._working
            self._working = False

        if was_working:
            logger.info(f"Ignore status tracking disabled for {self.root_path}")
        return was_working

    def toggle(self, enable: bool) -> bool:
        """Enable or disable depending on the passed value"""
        if enable:
            return self.enable()
        return self.disable()

    def project_opened(self):
        """Attach to settings and enable if ignored file status is on"""
        with self._lock:
            if not self._opened:
                self._opened = True
                self._settings_subscription = self.settings.changes.subscribe(
                    self._on_settings_changed
                )
            if self.enabled and not self._working:
                self.enable()

    def project_closed(self):
        """Detach from everything"""
        with self._lock:
            self.disable()
            if self._settings_subscription is not None:
                self._settings_subscription.close()
                self._settings_subscription = None
            self._opened = False

    def close(self):
        """Close the project and every notification channel"""
        self.project_closed()
        self.status_changed_channel.close()
        self.tracked_ignored_channel.close()
        self.view_refresh_channel.close()

    def mark_dumb(self):
        """Environment is rebuilding indexes; queries answer False until smart"""
        with self._lock:
            self._ready = False
        logger.debug("Environment not ready for ignore queries")

    def mark_smart(self):
        """Environment is ready; run actions deferred while dumb"""
        with self._lock:
            self._ready = True
            actions, self._when_ready = self._when_ready, []
            for action in actions:
                action()
        logger.debug(f"Environment ready, ran {len(actions)} deferred actions")

    def notify_rule_file_changed(self, file_path: Union[str, Path]):
        """
        Handle external notification of a rule file change

        Args:
            file_path: Path to the changed rule file
        """
        if not self._working:
            return
        logger.debug(f"Rule file changed: {file_path}")
        self._debouncer.signal()

    def get_stats(self) -> Dict[str, Any]:
        stats = {
            'root_path': str(self.root_path),
            'working': self._working,
            'ready': self._ready,
            'notifications_sent': self._debouncer.fire_count,
            'notification_pending': self._debouncer.pending,
        }
        get_registry_stats = getattr(self.registry, 'get_stats', None)
        if get_registry_stats is not None:
            stats['registry'] = get_registry_stats()
        return stats

    def __enter__(self):
        self.project_opened()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _invoke_when_ready(self, action: Callable[[], None]):
        # caller holds the lock
        if self._ready:
            action()
        else:
            self._when_ready.append(action)

    def _on_rule_files_changed(self, change: RuleFileChange):
        if self._working:
            logger.debug(f"Rule files {change.action}: {change.source or self.root_path}")
            self._debouncer.signal()

    def _on_settings_changed(self, change: SettingChange):
        key = change.key
        if key is SettingKey.IGNORED_FILE_STATUS:
            self.toggle(bool(change.value))
        elif key in (SettingKey.OUTER_IGNORE_RULES, SettingKey.LANGUAGES):
            if self.enabled:
                with self._lock:
                    if self._working:
                        self._debouncer.signal()
                    else:
                        self.enable()
        elif key is SettingKey.HIDE_IGNORED_FILES:
            self.view_refresh_channel.publish(change)

    def _file_statuses_changed(self):
        with self._lock:
            # disable() may have won the race with the timer
            if not self._working:
                return
            event = StatusChanged(sequence=next(self._sequence), timestamp=time.time())
            delivered = self.status_changed_channel.publish(event)
        log_with_context(
            logger, logging.DEBUG, "File statuses changed",
            sequence=event.sequence, subscribers=delivered, root=str(self.root_path)
        )
