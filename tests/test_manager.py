#!/usr/bin/env python3
"""
Tests for the IgnoreManager lifecycle and debounced notifications
"""

import threading
import time
import unittest
from pathlib import Path
from unittest.mock import Mock
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from ignore_status.ignore import (
    IgnoreFileRegistry, IgnoreManager, IgnoreSettings, RuleKind, StatusChanged, build_entry
)
from ignore_status.ignore.settings import SettingKey

ROOT = Path("/project")
DELAY = 0.1


class TestIgnoreManager(unittest.TestCase):
    """Test queries and lifecycle transitions"""

    def setUp(self):
        self.registry = IgnoreFileRegistry()
        self.rebuild = Mock()
        self.registry.set_rebuild_callback(self.rebuild)
        self.settings = IgnoreSettings()
        self.manager = IgnoreManager(
            ROOT, registry=self.registry, settings=self.settings, debounce_seconds=DELAY
        )
        self.statuses = self.manager.status_changed_channel.subscribe()

    def tearDown(self):
        self.manager.close()

    def register(self, source, lines, kind=RuleKind.GITIGNORE):
        self.registry.register(build_entry(source, kind, lines))

    def test_disabled_manager_never_ignores(self):
        self.register(ROOT / ".gitignore", ["*.log"])
        self.assertFalse(self.manager.is_file_ignored(ROOT / "a.log", is_dir=False))

        self.manager.enable()
        self.assertTrue(self.manager.is_file_ignored(ROOT / "a.log", is_dir=False))

        self.manager.disable()
        self.assertFalse(self.manager.is_file_ignored(ROOT / "a.log", is_dir=False))

    def test_setting_off_means_not_ignored(self):
        self.register(ROOT / ".gitignore", ["*.log"])
        self.manager.enable()
        self.settings.ignored_file_status = False
        self.assertFalse(self.manager.is_file_ignored(ROOT / "a.log", is_dir=False))

    def test_disabled_kind_via_settings(self):
        self.register(ROOT / ".gitignore", ["*.log"])
        self.manager.enable()
        self.settings.set_kind_enabled(RuleKind.GITIGNORE, False)
        self.assertFalse(self.manager.is_file_ignored(ROOT / "a.log", is_dir=False))

    def test_enable_is_idempotent(self):
        self.assertTrue(self.manager.enable())
        self.assertFalse(self.manager.enable())

        self.rebuild.assert_called_once()
        self.assertEqual(self.registry.changes.subscriber_count(), 1)

        self.assertIsInstance(self.statuses.get(timeout=2), StatusChanged)
        self.assertIsNone(self.statuses.get(timeout=DELAY * 3))

    def test_disable_is_idempotent_and_safe_when_never_enabled(self):
        self.assertFalse(self.manager.disable())
        self.assertFalse(self.manager.disable())

        self.manager.enable()
        self.assertTrue(self.manager.disable())
        self.assertFalse(self.manager.disable())
        self.assertEqual(self.registry.changes.subscriber_count(), 0)

    def test_toggle(self):
        self.assertTrue(self.manager.toggle(True))
        self.assertFalse(self.manager.toggle(True))
        self.assertTrue(self.manager.working)
        self.assertTrue(self.manager.toggle(False))
        self.assertFalse(self.manager.toggle(False))
        self.assertFalse(self.manager.working)

    def test_rule_file_changes_coalesce_into_one_notification(self):
        self.manager.enable()
        last_signal = None
        for i in range(5):
            self.register(ROOT / f"d{i}" / ".gitignore", ["*.log"])
            last_signal = time.monotonic()
            time.sleep(DELAY / 4)

        event = self.statuses.get(timeout=2)
        received = time.monotonic()
        self.assertIsInstance(event, StatusChanged)
        self.assertGreaterEqual(received - last_signal, DELAY * 0.9)
        self.assertIsNone(self.statuses.get(timeout=DELAY * 3))

    def test_notify_rule_file_changed(self):
        self.manager.notify_rule_file_changed(ROOT / ".gitignore")
        self.assertFalse(self.manager.notification_pending)

        self.manager.enable()
        self.statuses.get(timeout=2)
        self.manager.notify_rule_file_changed(ROOT / ".gitignore")
        self.assertTrue(self.manager.notification_pending)
        self.assertIsInstance(self.statuses.get(timeout=2), StatusChanged)

    def test_disable_suppresses_pending_notification(self):
        self.manager.enable()
        self.assertTrue(self.manager.notification_pending)
        self.manager.disable()
        self.assertFalse(self.manager.notification_pending)
        self.assertIsNone(self.statuses.get(timeout=DELAY * 3))

    def test_changes_after_disable_are_ignored(self):
        self.manager.enable()
        self.manager.disable()
        self.register(ROOT / ".gitignore", ["*.log"])
        self.assertFalse(self.manager.notification_pending)

    def test_initial_broadcast_waits_until_ready(self):
        manager = IgnoreManager(ROOT, registry=self.registry, debounce_seconds=DELAY, ready=False)
        statuses = manager.status_changed_channel.subscribe()
        self.register(ROOT / ".gitignore", ["*.log"])
        try:
            manager.enable()
            self.assertFalse(manager.notification_pending)
            self.assertFalse(manager.is_file_ignored(ROOT / "a.log", is_dir=False))

            manager.mark_smart()
            self.assertTrue(manager.notification_pending)
            self.assertTrue(manager.is_file_ignored(ROOT / "a.log", is_dir=False))
            self.assertIsInstance(statuses.get(timeout=2), StatusChanged)

            manager.mark_dumb()
            self.assertFalse(manager.is_file_ignored(ROOT / "a.log", is_dir=False))
        finally:
            manager.close()

    def test_disable_while_dumb_drops_deferred_broadcast(self):
        manager = IgnoreManager(ROOT, registry=self.registry, debounce_seconds=DELAY, ready=False)
        statuses = manager.status_changed_channel.subscribe()
        try:
            manager.enable()
            manager.disable()
            manager.mark_smart()
            self.assertIsNone(statuses.get(timeout=DELAY * 3))
        finally:
            manager.close()

    def test_disable_during_resolution(self):
        self.register(ROOT / ".gitignore", ["*.log"])
        self.manager.enable()
        self.assertTrue(self.manager.notification_pending)

        original_entries_for = self.registry.entries_for

        def entries_for(kind):
            self.manager.disable()
            return original_entries_for(kind)

        self.registry.entries_for = entries_for
        self.assertTrue(self.manager.is_file_ignored(ROOT / "a.log", is_dir=False))

        self.assertFalse(self.manager.working)
        self.assertFalse(self.manager.notification_pending)
        self.assertIsNone(self.statuses.get(timeout=DELAY * 3))

    def test_concurrent_queries(self):
        self.register(ROOT / ".gitignore", ["*.log", "!keep.log"])
        self.manager.enable()
        results = []

        def query():
            for _ in range(50):
                results.append(self.manager.is_file_ignored(ROOT / "a" / "x.log", is_dir=False))
                results.append(self.manager.is_file_ignored(ROOT / "a" / "keep.log", is_dir=False))

        threads = [threading.Thread(target=query) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(results.count(True), 200)
        self.assertEqual(results.count(False), 200)

    def test_tracked_ignored_stubs(self):
        self.register(ROOT / ".gitignore", ["*.log"])
        self.manager.enable()
        self.assertFalse(self.manager.is_file_ignored_and_tracked(ROOT / "a.log"))
        self.assertEqual(self.manager.get_tracked_ignored_files(), {})

        tracked = self.manager.tracked_ignored_channel.subscribe()
        self.assertIsNone(tracked.get(timeout=0.05))
        tracked.close()

    def test_internal_subscriptions_do_not_accumulate_events(self):
        self.manager.project_opened()
        for i in range(200):
            self.register(ROOT / f"d{i}" / ".gitignore", ["*.log"])
        self.settings.set_hide_ignored_files(True)

        self.assertEqual(self.manager._rule_subscription._queue.qsize(), 0)
        self.assertEqual(self.manager._settings_subscription._queue.qsize(), 0)

    def test_get_stats(self):
        self.register(ROOT / ".gitignore", ["*.log"])
        self.manager.enable()
        stats = self.manager.get_stats()
        self.assertTrue(stats['working'])
        self.assertEqual(stats['registry']['total_files'], 1)


class TestSettingsReactions(unittest.TestCase):
    """Test how the manager reacts to settings changes"""

    def setUp(self):
        self.registry = IgnoreFileRegistry()
        self.settings = IgnoreSettings()
        self.manager = IgnoreManager(
            ROOT, registry=self.registry, settings=self.settings, debounce_seconds=DELAY
        )

    def tearDown(self):
        self.manager.close()

    def test_project_opened_enables(self):
        self.manager.project_opened()
        self.assertTrue(self.manager.working)
        self.manager.project_opened()
        self.assertEqual(self.settings.changes.subscriber_count(), 1)

    def test_project_opened_respects_setting(self):
        self.settings.ignored_file_status = False
        self.manager.project_opened()
        self.assertFalse(self.manager.working)

    def test_ignored_file_status_toggles(self):
        self.manager.project_opened()
        self.settings.set_ignored_file_status(False)
        self.assertFalse(self.manager.working)
        self.settings.set_ignored_file_status(True)
        self.assertTrue(self.manager.working)

    def test_languages_change_signals_when_working(self):
        self.manager.project_opened()
        self.manager._debouncer.cancel()
        self.settings.set_kind_enabled(RuleKind.NPMIGNORE, False)
        self.assertTrue(self.manager.notification_pending)

    def test_outer_rules_change_enables_when_not_working(self):
        self.manager.project_opened()
        self.manager.disable()
        self.settings.set_outer_ignore_rules(False)
        self.assertTrue(self.manager.working)

    def test_hide_ignored_files_requests_view_refresh(self):
        refreshes = self.manager.view_refresh_channel.subscribe()
        self.manager.project_opened()
        self.settings.set_hide_ignored_files(True)
        change = refreshes.get(timeout=1)
        self.assertEqual(change.key, SettingKey.HIDE_IGNORED_FILES)
        self.assertTrue(change.value)

    def test_project_closed_detaches(self):
        self.manager.project_opened()
        self.manager.project_closed()
        self.assertFalse(self.manager.working)
        self.assertEqual(self.settings.changes.subscriber_count(), 0)
        self.settings.set_ignored_file_status(False)
        self.settings.set_ignored_file_status(True)
        self.assertFalse(self.manager.working)

    def test_context_manager(self):
        with IgnoreManager(ROOT, registry=self.registry, settings=self.settings) as manager:
            self.assertTrue(manager.working)
        self.assertFalse(manager.working)
        self.assertTrue(manager.status_changed_channel.closed)


if __name__ == "__main__":
    unittest.main()
