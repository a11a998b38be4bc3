"""
Settings for ignore status tracking, with change notifications
"""

import os
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional

from .channels import Channel
from .constants import DEBOUNCE_SECONDS, RuleKind
from ignore_status.utils import get_logger

logger = get_logger(__name__)

_FALSE_VALUES = ('false', '0', 'no', 'off')


class SettingKey(Enum):
    IGNORED_FILE_STATUS = "ignored_file_status"
    OUTER_IGNORE_RULES = "outer_ignore_rules"
    LANGUAGES = "languages"
    HIDE_IGNORED_FILES = "hide_ignored_files"


@dataclass(frozen=True)
class SettingChange:
    key: SettingKey
    value: Any


@dataclass
class IgnoreSettings:
    """Configuration for ignore status tracking"""
    ignored_file_status: bool = True
    outer_ignore_rules: bool = True
    hide_ignored_files: bool = False
    languages: Dict[RuleKind, bool] = field(default_factory=dict)
    debounce_seconds: float = DEBOUNCE_SECONDS

    def __post_init__(self):
        """Validate configuration values"""
        self.debounce_seconds = max(0.0, float(self.debounce_seconds))
        self.languages = {kind: bool(self.languages.get(kind, True)) for kind in RuleKind}
        self._lock = threading.Lock()
        self.changes = Channel("settings")

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> 'IgnoreSettings':
        """
        Build settings from environment variables

        IGNORE_STATUS_ENABLED, IGNORE_STATUS_OUTER_RULES and
        IGNORE_STATUS_HIDE_IGNORED are booleans; IGNORE_STATUS_DISABLED_KINDS
        is a comma separated list of kind names; IGNORE_STATUS_DEBOUNCE_SECONDS
        is a float.
        """
        environ = os.environ if environ is None else environ

        def flag(name: str, default: bool) -> bool:
            value = environ.get(name)
            if value is None:
                return default
            return value.strip().lower() not in _FALSE_VALUES

        languages = {}
        for name in environ.get('IGNORE_STATUS_DISABLED_KINDS', '').split(','):
            name = name.strip()
            if not name:
                continue
            try:
                languages[RuleKind(name)] = False
            except ValueError:
                logger.warning(f"Unknown rule kind in IGNORE_STATUS_DISABLED_KINDS: {name}")

        debounce = DEBOUNCE_SECONDS
        raw_debounce = environ.get('IGNORE_STATUS_DEBOUNCE_SECONDS')
        if raw_debounce:
            try:
                debounce = float(raw_debounce)
            except ValueError:
                logger.warning(f"Invalid IGNORE_STATUS_DEBOUNCE_SECONDS: {raw_debounce}")

        return cls(
            ignored_file_status=flag('IGNORE_STATUS_ENABLED', True),
            outer_ignore_rules=flag('IGNORE_STATUS_OUTER_RULES', True),
            hide_ignored_files=flag('IGNORE_STATUS_HIDE_IGNORED', False),
            languages=languages,
            debounce_seconds=debounce,
        )

    def is_kind_enabled(self, kind: RuleKind) -> bool:
        with self._lock:
            return self.languages.get(kind, True)

    def enabled_kinds(self) -> FrozenSet[RuleKind]:
        with self._lock:
            return frozenset(kind for kind, enabled in self.languages.items() if enabled)

    def set_ignored_file_status(self, value: bool):
        self._set(SettingKey.IGNORED_FILE_STATUS, 'ignored_file_status', bool(value))

    def set_outer_ignore_rules(self, value: bool):
        self._set(SettingKey.OUTER_IGNORE_RULES, 'outer_ignore_rules', bool(value))

    def set_hide_ignored_files(self, value: bool):
        self._set(SettingKey.HIDE_IGNORED_FILES, 'hide_ignored_files', bool(value))

    def set_kind_enabled(self, kind: RuleKind, enabled: bool):
        with self._lock:
            if self.languages.get(kind) == bool(enabled):
                return
            self.languages = {**self.languages, kind: bool(enabled)}
            value = dict(self.languages)
        logger.info(f"Rule kind {kind.value} {'enabled' if enabled else 'disabled'}")
        self.changes.publish(SettingChange(SettingKey.LANGUAGES, value))

    def _set(self, key: SettingKey, attribute: str, value: Any):
        with self._lock:
            if getattr(self, attribute) == value:
                return
            setattr(self, attribute, value)
        logger.info(f"Setting {key.value} changed to {value}")
        self.changes.publish(SettingChange(key, value))
