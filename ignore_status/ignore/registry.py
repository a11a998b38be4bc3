"""
Registry of compiled rule entries grouped by rule kind
"""

import itertools
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple

from .channels import Channel
from .constants import RuleKind
from .rule_engine import RuleEntry
from ignore_status.utils import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RuleFileChange:
    """Published on the registry's change channel"""
    action: str  # 'registered', 'unregistered' or 'rebuilt'
    source: Optional[Path] = None
    kind: Optional[RuleKind] = None


class RuleSourceRegistry(ABC):
    """
    Interface the resolver consumes to find rule entries.

    Implementations own the entries; callers only read them.
    """

    changes: Channel

    @abstractmethod
    def list_kinds(self) -> List[RuleKind]:
        """Kinds with at least one entry, in evaluation order"""

    @abstractmethod
    def entries_for(self, kind: RuleKind) -> Tuple[RuleEntry, ...]:
        """All entries of a kind, project-wide"""

    @abstractmethod
    def working_directory_for(self, entry: RuleEntry) -> Optional[Path]:
        """Anchor directory for working-directory anchored kinds"""

    @abstractmethod
    def additional_indexable_files(self) -> FrozenSet[Path]:
        """Rule files that apply outside their own directory"""

    def request_rebuild(self):
        """Ask the indexing side to rebuild all entries"""


def _mtime(source: Path) -> Optional[float]:
    try:
        if source.exists():
            return source.stat().st_mtime
    except OSError as e:
        logger.warning(f"Could not stat {source}: {e}")
    return None


@dataclass
class RegistryEntry:
    """Entry for a registered rule file"""
    entry: RuleEntry
    sequence: int
    last_modified: Optional[float] = None


class IgnoreFileRegistry(RuleSourceRegistry):
    """
    Thread-safe in-memory registry of rule entries.

    Readers get immutable tuples; every update replaces the tuple for the
    affected kind so a reader never sees a partial update.
    """

    def __init__(self, rebuild_callback: Optional[Callable[[], None]] = None):
        self._files: Dict[RuleKind, Dict[Path, RegistryEntry]] = {}
        self._snapshots: Dict[RuleKind, Tuple[RuleEntry, ...]] = {}
        self._working_directories: Dict[Path, Path] = {}
        self._additional_files: FrozenSet[Path] = frozenset()
        self._sequence = itertools.count()
        self._lock = threading.Lock()
        self._rebuild_callback = rebuild_callback
        self.changes = Channel("rule-files")

    def set_rebuild_callback(self, callback: Optional[Callable[[], None]]):
        self._rebuild_callback = callback

    def register(self, entry: RuleEntry):
        """
        Register or replace a rule entry

        A replaced entry keeps its position in iteration order.

        Args:
            entry: Compiled entry for a rule file
        """
        last_modified = _mtime(entry.source)

        with self._lock:
            files = self._files.setdefault(entry.kind, {})
            previous = files.get(entry.source)
            sequence = previous.sequence if previous else next(self._sequence)
            files[entry.source] = RegistryEntry(
                entry=entry,
                sequence=sequence,
                last_modified=last_modified
            )
            self._refresh_snapshot(entry.kind)

        logger.debug(f"Registered {entry.kind.value} rule file: {entry.source}")
        self.changes.publish(RuleFileChange('registered', entry.source, entry.kind))

    def unregister(self, source: Path, kind: Optional[RuleKind] = None) -> bool:
        """
        Remove a rule file from the registry

        Args:
            source: Path to the rule file
            kind: Restrict removal to this kind (all kinds when None)

        Returns:
            True if anything was removed
        """
        source = Path(source)
        removed_kinds = []
        with self._lock:
            kinds = [kind] if kind else list(self._files)
            for candidate in kinds:
                files = self._files.get(candidate)
                if files and source in files:
                    del files[source]
                    if not files:
                        del self._files[candidate]
                    self._refresh_snapshot(candidate)
                    removed_kinds.append(candidate)

        for removed in removed_kinds:
            logger.debug(f"Unregistered {removed.value} rule file: {source}")
            self.changes.publish(RuleFileChange('unregistered', source, removed))
        return bool(removed_kinds)

    def replace_all(self, entries: Iterable[RuleEntry]):
        """
        Replace every entry at once

        Args:
            entries: Complete new set of entries
        """
        entries = list(entries)
        mtimes = {entry.source: _mtime(entry.source) for entry in entries}
        with self._lock:
            self._files.clear()
            self._snapshots.clear()
            for entry in entries:
                files = self._files.setdefault(entry.kind, {})
                files[entry.source] = RegistryEntry(
                    entry=entry,
                    sequence=next(self._sequence),
                    last_modified=mtimes[entry.source]
                )
            for kind in list(self._files):
                self._refresh_snapshot(kind)

        logger.info(f"Registry rebuilt with {len(entries)} rule files")
        self.changes.publish(RuleFileChange('rebuilt'))

    def list_kinds(self) -> List[RuleKind]:
        with self._lock:
            return [kind for kind in RuleKind if self._snapshots.get(kind)]

    def entries_for(self, kind: RuleKind) -> Tuple[RuleEntry, ...]:
        with self._lock:
            return self._snapshots.get(kind, ())

    def get_entry(self, source: Path, kind: RuleKind) -> Optional[RuleEntry]:
        with self._lock:
            registered = self._files.get(kind, {}).get(Path(source))
            return registered.entry if registered else None

    def set_working_directory(self, source: Path, working_directory: Optional[Path]):
        """
        Override the working directory of a rule file (e.g. for worktrees)

        Args:
            source: Rule file path
            working_directory: Anchor to use, or None to drop the override
        """
        with self._lock:
            if working_directory is None:
                self._working_directories.pop(Path(source), None)
            else:
                self._working_directories[Path(source)] = Path(working_directory)

    def working_directory_for(self, entry: RuleEntry) -> Optional[Path]:
        with self._lock:
            override = self._working_directories.get(entry.source)
        if override is not None:
            return override
        if entry.kind is RuleKind.GIT_EXCLUDE:
            info_dir = entry.source.parent
            git_dir = info_dir.parent
            if info_dir.name == 'info' and git_dir.name == '.git':
                return git_dir.parent
            return None
        return entry.parent

    def set_additional_files(self, files: Iterable[Path]):
        with self._lock:
            self._additional_files = frozenset(Path(f) for f in files)

    def additional_indexable_files(self) -> FrozenSet[Path]:
        with self._lock:
            return self._additional_files

    def request_rebuild(self):
        if self._rebuild_callback is None:
            logger.debug("Rebuild requested but no indexer is attached")
            return
        logger.info("Rebuilding rule file index")
        self._rebuild_callback()

    def get_all_files(self) -> List[Path]:
        with self._lock:
            return [source for files in self._files.values() for source in files]

    def has_file_changed(self, source: Path) -> bool:
        """
        Check if a registered file has changed on disk

        Args:
            source: Path to check

        Returns:
            True if file has changed or doesn't exist
        """
        source = Path(source)
        with self._lock:
            registered = [files[source] for files in self._files.values() if source in files]
        if not registered:
            return False
        if not source.exists():
            return True
        try:
            current_mtime = source.stat().st_mtime
        except OSError:
            return True
        return any(current_mtime != r.last_modified for r in registered)

    def get_stats(self) -> Dict[str, int]:
        """
        Get registry statistics

        Returns:
            Dictionary with registry stats
        """
        with self._lock:
            stats = {
                'total_files': sum(len(files) for files in self._files.values()),
                'total_patterns': sum(
                    len(r.entry.items)
                    for files in self._files.values()
                    for r in files.values()
                ),
                'additional_files': len(self._additional_files),
            }
            for kind in RuleKind:
                stats[f'{kind.value}_files'] = len(self._files.get(kind, {}))
            return stats

    def clear(self):
        """Clear the registry"""
        with self._lock:
            self._files.clear()
            self._snapshots.clear()

    def _refresh_snapshot(self, kind: RuleKind):
        # caller holds the lock; shallow rule files first, then registration order
        files = self._files.get(kind)
        if not files:
            self._snapshots.pop(kind, None)
            return
        ordered = sorted(
            files.values(),
            key=lambda r: (len(r.entry.parent.parts), r.sequence)
        )
        self._snapshots[kind] = tuple(r.entry for r in ordered)
