"""
Loading, discovery and indexing of rule files
"""

import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .constants import (
    MAX_PATTERNS_PER_FILE, MAX_RULE_FILE_SIZE, RULE_FILENAMES, SKIP_DIRECTORIES, RuleKind
)
from .errors import RuleFileError
from .registry import IgnoreFileRegistry
from .rule_engine import RuleEntry, build_entry, validate_pattern
from ignore_status.utils import get_logger

logger = get_logger(__name__)


@dataclass
class ValidationError:
    """Represents a validation error in a rule file"""
    line: int
    pattern: str
    message: str


@dataclass
class ValidationWarning:
    """Represents a validation warning in a rule file"""
    line: int
    pattern: str
    message: str


@dataclass
class RuleFileInfo:
    """Information about a loaded rule file"""
    path: Path
    kind: RuleKind
    patterns: List[str] = field(default_factory=list)
    valid_patterns: List[str] = field(default_factory=list)
    errors: List[ValidationError] = field(default_factory=list)
    warnings: List[ValidationWarning] = field(default_factory=list)
    stats: Dict[str, int] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    @property
    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    @property
    def is_usable(self) -> bool:
        """False when the file had errors and no pattern survived"""
        return not self.errors or bool(self.valid_patterns)

    def to_entry(self) -> RuleEntry:
        """Compile the valid patterns into an immutable RuleEntry"""
        return build_entry(self.path, self.kind, self.valid_patterns)


def kind_for_path(path: Path) -> Optional[RuleKind]:
    """
    Classify a path as a rule file

    Args:
        path: Any path

    Returns:
        RuleKind of the rule file, or None if it is not one
    """
    path = Path(path)
    if path.parts[-3:] == ('.git', 'info', 'exclude'):
        return RuleKind.GIT_EXCLUDE
    for kind, filename in RULE_FILENAMES.items():
        if '/' not in filename and path.name == filename:
            return kind
    return None


class RuleFileLoader:
    """
    Handles loading, parsing, and validating rule files
    """

    def load_file(self, file_path: Path, kind: Optional[RuleKind] = None) -> RuleFileInfo:
        """
        Load and validate a rule file

        Args:
            file_path: Path to the rule file
            kind: Rule kind (derived from the file name when None)

        Returns:
            RuleFileInfo with patterns and validation results
        """
        file_path = Path(file_path)
        kind = kind or kind_for_path(file_path) or RuleKind.GITIGNORE
        info = RuleFileInfo(
            path=file_path,
            kind=kind,
            stats={
                'total_lines': 0,
                'empty_lines': 0,
                'comment_lines': 0,
                'pattern_lines': 0,
            }
        )

        try:
            lines = self._read_lines(file_path)
        except RuleFileError as e:
            info.errors.append(ValidationError(line=0, pattern="", message=e.message))
            return info

        info.stats['total_lines'] = len(lines)

        for line_num, line in enumerate(lines, 1):
            pattern = line.rstrip('\n\r')

            if not pattern.strip():
                info.stats['empty_lines'] += 1
                continue

            if pattern.startswith('#'):
                info.stats['comment_lines'] += 1
                continue

            info.stats['pattern_lines'] += 1
            info.patterns.append(pattern)

            is_valid, validation_msg = validate_pattern(pattern)
            if is_valid:
                info.valid_patterns.append(pattern)
            else:
                info.errors.append(ValidationError(
                    line=line_num,
                    pattern=pattern,
                    message=validation_msg or "Invalid pattern"
                ))

            for warning_msg in self._check_pattern_warnings(pattern):
                info.warnings.append(ValidationWarning(
                    line=line_num,
                    pattern=pattern,
                    message=warning_msg
                ))

        if len(info.valid_patterns) > MAX_PATTERNS_PER_FILE:
            info.errors.append(ValidationError(
                line=0,
                pattern="",
                message=f"Too many patterns: {len(info.valid_patterns)} (max: {MAX_PATTERNS_PER_FILE})"
            ))
            info.valid_patterns = info.valid_patterns[:MAX_PATTERNS_PER_FILE]

        return info

    def find_rule_files(self, root_path: Path,
                        kinds: Optional[Iterable[RuleKind]] = None,
                        max_depth: Optional[int] = None) -> List[Tuple[Path, RuleKind]]:
        """
        Find all rule files under a root path

        Args:
            root_path: Root directory to search from
            kinds: Kinds to look for (all kinds when None)
            max_depth: Maximum directory depth to search (None = unlimited)

        Returns:
            (path, kind) pairs ordered from root to leaves
        """
        root_path = Path(root_path)
        wanted = set(kinds) if kinds is not None else set(RuleKind)
        by_name = {
            filename: kind for kind, filename in RULE_FILENAMES.items()
            if kind in wanted and '/' not in filename
        }
        found = []

        for dirpath, dirnames, filenames in os.walk(root_path):
            dirpath = Path(dirpath)
            depth = len(dirpath.relative_to(root_path).parts)

            if RuleKind.GIT_EXCLUDE in wanted and '.git' in dirnames:
                exclude = dirpath / RULE_FILENAMES[RuleKind.GIT_EXCLUDE]
                if exclude.is_file():
                    found.append((exclude, RuleKind.GIT_EXCLUDE))

            for filename in sorted(filenames):
                if filename in by_name:
                    found.append((dirpath / filename, by_name[filename]))

            if max_depth is not None and depth >= max_depth:
                dirnames[:] = []
            else:
                dirnames[:] = sorted(d for d in dirnames if d not in SKIP_DIRECTORIES)

        found.sort(key=lambda item: len(item[0].parent.parts))
        return found

    def _read_lines(self, file_path: Path) -> List[str]:
        try:
            file_size = file_path.stat().st_size
        except FileNotFoundError:
            raise RuleFileError(file_path, f"File not found: {file_path}")
        except OSError as e:
            raise RuleFileError(file_path, f"Cannot stat file: {e}")

        if file_size > MAX_RULE_FILE_SIZE:
            raise RuleFileError(
                file_path,
                f"File too large: {file_size} bytes (max: {MAX_RULE_FILE_SIZE})"
            )

        try:
            with open(file_path, 'r', encoding='utf-8', errors='replace') as f:
                return f.readlines()
        except OSError as e:
            raise RuleFileError(file_path, f"Error reading file: {e}")

    def _check_pattern_warnings(self, pattern: str) -> List[str]:
        """
        Check pattern for potential issues that aren't errors

        Args:
            pattern: Pattern to check

        Returns:
            List of warning messages
        """
        warnings = []

        if '\\' in pattern and not pattern.startswith(('\\#', '\\!')):
            warnings.append(
                "Pattern contains backslash. Use forward slashes for paths."
            )

        if pattern.lstrip('!') in ['*', '**', '**/*']:
            warnings.append(
                "Very broad pattern - will ignore many files"
            )

        if pattern != pattern.rstrip() and not pattern.rstrip().endswith('\\'):
            warnings.append(
                "Trailing whitespace is ignored unless escaped with a backslash"
            )

        return warnings


class RuleFileIndex:
    """
    Keeps a registry in sync with the rule files on disk
    """

    def __init__(self, root_path: Path,
                 registry: IgnoreFileRegistry,
                 loader: Optional[RuleFileLoader] = None,
                 kinds: Optional[Iterable[RuleKind]] = None,
                 extra_files: Sequence[Tuple[Path, RuleKind]] = ()):
        """
        Initialize the index

        Args:
            root_path: Project root to scan
            registry: Registry to populate; the index becomes its rebuild callback
            loader: Rule file loader
            kinds: Kinds to index (all kinds when None)
            extra_files: Rule files outside the project that still apply
                (e.g. a global excludes file)
        """
        self.root_path = Path(root_path)
        self.registry = registry
        self.loader = loader or RuleFileLoader()
        self.kinds = list(kinds) if kinds is not None else list(RuleKind)
        self.extra_files = [(Path(p), k) for p, k in extra_files]
        self._lock = threading.Lock()
        registry.set_rebuild_callback(self.rebuild)

    def rebuild(self) -> int:
        """
        Rescan the project and replace every registered entry

        Returns:
            Number of rule files indexed
        """
        with self._lock:
            logger.info(f"Discovering rule files under: {self.root_path}")
            found = self.loader.find_rule_files(self.root_path, self.kinds)
            entries = []
            for file_path, kind in list(self.extra_files) + found:
                info = self.loader.load_file(file_path, kind)
                self._log_problems(info)
                if not info.is_usable:
                    continue
                entries.append(info.to_entry())

            self.registry.set_additional_files(p for p, _ in self.extra_files)
            self.registry.replace_all(entries)
            logger.info(f"Indexed {len(entries)} rule files")
            return len(entries)

    def reload_file(self, file_path: Path) -> bool:
        """
        Reload a single rule file, or drop it if it no longer exists

        Args:
            file_path: Path to the rule file

        Returns:
            True if the path is a rule file and the registry was updated
        """
        file_path = Path(file_path)
        kind = self.kind_for_path(file_path)
        if kind is None:
            logger.debug(f"Not a rule file: {file_path}")
            return False

        with self._lock:
            if not file_path.exists():
                logger.info(f"Rule file removed: {file_path}")
                return self.registry.unregister(file_path, kind)

            logger.info(f"Reloading rule file: {file_path}")
            info = self.loader.load_file(file_path, kind)
            self._log_problems(info)
            if not info.is_usable:
                logger.warning(f"No usable patterns in {file_path}, dropping it")
                return self.registry.unregister(file_path, kind)
            self.registry.register(info.to_entry())
            return True

    def refresh_stale(self) -> int:
        """
        Reload registered files whose modification time changed

        Returns:
            Number of files reloaded
        """
        stale = [p for p in self.registry.get_all_files() if self.registry.has_file_changed(p)]
        for file_path in stale:
            self.reload_file(file_path)
        return len(stale)

    def kind_for_path(self, file_path: Path) -> Optional[RuleKind]:
        file_path = Path(file_path)
        for extra_path, extra_kind in self.extra_files:
            if file_path == extra_path:
                return extra_kind
        kind = kind_for_path(file_path)
        if kind not in self.kinds:
            return None
        return kind

    def _log_problems(self, info: RuleFileInfo):
        for error in info.errors:
            logger.error(f"{info.path}:{error.line}: {error.message}")
        for warning in info.warnings:
            logger.warning(f"{info.path}:{warning.line}: {warning.message}")
