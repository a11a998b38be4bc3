"""
Hierarchical ignore resolution with ascent to the project root
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, List, Optional, Tuple, Union

from .anchoring import anchor_path, is_under
from .constants import RuleKind
from .registry import RuleSourceRegistry
from .rule_engine import RuleEntry, evaluate
from ignore_status.utils import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ResolutionContext:
    """
    Everything one resolution reads, captured when the query starts.

    Lifecycle changes made while a query runs do not affect it.
    """
    root: Path
    registry: RuleSourceRegistry
    enabled_kinds: FrozenSet[RuleKind]
    active: bool = True
    ready: bool = True
    outer_rules: bool = True


@dataclass(frozen=True)
class Decision:
    """Verdict of one entry for one level of the ascent"""
    path: Path
    source: Path
    kind: RuleKind
    relative_path: str
    verdict: Optional[bool]


class HierarchicalResolver:
    """
    Decides whether a path is ignored.

    Entries are evaluated kind by kind (enumeration order), entry by entry
    (registry order), pattern by pattern (file order); the last verdict wins.
    When a level is not ignored the parent directory is tried, stopping below
    the project root.
    """

    def normalize(self, context: ResolutionContext, path: Union[str, Path]) -> Path:
        path = Path(path)
        if not path.is_absolute():
            path = context.root / path
        return Path(os.path.normpath(str(path)))

    def is_ignored(self, context: ResolutionContext, path: Union[str, Path],
                   is_dir: Optional[bool] = None) -> bool:
        """
        Check if a path is ignored

        Args:
            context: Resolution context
            path: Path to check (absolute, or relative to the project root)
            is_dir: Whether path is a directory (checked on disk when None)

        Returns:
            True if ignored; False when not ignored or when undecidable
        """
        return self._resolve(context, path, is_dir, None)

    def explain(self, context: ResolutionContext, path: Union[str, Path],
                is_dir: Optional[bool] = None) -> Tuple[bool, List[Decision]]:
        """
        Resolve a path and report every applicable entry's verdict

        Returns:
            Tuple of (ignored, decisions in evaluation order)
        """
        decisions: List[Decision] = []
        ignored = self._resolve(context, path, is_dir, decisions)
        return ignored, decisions

    def _resolve(self, context: ResolutionContext, path: Union[str, Path],
                 is_dir: Optional[bool], decisions: Optional[List[Decision]]) -> bool:
        if not context.active or not context.ready:
            return False

        current = self.normalize(context, path)
        root = context.root
        if not is_under(current, root):
            logger.trace(f"{current} is outside {root}")
            return False

        current_is_dir = current.is_dir() if is_dir is None else is_dir
        while True:
            if self._level_verdict(context, current, current_is_dir, decisions):
                logger.trace(f"Ignored: {current}")
                return True

            if current == root:
                return False
            parent = current.parent
            if parent == current or parent == root or not is_under(parent, root):
                return False
            current = parent
            current_is_dir = True

    def _level_verdict(self, context: ResolutionContext, path: Path, is_dir: bool,
                       decisions: Optional[List[Decision]]) -> bool:
        registry = context.registry
        ignored = False
        for kind in self._kinds(registry):
            if kind not in context.enabled_kinds:
                continue
            for entry in self._entries(registry, kind):
                try:
                    relative = anchor_path(entry, path, registry, is_dir, context.outer_rules)
                except Exception as e:
                    logger.warning(f"Could not anchor {path} to {entry.source}: {e}")
                    continue
                if relative is None:
                    continue
                verdict = evaluate(entry.items, relative)
                if decisions is not None:
                    decisions.append(Decision(path, entry.source, kind, relative, verdict))
                if verdict is not None:
                    ignored = verdict
                    logger.trace(
                        f"{entry.source} ({kind.value}): '{relative}' -> "
                        f"{'ignored' if verdict else 'included'}"
                    )
        return ignored

    def _kinds(self, registry: RuleSourceRegistry) -> List[RuleKind]:
        try:
            return list(registry.list_kinds())
        except Exception as e:
            logger.warning(f"Could not list rule kinds: {e}")
            return []

    def _entries(self, registry: RuleSourceRegistry, kind: RuleKind) -> Tuple[RuleEntry, ...]:
        try:
            return tuple(registry.entries_for(kind) or ())
        except Exception as e:
            logger.warning(f"Could not fetch {kind.value} entries: {e}")
            return ()
