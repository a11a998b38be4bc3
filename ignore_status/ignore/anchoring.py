"""
Path anchoring: express a queried path relative to a rule entry's anchor
"""

import os
from pathlib import Path
from typing import Optional

from .constants import ANCHOR_STRATEGIES, AnchorStrategy
from .registry import RuleSourceRegistry
from .rule_engine import RuleEntry


def is_under(path: Path, directory: Path) -> bool:
    """Lexical containment test; a directory is under itself"""
    return path == directory or directory in path.parents


def _same_location(path: Path, anchor: Path) -> bool:
    try:
        return os.path.samefile(path, anchor)
    except OSError:
        return False


def anchor_directory(entry: RuleEntry, registry: RuleSourceRegistry) -> Optional[Path]:
    """
    Directory an entry's patterns are matched against

    Args:
        entry: Rule entry
        registry: Registry resolving working directories

    Returns:
        Anchor directory, or None if the entry cannot be anchored
    """
    strategy = ANCHOR_STRATEGIES.get(entry.kind, AnchorStrategy.PARENT_DIRECTORY)
    if strategy is AnchorStrategy.WORKING_DIRECTORY:
        return registry.working_directory_for(entry)
    return entry.parent


def anchor_path(entry: RuleEntry, path: Path, registry: RuleSourceRegistry,
                is_dir: bool = False, allow_additional: bool = True) -> Optional[str]:
    """
    Compute the path of a query relative to an entry's anchor

    Args:
        entry: Rule entry whose anchor is used
        path: Absolute, normalized query path
        registry: Registry for working directories and additional files
        is_dir: Whether the query path is a directory
        allow_additional: Honor the registry's additional indexable files

    Returns:
        Relative path with forward slashes (trailing slash for directories),
        or None if the entry does not apply to the path
    """
    anchor = anchor_directory(entry, registry)
    if anchor is None:
        return None

    if is_under(path, anchor):
        relative = path.relative_to(anchor).as_posix()
    elif (ANCHOR_STRATEGIES.get(entry.kind) is not AnchorStrategy.WORKING_DIRECTORY
          and allow_additional
          and entry.source in registry.additional_indexable_files()):
        # outside the nominal parent: nothing to strip
        relative = path.as_posix()
    else:
        return None

    relative = relative.strip('/')
    if not relative or relative == '.':
        return None
    if is_dir and _same_location(path, anchor):
        return None

    if is_dir:
        relative += '/'
    return relative
