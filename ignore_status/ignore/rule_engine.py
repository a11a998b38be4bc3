"""
Rule entries and last-match-wins pattern evaluation
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Sequence, Tuple

import pathspec

from .constants import RuleKind
from ignore_status.utils import get_logger

logger = get_logger(__name__)


class CompiledPattern:
    """
    Opaque matcher for a single gitignore-style pattern.

    Matches normalized relative paths (forward slashes, directories carry a
    trailing slash). Negation is not part of the pattern; it is stored next
    to it in the owning RuleEntry.
    """

    __slots__ = ('pattern', '_spec')

    def __init__(self, pattern: str):
        self.pattern = pattern
        self._spec = pathspec.PathSpec.from_lines('gitwildmatch', [pattern])

    def matches(self, relative_path: str) -> bool:
        return self._spec.match_file(relative_path)

    def __eq__(self, other):
        if not isinstance(other, CompiledPattern):
            return NotImplemented
        return self.pattern == other.pattern

    def __hash__(self):
        return hash(self.pattern)

    def __repr__(self):
        return f"CompiledPattern({self.pattern!r})"


RuleItem = Tuple[CompiledPattern, bool]


@dataclass(frozen=True)
class RuleEntry:
    """
    One compiled rule file.

    Identity is the rule file location plus its kind. Entries are never
    mutated; a changed rule file produces a new entry that replaces the old one.
    """
    source: Path
    kind: RuleKind
    items: Tuple[RuleItem, ...] = ()

    @property
    def parent(self) -> Path:
        """Nominal anchor: the directory containing the rule file"""
        return self.source.parent

    @property
    def key(self) -> Tuple[Path, RuleKind]:
        return (self.source, self.kind)

    @property
    def patterns(self) -> Tuple[str, ...]:
        return tuple(('!' if negated else '') + item.pattern for item, negated in self.items)


def evaluate(items: Sequence[RuleItem], relative_path: str) -> Optional[bool]:
    """
    Apply ordered patterns to a relative path.

    Every pattern is tested; each match overrides the previous verdict, so the
    last matching pattern decides.

    Args:
        items: (pattern, negated) pairs in file order
        relative_path: Path relative to the entry's anchor

    Returns:
        True if ignored, False if re-included by a negated pattern,
        None if no pattern matched
    """
    verdict = None
    for pattern, negated in items:
        if pattern.matches(relative_path):
            verdict = not negated
    return verdict


def split_negation(line: str) -> Tuple[str, bool]:
    """
    Split a raw pattern line into (pattern, negated)

    Args:
        line: Pattern text, possibly starting with '!'

    Returns:
        Tuple of pattern without the negation marker and negated flag
    """
    if line.startswith('!'):
        return line[1:], True
    return line, False


def validate_pattern(pattern: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a single pattern

    Args:
        pattern: Pattern to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if pattern[:1].isspace():
        # the matcher would strip it and lose a following '!'
        return False, "Leading whitespace is not supported"
    test_pattern, _ = split_negation(pattern)
    if not test_pattern.strip():
        return False, "Empty pattern"
    try:
        pathspec.PathSpec.from_lines('gitwildmatch', [test_pattern])
        return True, None
    except Exception as e:
        return False, str(e)


def compile_items(lines: Iterable[str]) -> Tuple[RuleItem, ...]:
    """
    Compile pattern lines into ordered (pattern, negated) pairs

    Invalid patterns are skipped with a warning; order of the remaining
    patterns is preserved.

    Args:
        lines: Pattern lines in file order (no blanks or comments)

    Returns:
        Tuple of compiled items
    """
    items = []
    for line in lines:
        is_valid, error = validate_pattern(line)
        if not is_valid:
            logger.warning(f"Skipping invalid pattern '{line}': {error}")
            continue
        pattern, negated = split_negation(line)
        items.append((CompiledPattern(pattern), negated))
    return tuple(items)


def build_entry(source, kind: RuleKind, lines: Iterable[str]) -> RuleEntry:
    """
    Build a RuleEntry from already-cleaned pattern lines

    Args:
        source: Location of the rule file
        kind: Kind of the rule file
        lines: Pattern lines in file order

    Returns:
        New immutable RuleEntry
    """
    return RuleEntry(source=Path(source), kind=kind, items=compile_items(lines))
