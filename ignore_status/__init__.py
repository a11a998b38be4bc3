"""Ignore status tracking for hierarchical gitignore-style rule files"""

__version__ = "1.0.0"

from .ignore import (
    IgnoreManager,
    IgnoreFileRegistry,
    IgnoreSettings,
    RuleEntry,
    RuleFileIndex,
    RuleKind,
)

__all__ = [
    '__version__',
    'IgnoreManager',
    'IgnoreFileRegistry',
    'IgnoreSettings',
    'RuleEntry',
    'RuleFileIndex',
    'RuleKind',
]
