"""
Ignore status resolution for hierarchical gitignore-style rule files

This module provides:
- Compiled rule entries with last-match-wins evaluation
- Anchoring of query paths to each rule file's directory
- Hierarchical resolution with ascent to the project root
- Debounced "file statuses changed" notifications
"""

from .constants import RuleKind, AnchorStrategy, RULE_FILENAMES, DEBOUNCE_SECONDS
from .rule_engine import CompiledPattern, RuleEntry, evaluate, build_entry
from .anchoring import anchor_path
from .registry import IgnoreFileRegistry, RuleSourceRegistry, RuleFileChange
from .resolver import HierarchicalResolver, ResolutionContext, Decision
from .channels import Channel, Subscription
from .debounce import Debouncer
from .settings import IgnoreSettings, SettingKey, SettingChange
from .file_loader import RuleFileLoader, RuleFileIndex, RuleFileInfo
from .manager import IgnoreManager, StatusChanged

__all__ = [
    'RuleKind',
    'AnchorStrategy',
    'RULE_FILENAMES',
    'DEBOUNCE_SECONDS',
    'CompiledPattern',
    'RuleEntry',
    'evaluate',
    'build_entry',
    'anchor_path',
    'IgnoreFileRegistry',
    'RuleSourceRegistry',
    'RuleFileChange',
    'HierarchicalResolver',
    'ResolutionContext',
    'Decision',
    'Channel',
    'Subscription',
    'Debouncer',
    'IgnoreSettings',
    'SettingKey',
    'SettingChange',
    'RuleFileLoader',
    'RuleFileIndex',
    'RuleFileInfo',
    'IgnoreManager',
    'StatusChanged',
]
