"""
Central configuration for rule kinds and ignore status tracking
"""

from enum import Enum
from typing import Dict


class RuleKind(Enum):
    """Kinds of rule files. Definition order is the evaluation order."""
    GIT_EXCLUDE = "git-exclude"
    GITIGNORE = "gitignore"
    IGNORE = "ignore"
    DOCKERIGNORE = "dockerignore"
    NPMIGNORE = "npmignore"


class AnchorStrategy(Enum):
    """How an entry's anchor directory is determined"""
    PARENT_DIRECTORY = "parent-directory"
    WORKING_DIRECTORY = "working-directory"


# File name (or repository-relative location) for each kind
RULE_FILENAMES: Dict[RuleKind, str] = {
    RuleKind.GIT_EXCLUDE: ".git/info/exclude",
    RuleKind.GITIGNORE: ".gitignore",
    RuleKind.IGNORE: ".ignore",
    RuleKind.DOCKERIGNORE: ".dockerignore",
    RuleKind.NPMIGNORE: ".npmignore",
}

ANCHOR_STRATEGIES: Dict[RuleKind, AnchorStrategy] = {
    RuleKind.GIT_EXCLUDE: AnchorStrategy.WORKING_DIRECTORY,
    RuleKind.GITIGNORE: AnchorStrategy.PARENT_DIRECTORY,
    RuleKind.IGNORE: AnchorStrategy.PARENT_DIRECTORY,
    RuleKind.DOCKERIGNORE: AnchorStrategy.PARENT_DIRECTORY,
    RuleKind.NPMIGNORE: AnchorStrategy.PARENT_DIRECTORY,
}

# Quiet window before a burst of invalidations becomes one notification
DEBOUNCE_SECONDS = 1.0

# Limits applied when loading rule files
MAX_RULE_FILE_SIZE = 1024 * 1024  # 1MB
MAX_PATTERNS_PER_FILE = 10000

# Directories never descended into during rule file discovery
SKIP_DIRECTORIES = {
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    "__pycache__",
    ".venv",
    "venv",
}
