"""
Exceptions for the ignore status subsystem.

Ignore status queries never raise: these are used on the collaborator side
(loading rule files, consuming channels) only.
"""


class IgnoreStatusError(Exception):
    """Base class for ignore status errors"""


class RuleFileError(IgnoreStatusError):
    """A rule file could not be read or compiled"""

    def __init__(self, path, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


class ChannelClosedError(IgnoreStatusError):
    """Raised when reading from a closed and drained subscription"""
