"""
KeySort Errors

Exception hierarchy for failures that come from outside the sorting core
(folder listing, file copies).
"""

from typing import Optional


class KeySortError(Exception):
    """Base error for the project."""


class FolderEnumerationError(KeySortError):
    """A folder listing failed while building the folder tree."""

    def __init__(self, path: str, reason: Optional[str] = None):
        self.path = path
        self.reason = reason
        message = f"Failed to list subfolders of {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class CopyError(KeySortError):
    pass
