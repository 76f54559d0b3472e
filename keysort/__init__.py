"""
KeySort - Keyboard-Driven Image Sorting

Sorts a flat list of images into a folder tree by typing digit sequences:
each digit picks a numbered subfolder, pending copies are collected per
image and committed in one batch.
"""

__version__ = "1.0.0"
__author__ = "KeySort Contributors"

from keysort.engine import KeySort, open_session
from keysort.commit import CommitEngine, CommitResult
from keysort.config import Config, load_config
from keysort.pending import PendingMove, PendingMoveSet
from keysort.sequence import SequenceMatcher, validate_sequence
from keysort.tree import FolderNode, FolderTree, build_tree

__all__ = [
    "KeySort",
    "open_session",
    "CommitEngine",
    "CommitResult",
    "Config",
    "load_config",
    "PendingMove",
    "PendingMoveSet",
    "SequenceMatcher",
    "validate_sequence",
    "FolderNode",
    "FolderTree",
    "build_tree",
    "__version__",
]
