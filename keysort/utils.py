"""
KeySort Utility Functions

Common utilities for logging, file names and display.
"""

import logging
import os
from typing import List, Optional

from keysort.config import Settings
from keysort.tree import FolderTree

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# LOGGING
# ═══════════════════════════════════════════════════════════════════════════

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Third-party loggers that flood DEBUG output
QUIET_LOGGERS = ('watchdog', 'PIL')


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    verbose: bool = False
) -> None:
    """
    Configure logging for a KeySort session.

    Reconfigures the root logger each call, so a session started with
    different settings replaces the previous handlers.

    Args:
        level: Logging level
        log_file: Optional file to also write logs to
        verbose: If True, use DEBUG level for KeySort's own loggers
    """
    if verbose:
        level = logging.DEBUG

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))


def setup_logging_from_settings(settings: Settings) -> None:
    """Configure logging from the ``log_file`` and ``verbose`` settings"""
    setup_logging(log_file=settings.log_file, verbose=settings.verbose)


# ═══════════════════════════════════════════════════════════════════════════
# FILE UTILITIES
# ═══════════════════════════════════════════════════════════════════════════

def get_file_size_human(size_bytes: float) -> str:
    """Convert bytes to human-readable size"""
    for unit in ['B', 'KB', 'MB', 'GB']:
        if size_bytes < 1024:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024
    return f"{size_bytes:.1f} TB"


def is_hidden(path: str) -> bool:
    """Check if a file or folder is hidden"""
    name = os.path.basename(path)
    return name.startswith('.')


def truncate_filename(filename: str, max_length: int = 20) -> str:
    """
    Shorten a filename with an ellipsis, keeping its extension.

    "a_very_long_photo_name.jpeg" -> "a_very_long...jpeg" style output.
    """
    if len(filename) <= max_length:
        return filename

    stem, ext = os.path.splitext(filename)
    if not stem:
        stem, ext = filename, ''

    max_stem = max_length - len(ext) - 3
    if max_stem <= 0 or len(stem) <= max_stem:
        return filename
    return f"{stem[:max_stem]}...{ext}"


# ═══════════════════════════════════════════════════════════════════════════
# DISPLAY UTILITIES
# ═══════════════════════════════════════════════════════════════════════════

def describe_target(root_path: str, target_path: str) -> str:
    """Show a target folder relative to the tree root, e.g. "trips → 2024" """
    relative = os.path.relpath(target_path, root_path) if target_path else '.'
    parts = [p for p in relative.replace('\\', '/').split('/') if p and p != '.']
    if not parts:
        return 'root'
    if parts[0] == '..':
        return target_path
    return ' → '.join(parts)


def highlight_state(label: str, buffer: str) -> Optional[str]:
    """
    How a folder row relates to the digits typed so far.

    Returns:
        'target' when the buffer ends in "0" and stops at this folder,
        'exact' when the buffer equals the folder's sequence,
        'prefix' when the folder is still reachable, otherwise None
    """
    if not buffer:
        return None
    if buffer.endswith('0') and label == buffer[:-1]:
        return 'target'
    if label == buffer:
        return 'exact'
    if label.startswith(buffer):
        return 'prefix'
    return None


MARKERS = {'pinged': '✓', 'target': '»', 'exact': '»', 'prefix': '·', None: ' '}


def format_folder_tree(
    tree: FolderTree,
    buffer: str = '',
    pinged_path: Optional[str] = None
) -> str:
    """Format the folder tree with sequence labels as a display table"""
    lines = []
    width = max(len(label) for label, _, _ in tree.entries())

    for label, depth, node in tree.entries():
        state = 'pinged' if node.path == pinged_path else highlight_state(label, buffer)
        name = truncate_filename(node.name)
        if depth == 0:
            name = f"{name} (root)"
        lines.append(f"{MARKERS[state]} [{label:>{width}}] {'  ' * depth}{name}")

    return '\n'.join(lines)
