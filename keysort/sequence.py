"""
KeySort Sequence Matching

Turns a stream of digit keypresses into a target folder.

Each digit selects a 1-based subfolder of the folder reached so far. A
trailing "0" stops descending and targets the folder reached by the digits
before it ("0" alone targets the root). A sequence resolves immediately when
it reaches a leaf folder or ends in "0"; otherwise it waits for a debounce
window, since more digits could still follow.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from keysort.scheduling import Scheduler, TimerHandle, cancel
from keysort.tree import FolderNode, FolderTree

logger = logging.getLogger(__name__)

DIGITS = "0123456789"
STOP_DIGIT = "0"

DEFAULT_DEBOUNCE = 1.0
DEFAULT_ERROR_DISPLAY = 3.0


# ═══════════════════════════════════════════════════════════════════════════
# VALIDATION
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SequenceError:
    """A rejected sequence and the subfolder count where it went wrong"""

    sequence: str
    bound: int

    @property
    def message(self) -> str:
        if self.bound == 0:
            return f'Invalid sequence "{self.sequence}". No subfolders available.'
        return (
            f'Invalid sequence "{self.sequence}". '
            f'Use 1-{self.bound} for subfolders or 0 for root.'
        )

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class SequenceCheck:
    """
    Result of walking a sequence down the folder tree.

    ``node`` is the folder reached, ignoring a trailing "0". For an invalid
    sequence it is the folder where the walk stopped and ``bound`` is that
    folder's subfolder count.
    """

    sequence: str
    valid: bool
    node: FolderNode
    bound: int

    @property
    def stops(self) -> bool:
        return self.sequence.endswith(STOP_DIGIT)

    @property
    def terminal(self) -> bool:
        """True if no further digit could change the target"""
        return self.valid and (self.stops or self.node.is_leaf)

    @property
    def error(self) -> Optional[SequenceError]:
        if self.valid:
            return None
        return SequenceError(self.sequence, self.bound)


def validate_sequence(tree: FolderTree, sequence: str) -> SequenceCheck:
    """
    Validate a digit sequence against a folder tree.

    Args:
        tree: Loaded folder tree
        sequence: Digits typed since the last resolution

    Returns:
        SequenceCheck describing the folder reached or the failure point
    """
    current = tree.root
    last = len(sequence) - 1

    for position, char in enumerate(sequence):
        if char not in DIGITS:
            return SequenceCheck(sequence, False, current, current.child_count)

        if char == STOP_DIGIT:
            if position == last:
                break
            # "0" anywhere but the end is never valid
            return SequenceCheck(sequence, False, current, current.child_count)

        child = tree.child(current, int(char))
        if child is None:
            return SequenceCheck(sequence, False, current, current.child_count)
        current = child

    return SequenceCheck(sequence, True, current, current.child_count)


def is_valid_sequence(tree: FolderTree, sequence: str) -> bool:
    return validate_sequence(tree, sequence).valid


def target_folder(tree: FolderTree, sequence: str) -> Optional[FolderNode]:
    """Get the folder a sequence resolves to, or None if it is invalid"""
    check = validate_sequence(tree, sequence)
    return check.node if check.valid else None


# ═══════════════════════════════════════════════════════════════════════════
# MATCHER
# ═══════════════════════════════════════════════════════════════════════════

class SequenceMatcher:
    """
    Stateful digit-sequence matcher with a cancellable debounce timer.

    The matcher owns the input buffer, at most one debounce timer and the
    transient validation error. Resolved folders are handed to
    ``on_resolve``; what happens next (recording a pending move, feedback)
    belongs to the caller.

    Example usage:
        matcher = SequenceMatcher(tree, scheduler, on_resolve=record_move)
        matcher.on_digit("1")    # ambiguous, timer armed
        matcher.on_digit("2")    # leaf reached, resolved immediately
    """

    def __init__(
        self,
        tree: Optional[FolderTree],
        scheduler: Scheduler,
        on_resolve: Callable[[FolderNode], Any],
        debounce: float = DEFAULT_DEBOUNCE,
        error_display: float = DEFAULT_ERROR_DISPLAY
    ):
        """
        Initialize the matcher.

        Args:
            tree: Folder tree to match against (None until a folder is loaded)
            scheduler: Timer provider used for the debounce and error timers
            on_resolve: Called with the target folder of every resolution
            debounce: Seconds of silence before an ambiguous sequence resolves
            error_display: Seconds a validation error stays visible
        """
        self._tree = tree
        self.scheduler = scheduler
        self.on_resolve = on_resolve
        self.debounce = debounce
        self.error_display = error_display

        self.buffer = ""
        self.error: Optional[SequenceError] = None
        self._timer: Optional[TimerHandle] = None
        self._error_timer: Optional[TimerHandle] = None

    @property
    def tree(self) -> Optional[FolderTree]:
        return self._tree

    @tree.setter
    def tree(self, tree: Optional[FolderTree]) -> None:
        self.reset()
        self._tree = tree

    @property
    def waiting(self) -> bool:
        """True while a debounce timer is armed"""
        return self._timer is not None

    # ── events ───────────────────────────────────────────────────────────

    def on_digit(self, digit: str) -> Optional[FolderNode]:
        """
        Handle one digit keypress.

        Args:
            digit: A single character "0"-"9"

        Returns:
            The target folder if the sequence resolved immediately, else None
        """
        if len(digit) != 1 or digit not in DIGITS:
            raise ValueError(f"Not a digit key: {digit!r}")
        if self._tree is None:
            return None

        self._cancel_timer()
        self.buffer += digit

        check = validate_sequence(self._tree, self.buffer)
        self._show(check)

        if check.terminal:
            return self._flush()

        # Ambiguous or invalid: wait for more digits, then resolve or drop
        self._timer = self.scheduler.arm(self.debounce, self._on_timeout)
        return None

    def on_enter(self) -> Optional[FolderNode]:
        """
        Resolve the current buffer immediately.

        The buffer and timer are cleared whether or not the buffer is valid.
        """
        if self._tree is None:
            return None
        if not self.buffer:
            self._cancel_timer()
            return None
        return self._flush()

    def reset(self) -> None:
        """Discard the buffer and any pending timer without resolving"""
        self._cancel_timer()
        self.buffer = ""

    def clear_error(self) -> None:
        cancel(self._error_timer)
        self._error_timer = None
        self.error = None

    def close(self) -> None:
        """Cancel every live timer; call on teardown"""
        self.reset()
        self.clear_error()

    # ── internals ────────────────────────────────────────────────────────

    def _flush(self) -> Optional[FolderNode]:
        sequence = self.buffer
        self.reset()
        return self._resolve(sequence)

    def _on_timeout(self) -> None:
        self._timer = None
        sequence = self.buffer
        self.buffer = ""
        logger.debug(f'Sequence "{sequence}" timed out')
        self._resolve(sequence)

    def _resolve(self, sequence: str) -> Optional[FolderNode]:
        if self._tree is None or not sequence:
            return None

        check = validate_sequence(self._tree, sequence)
        if not check.valid:
            return None

        logger.debug(f'Sequence "{sequence}" resolved to {check.node.path}')
        self.on_resolve(check.node)
        return check.node

    def _show(self, check: SequenceCheck) -> None:
        if check.valid:
            self.clear_error()
            return

        self.clear_error()
        self.error = check.error
        logger.debug(self.error.message)
        self._error_timer = self.scheduler.arm(self.error_display, self.clear_error)

    def _cancel_timer(self) -> None:
        cancel(self._timer)
        self._timer = None
