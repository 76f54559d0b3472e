"""
KeySort Commit Engine

Executes pending moves through an external copy operation, one file at a
time, and summarizes what happened.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from tqdm import tqdm

from keysort.pending import PendingMove, PendingMoveSet

logger = logging.getLogger(__name__)

CopyFile = Callable[[str, str], Any]


# ═══════════════════════════════════════════════════════════════════════════
# RESULT
# ═══════════════════════════════════════════════════════════════════════════

def _plural(count: int) -> str:
    return "" if count == 1 else "s"


@dataclass
class CommitResult:
    """Outcome of one commit invocation"""

    overall_success: bool
    succeeded_count: int
    failed_count: int
    failed_entries: List[str] = field(default_factory=list)
    message: str = ""
    details: Optional[str] = None

    @property
    def partial(self) -> bool:
        """True if some copies succeeded and some failed"""
        return self.succeeded_count > 0 and self.failed_count > 0

    def failed_text(self) -> str:
        """Failure descriptions, one per line, for export to the clipboard"""
        return "\n".join(self.failed_entries)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return asdict(self)

    @classmethod
    def summarize(cls, succeeded: int, failures: List[str]) -> "CommitResult":
        """
        Build the summary for a finished copy loop.

        Any success counts as an overall success; failures are then reported
        as a side detail. With no successes every failure is spelled out.
        """
        failed = len(failures)

        if succeeded > 0:
            return cls(
                overall_success=True,
                succeeded_count=succeeded,
                failed_count=failed,
                failed_entries=list(failures),
                message=f"Successfully copied {succeeded} file{_plural(succeeded)}!",
                details=f"{failed} file{_plural(failed)} failed to copy." if failed else None,
            )

        if failed == 0:
            return cls(False, 0, 0, message="Nothing to copy")

        return cls(
            overall_success=False,
            succeeded_count=0,
            failed_count=failed,
            failed_entries=list(failures),
            message="Failed to copy any files",
            details="\n".join(failures),
        )


# ═══════════════════════════════════════════════════════════════════════════
# ENGINE
# ═══════════════════════════════════════════════════════════════════════════

class CommitEngine:
    """
    Runs the copy operation for each pending move, sequentially.

    A failing copy never stops the batch; each failure is recorded as
    'Failed to copy "<label>": <error>' in iteration order.
    """

    def __init__(self, copy: CopyFile, show_progress: bool = False):
        """
        Initialize the engine.

        Args:
            copy: Callable(source_path, target_folder) that raises on failure
            show_progress: Whether to show a tqdm progress bar while copying
        """
        self.copy = copy
        self.show_progress = show_progress
        self._progress_callback: Optional[Callable[[int, int, str], None]] = None

    def set_progress_callback(self, callback: Callable[[int, int, str], None]) -> None:
        """
        Set a callback for progress updates.

        Args:
            callback: Function(done, total, image_label)
        """
        self._progress_callback = callback

    def commit(self, moves: Sequence[PendingMove]) -> CommitResult:
        """
        Copy every move and aggregate the outcome.

        Args:
            moves: Pending moves in display order

        Returns:
            CommitResult; an unexpected failure of the loop itself is
            reported as an all-failure result instead of raising
        """
        try:
            succeeded, failures = self._copy_all(moves)
        except Exception as e:
            logger.error(f"Error during copy operation: {e}")
            return CommitResult(
                overall_success=False,
                succeeded_count=0,
                failed_count=len(moves),
                message="Copy operation failed",
                details=str(e),
            )

        logger.info(
            f"Copy operation completed: {succeeded} successful, {len(failures)} failed"
        )
        return CommitResult.summarize(succeeded, failures)

    def execute(self, pending: PendingMoveSet) -> CommitResult:
        """
        Commit a pending move set and apply the clearing policy.

        If at least one copy succeeded the whole set is cleared, failed
        entries included; their descriptions survive only in the result.
        If nothing succeeded the set is left untouched for a retry.
        """
        result = self.commit(pending.values())

        if result.succeeded_count > 0:
            if result.failed_count:
                logger.warning(
                    f"Dropping {result.failed_count} failed move(s) from the pending set"
                )
            pending.clear()

        return result

    def _copy_all(self, moves: Sequence[PendingMove]):
        total = len(moves)
        succeeded = 0
        failures: List[str] = []

        iterator = moves
        if self.show_progress:
            iterator = tqdm(moves, desc="Copying", unit="file")

        for i, move in enumerate(iterator):
            try:
                self.copy(move.source_path, move.target_folder)
                succeeded += 1
            except Exception as e:
                message = f'Failed to copy "{move.image_label}": {e}'
                failures.append(message)
                logger.error(message)

            if self._progress_callback:
                self._progress_callback(i + 1, total, move.image_label)

        return succeeded, failures
