"""
KeySort Pending Moves

Recorded intents to copy an image into a folder, at most one per image.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterator, List, Optional


@dataclass(frozen=True)
class PendingMove:
    """One image waiting to be copied into one folder"""

    source_path: str
    target_folder: str
    image_label: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return asdict(self)

    def __str__(self) -> str:
        return f"{self.image_label} → {self.target_folder}"


class PendingMoveSet:
    """
    Map of source image path to its pending move.

    A later upsert for the same image replaces the earlier one in place, so
    display order stays stable across re-targeting. No validation happens
    here; target paths are trusted as resolved.
    """

    def __init__(self) -> None:
        self._moves: Dict[str, PendingMove] = {}

    def upsert(self, move: PendingMove) -> None:
        self._moves[move.source_path] = move

    def remove(self, source_path: str) -> bool:
        """
        Remove the pending move for an image.

        Returns:
            True if removed, False if the image had no pending move
        """
        return self._moves.pop(source_path, None) is not None

    def clear(self) -> None:
        self._moves.clear()

    def get(self, source_path: str) -> Optional[PendingMove]:
        return self._moves.get(source_path)

    def values(self) -> List[PendingMove]:
        return list(self._moves.values())

    def __len__(self) -> int:
        return len(self._moves)

    def __contains__(self, source_path: object) -> bool:
        return source_path in self._moves

    def __iter__(self) -> Iterator[PendingMove]:
        return iter(self.values())

    def __bool__(self) -> bool:
        return bool(self._moves)
