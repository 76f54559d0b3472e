"""
KeySort Main Engine

The core KeySort class that owns one sorting session: the loaded folder
tree, the active image list and selection, the digit-sequence matcher, the
pending moves and the commit step. Host UIs forward their key and button
events here and read the resulting state back.
"""

import logging
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Sequence

from keysort import storage
from keysort.commit import CommitEngine, CommitResult, CopyFile
from keysort.config import Config, load_config
from keysort.errors import FolderEnumerationError
from keysort.pending import PendingMove, PendingMoveSet
from keysort.preferences import AUTO_ADVANCE, PreferenceStore
from keysort.scheduling import AsyncioScheduler, Scheduler, TimerHandle, cancel
from keysort.sequence import DIGITS, SequenceMatcher
from keysort.storage import ImageFile
from keysort.tree import FolderNode, FolderTree, build_tree
from keysort.utils import describe_target, format_folder_tree, setup_logging_from_settings

logger = logging.getLogger(__name__)

ENTER = "Enter"


class KeySort:
    """
    Keyboard-driven image sorting session.

    Example usage:
        ks = KeySort(scheduler=ManualScheduler())
        ks.load_folder("/photos/sorted")
        ks.load_images("/photos/inbox")
        ks.on_key("2")          # queue the selected image for folder 2
        result = ks.commit()    # copy everything queued
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        config_path: Optional[str] = None,
        scheduler: Optional[Scheduler] = None,
        preferences: Optional[PreferenceStore] = None,
        list_subfolders: Optional[Callable[[str], Sequence[str]]] = None,
        copy: Optional[CopyFile] = None
    ):
        """
        Initialize KeySort.

        Args:
            config: Pre-loaded Config object
            config_path: Path to config file to load
            scheduler: Timer provider (defaults to the running asyncio loop,
                so construct the session inside it)
            preferences: Preference store (defaults to the user preferences file)
            list_subfolders: Folder listing collaborator (defaults to local disk)
            copy: File copy collaborator (defaults to local disk)
        """
        if config:
            self.config = config
        else:
            self.config = load_config(config_path)
        settings = self.config.settings

        self.scheduler = scheduler or AsyncioScheduler()
        self.preferences = preferences or PreferenceStore(str(self.config.preferences_path()))

        self._list_subfolders = list_subfolders or partial(
            storage.list_subfolders,
            skip_hidden=settings.skip_hidden,
            follow_symlinks=settings.follow_symlinks,
        )

        # Folder and image state
        self.tree: Optional[FolderTree] = None
        self.images: List[ImageFile] = []
        self.selected_index: Optional[int] = None

        # Sorting components
        self.pending = PendingMoveSet()
        self.matcher = SequenceMatcher(
            None,
            self.scheduler,
            on_resolve=self._record_move,
            debounce=settings.debounce,
            error_display=settings.error_display,
        )
        self.committer = CommitEngine(copy or storage.copy_file, show_progress=settings.show_progress)
        self.last_result: Optional[CommitResult] = None

        # Feedback
        self.pinged_path: Optional[str] = None
        self._ping_timer: Optional[TimerHandle] = None

        self._auto_advance = bool(self.preferences.get(AUTO_ADVANCE, False))
        self._unsubscribe = self.preferences.subscribe(AUTO_ADVANCE, self._on_auto_advance_changed)
        self._watcher = self.preferences.watch(
            self.scheduler,
            interval=settings.preferences_poll,
            native=settings.watch_preferences,
        )

    # ── preferences ──────────────────────────────────────────────────────

    @property
    def auto_advance(self) -> bool:
        return self._auto_advance

    @auto_advance.setter
    def auto_advance(self, enabled: bool) -> None:
        self.preferences.set(AUTO_ADVANCE, bool(enabled))

    def _on_auto_advance_changed(self, value: Any) -> None:
        self._auto_advance = bool(value)
        logger.debug(f"Auto-advance {'enabled' if self._auto_advance else 'disabled'}")

    def refresh_preferences(self) -> List[str]:
        """Pick up preference edits made outside this session right away"""
        return self.preferences.refresh()

    # ── folders ──────────────────────────────────────────────────────────

    @property
    def root_folder(self) -> Optional[str]:
        return self.tree.root.path if self.tree else None

    def load_folder(self, root_path: str) -> FolderTree:
        """
        Build and install the destination folder tree.

        The new tree replaces the old one only once it is complete. Pending
        moves and any half-typed sequence are discarded.

        Raises:
            FolderEnumerationError: If any folder listing fails; the previous
                tree stays installed
        """
        try:
            tree = build_tree(root_path, self._list_subfolders)
        except FolderEnumerationError as e:
            logger.error(f"Could not load folder {root_path}: {e}")
            raise

        self.tree = tree
        self.matcher.tree = tree
        self.pending.clear()
        self._clear_ping()
        return tree

    # ── images ───────────────────────────────────────────────────────────

    def load_images(self, folder_path: str) -> List[ImageFile]:
        """List the images of a folder and make them the active list"""
        images = storage.list_images_in_folder(folder_path, self.config.image_extensions)
        self.set_images(images)
        logger.info(f"Loaded {len(images)} images from {folder_path}")
        return images

    def set_images(self, images: Sequence[ImageFile]) -> None:
        self.matcher.reset()
        self.images = list(images)
        self.selected_index = 0 if self.images else None

    @property
    def selected_image(self) -> Optional[ImageFile]:
        if self.selected_index is None:
            return None
        return self.images[self.selected_index]

    def select_image(self, index: Optional[int]) -> None:
        """
        Change the selected image.

        Selecting a different image drops the current sequence without
        resolving it.
        """
        if index is not None and not 0 <= index < len(self.images):
            raise IndexError(f"No image at index {index}")
        if index != self.selected_index:
            self.matcher.reset()
        self.selected_index = index

    def select_next(self) -> bool:
        """Advance the selection by one if a next image exists"""
        if self.selected_index is None or self.selected_index + 1 >= len(self.images):
            return False
        self.select_image(self.selected_index + 1)
        return True

    # ── key events ───────────────────────────────────────────────────────

    @property
    def ready(self) -> bool:
        """True when keys can target folders (tree loaded, image selected)"""
        return self.tree is not None and self.selected_image is not None

    def on_key(self, key: str) -> bool:
        """
        Dispatch a key event.

        Returns:
            True if the key was consumed
        """
        if not self.ready:
            return False
        if len(key) == 1 and key in DIGITS:
            self.matcher.on_digit(key)
            return True
        if key == ENTER:
            self.matcher.on_enter()
            return True
        return False

    def on_digit(self, digit: str) -> Optional[FolderNode]:
        if not self.ready:
            return None
        return self.matcher.on_digit(digit)

    def on_enter(self) -> Optional[FolderNode]:
        if not self.ready:
            return None
        return self.matcher.on_enter()

    @property
    def buffer(self) -> str:
        return self.matcher.buffer

    @property
    def error_message(self) -> Optional[str]:
        return self.matcher.error.message if self.matcher.error else None

    def _record_move(self, folder: FolderNode) -> None:
        image = self.selected_image
        if image is None:
            return

        self.pending.upsert(PendingMove(
            source_path=image.path,
            target_folder=folder.path,
            image_label=image.name,
        ))
        logger.info(f'Image "{image.name}" will be copied to "{folder.path}"')

        self._ping(folder.path)

        if self._auto_advance:
            self.select_next()

    def _ping(self, path: str) -> None:
        cancel(self._ping_timer)
        self.pinged_path = path
        self._ping_timer = self.scheduler.arm(self.config.settings.ping, self._clear_ping)

    def _clear_ping(self) -> None:
        cancel(self._ping_timer)
        self._ping_timer = None
        self.pinged_path = None

    # ── pending moves ────────────────────────────────────────────────────

    def remove_pending(self, source_path: str) -> bool:
        return self.pending.remove(source_path)

    def clear_pending(self) -> None:
        """Drop every pending move and any half-typed sequence"""
        self.matcher.reset()
        self.pending.clear()

    def commit(self) -> Optional[CommitResult]:
        """
        Copy every pending move.

        Returns:
            The CommitResult, or None if nothing was pending
        """
        if not self.pending:
            return None

        result = self.committer.execute(self.pending)
        self.last_result = result

        if result.succeeded_count > 0 and self._auto_advance:
            self.select_next()

        return result

    # ── display ──────────────────────────────────────────────────────────

    def describe_pending(self) -> List[str]:
        """One line per pending move: label and target relative to the root"""
        root = self.root_folder or ''
        return [
            f"{move.image_label} → {describe_target(root, move.target_folder)}"
            for move in self.pending
        ]

    def render_tree(self) -> str:
        if self.tree is None:
            return "Select a folder with subfolders"
        return format_folder_tree(self.tree, self.matcher.buffer, self.pinged_path)

    def print_commit_result(self, result: CommitResult) -> None:
        """Print a formatted commit result"""
        mark = "✓" if result.overall_success else "✗"
        print(f"\n  {mark} {result.message}")
        if result.details:
            print(f"    {result.details}")
        if result.partial:
            for entry in result.failed_entries:
                print(f"    ✗ {entry}")

    def get_stats(self) -> Dict[str, Any]:
        """Get session statistics"""
        return {
            "root_folder": self.root_folder,
            "folders": len(self.tree) if self.tree else 0,
            "images": len(self.images),
            "selected_index": self.selected_index,
            "pending_moves": len(self.pending),
            "auto_advance": self._auto_advance,
        }

    # ── teardown ─────────────────────────────────────────────────────────

    def close(self) -> None:
        """Cancel every live timer and stop listening for preference changes"""
        self.matcher.close()
        self._clear_ping()
        self._watcher.stop()
        self._unsubscribe()


def open_session(
    root_folder: Optional[str] = None,
    config_path: Optional[str] = None,
    **kwargs: Any
) -> KeySort:
    """
    Load configuration, set up logging and start a KeySort session.

    Args:
        root_folder: Destination tree to load; also where the config
            search starts
        config_path: Explicit config file, or None to auto-detect
        **kwargs: Collaborators passed on to KeySort

    Returns:
        The session, with the folder tree loaded when root_folder is given
    """
    config = load_config(config_path, start_path=root_folder)
    setup_logging_from_settings(config.settings)

    session = KeySort(config=config, **kwargs)
    if root_folder:
        session.load_folder(root_folder)
    logger.info(f"KeySort session started (root: {root_folder or 'none'})")
    return session
