"""
KeySort Preferences

Small persisted key-value store for user preferences such as auto-advance.
Subscribers are notified when a value changes, whether through ``set`` or
because another process edited the file and ``refresh`` picked it up.
A ``PreferenceWatcher`` calls ``refresh`` on a fixed interval and, when
enabled, on file-system notifications from watchdog.
"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from keysort.scheduling import Scheduler, TimerHandle, cancel

logger = logging.getLogger(__name__)

AUTO_ADVANCE = "auto_advance"

DEFAULT_POLL_INTERVAL = 1.0

Subscriber = Callable[[Any], None]


class PreferenceStore:
    """JSON-backed preference store with per-key change notification"""

    def __init__(self, path: Optional[str] = None):
        """
        Initialize the store.

        Args:
            path: JSON file to persist to, or None for an in-memory store
        """
        self.path = Path(path) if path else None
        self._lock = threading.RLock()
        self._values: Dict[str, Any] = self._read() or {}
        self._subscribers: Dict[str, List[Subscriber]] = {}

    def _read(self) -> Optional[Dict[str, Any]]:
        """
        Read the preferences file.

        Returns:
            The stored values ({} for a missing file), or None if the file
            exists but cannot be parsed
        """
        if self.path is None or not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Ignoring unreadable preferences file {self.path}: {e}")
            return None
        if not isinstance(data, dict):
            logger.warning(f"Ignoring preferences file {self.path}: not a JSON object")
            return None
        return data

    def _save(self) -> None:
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(self._values, f, indent=2)
        except IOError as e:
            logger.error(f"Failed to save preferences: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Store a value, persist it and notify subscribers if it changed"""
        with self._lock:
            changed = self._values.get(key) != value or key not in self._values
            self._values[key] = value
            self._save()
            if changed:
                self._notify(key, value)

    def subscribe(self, key: str, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback for changes to one key.

        Returns:
            Function that removes the subscription
        """
        self._subscribers.setdefault(key, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(key, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def refresh(self) -> List[str]:
        """
        Re-read the file and notify subscribers of values edited elsewhere.

        A file that cannot be parsed (for example one caught half-written)
        leaves the current values in place.

        Returns:
            Keys whose values changed
        """
        if self.path is None:
            return []

        with self._lock:
            fresh = self._read()
            if fresh is None:
                return []

            changed = [
                key for key in set(fresh) | set(self._values)
                if fresh.get(key) != self._values.get(key)
            ]
            self._values = fresh
            for key in changed:
                logger.debug(f"Preference {key} changed on disk")
                self._notify(key, fresh.get(key))
        return changed

    def watch(
        self,
        scheduler: Scheduler,
        interval: float = DEFAULT_POLL_INTERVAL,
        native: bool = False
    ) -> "PreferenceWatcher":
        """
        Start picking up outside edits automatically.

        Args:
            scheduler: Timer provider used for polling
            interval: Seconds between polls
            native: Also refresh on file-system notifications

        Returns:
            The started PreferenceWatcher; call ``stop`` to end it
        """
        watcher = PreferenceWatcher(self, scheduler, interval, native)
        watcher.start()
        return watcher

    def _notify(self, key: str, value: Any) -> None:
        for callback in list(self._subscribers.get(key, [])):
            callback(value)


# ═══════════════════════════════════════════════════════════════════════════
# WATCHING FOR OUTSIDE EDITS
# ═══════════════════════════════════════════════════════════════════════════

class PreferenceFileHandler(FileSystemEventHandler):
    """Refreshes the store when its file is written or replaced"""

    def __init__(self, store: PreferenceStore):
        self.store = store

    def _targets_store(self, event: FileSystemEvent) -> bool:
        if event.is_directory or self.store.path is None:
            return False
        paths = [event.src_path, getattr(event, 'dest_path', '')]
        target = os.path.abspath(str(self.store.path))
        return any(p and os.path.abspath(os.fsdecode(p)) == target for p in paths)

    def on_created(self, event: FileSystemEvent) -> None:
        if self._targets_store(event):
            self.store.refresh()

    def on_modified(self, event: FileSystemEvent) -> None:
        if self._targets_store(event):
            self.store.refresh()

    def on_moved(self, event: FileSystemEvent) -> None:
        # Editors often save by writing a temp file and renaming it over
        if self._targets_store(event):
            self.store.refresh()


class PreferenceWatcher:
    """
    Keeps a PreferenceStore in sync with its file.

    Polls ``refresh`` every ``interval`` seconds through the scheduler and,
    with ``native`` set, also runs a watchdog observer on the file's folder.
    In-memory stores have nothing to watch, so no timer is armed for them.
    """

    def __init__(
        self,
        store: PreferenceStore,
        scheduler: Scheduler,
        interval: float = DEFAULT_POLL_INTERVAL,
        native: bool = False
    ):
        self.store = store
        self.scheduler = scheduler
        self.interval = interval
        self.native = native
        self.running = False
        self._timer: Optional[TimerHandle] = None
        self._observer: Optional[Any] = None

    def start(self) -> None:
        if self.running or self.store.path is None:
            return
        self.running = True
        self._arm()

        if self.native:
            folder = self.store.path.parent
            folder.mkdir(parents=True, exist_ok=True)
            self._observer = Observer()
            self._observer.schedule(PreferenceFileHandler(self.store), str(folder), recursive=False)
            self._observer.start()
            logger.debug(f"Watching {self.store.path} for changes")

    def stop(self) -> None:
        """Cancel the poll timer and stop the observer"""
        self.running = False
        cancel(self._timer)
        self._timer = None

        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None

    def _arm(self) -> None:
        self._timer = self.scheduler.arm(self.interval, self._poll)

    def _poll(self) -> None:
        self._timer = None
        if not self.running:
            return
        self.store.refresh()
        self._arm()
