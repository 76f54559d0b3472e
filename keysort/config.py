"""
KeySort Configuration Management

Handles loading configuration from files, default timings and the
set of file extensions treated as images.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


# ═══════════════════════════════════════════════════════════════════════════
# FILE EXTENSIONS
# ═══════════════════════════════════════════════════════════════════════════

IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.gif', '.bmp', '.webp', '.tiff', '.svg'}


# ═══════════════════════════════════════════════════════════════════════════
# SETTINGS
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class Settings:
    """Runtime settings for KeySort"""

    # Key sequences (milliseconds)
    debounce_ms: int = 1000
    error_display_ms: int = 3000
    ping_ms: int = 500

    # Preference sync (milliseconds between re-reads of the preferences file)
    preferences_poll_ms: int = 1000
    watch_preferences: bool = True

    # Folder handling
    skip_hidden: bool = True
    follow_symlinks: bool = False

    # Commit
    show_progress: bool = False

    # Preferences (relative paths live in the user config dir)
    preferences_file: str = "preferences.json"

    # Logging
    log_file: Optional[str] = None
    verbose: bool = False

    @property
    def debounce(self) -> float:
        return self.debounce_ms / 1000

    @property
    def error_display(self) -> float:
        return self.error_display_ms / 1000

    @property
    def ping(self) -> float:
        return self.ping_ms / 1000

    @property
    def preferences_poll(self) -> float:
        return self.preferences_poll_ms / 1000


# ═══════════════════════════════════════════════════════════════════════════
# CONFIG CLASS
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class Config:
    """KeySort configuration container"""

    settings: Settings = field(default_factory=Settings)
    image_extensions: set = field(default_factory=lambda: IMAGE_EXTENSIONS.copy())

    def is_image(self, filename: str) -> bool:
        """Check if a filename has an image extension"""
        return Path(filename).suffix.lower() in self.image_extensions

    def preferences_path(self) -> Path:
        """Resolve the preferences file location"""
        path = Path(self.settings.preferences_file).expanduser()
        if path.is_absolute():
            return path
        return get_user_config_dir() / path


# ═══════════════════════════════════════════════════════════════════════════
# CONFIG LOADING
# ═══════════════════════════════════════════════════════════════════════════

def get_user_config_dir() -> Path:
    """Get the user config directory (~/.keysort/)"""
    return Path.home() / ".keysort"


def get_user_config_path() -> Path:
    """Get the user config file path (~/.keysort/config.json)"""
    return get_user_config_dir() / "config.json"


CONFIG_ENV_VAR = "KEYSORT_CONFIG"
CONFIG_NAMES = ("keysort.json", ".keysort.json")
MAX_SEARCH_DEPTH = 10


def _search_upward(start: Path) -> Optional[Path]:
    """Look for a project config in a folder and its parents"""
    search_dir = start
    for _ in range(MAX_SEARCH_DEPTH):
        for name in CONFIG_NAMES:
            candidate = search_dir / name
            if candidate.is_file():
                return candidate
        if search_dir.parent == search_dir:
            break
        search_dir = search_dir.parent
    return None


def find_config_file(start_path: Optional[str] = None) -> Optional[Path]:
    """
    Find the KeySort config file.

    A destination tree may carry its own ``keysort.json``; it takes
    priority over the user-wide file.

    Search order:
      1. $KEYSORT_CONFIG, when it names an existing file
      2. keysort.json / .keysort.json in start_path (default: cwd) and its parents
      3. ~/.keysort/config.json

    Args:
        start_path: Folder to start the upward search from

    Returns:
        Path of the config file, or None if there is none
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        candidate = Path(env_path).expanduser()
        if candidate.is_file():
            return candidate

    found = _search_upward(Path(start_path) if start_path else Path.cwd())
    if found:
        return found

    user_config = get_user_config_path()
    if user_config.is_file():
        return user_config

    return None


def load_config(config_path: Optional[str] = None, start_path: Optional[str] = None) -> Config:
    """
    Load configuration from file or use defaults.

    Args:
        config_path: Explicit path to config file, or None to auto-detect
        start_path: Folder the auto-detection starts from

    Returns:
        Config object with loaded settings
    """
    config = Config()

    if config_path:
        path = Path(config_path)
        if not path.is_file():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        path = find_config_file(start_path)

    if not path:
        return config

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file: {e}")

    # Unknown keys are ignored
    if "settings" in data:
        for key, value in data["settings"].items():
            if hasattr(config.settings, key):
                setattr(config.settings, key, value)

    if "image_extensions" in data:
        config.image_extensions = {
            ext.lower() if ext.startswith('.') else f".{ext.lower()}"
            for ext in data["image_extensions"]
        }

    return config


def save_config_template(path: str) -> None:
    """Save a template configuration file"""
    template = {
        "settings": {
            "debounce_ms": 1000,
            "error_display_ms": 3000,
            "ping_ms": 500,
            "preferences_poll_ms": 1000,
            "watch_preferences": True,
            "skip_hidden": True,
            "show_progress": False,
            "preferences_file": "preferences.json",
            "log_file": None,
            "verbose": False
        },
        "image_extensions": sorted(IMAGE_EXTENSIONS)
    }

    with open(path, 'w', encoding='utf-8') as f:
        json.dump(template, f, indent=2)
