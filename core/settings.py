"""
User settings for Ocarina Studio.

Stored as JSON in ~/.ocarina_studio/settings.json. Loading merges the file
over the defaults category by category, so settings added in a newer
version show up without a migration.
"""
import copy
import json
from pathlib import Path
from typing import Any, Dict, Optional

SETTINGS_DIR = Path.home() / ".ocarina_studio"
SETTINGS_PATH = SETTINGS_DIR / "settings.json"

DEFAULT_SETTINGS: Dict[str, Dict[str, Any]] = {
    "audio": {
        "sample_rate": 44100,
        "buffer_size": 512,
        "output_device": "Default",
    },
    "playback": {
        "tempo": 100,  # percent of authored speed
        "repeat": False,
        "settle_delay_ms": 50,  # lets the previous session go quiet before a restart
    },
    "recognition": {
        "staff_threshold": 128,
        "staff_min_fraction": 0.3,
        "staff_min_gap": 3,
        "max_staff_lines": 5,
        "notehead_threshold": 100,
        "min_radius": 4,
        "max_radius": 20,
        "max_blob_pixels": 500,
        "filled_density": 0.6,
        "dedupe_distance": 15,
        "max_notes": 32,
        "filled_duration_ms": 500,
        "open_duration_ms": 1000,
    },
    "editor": {
        "default_duration_ms": 500,
        "default_score_name": "My Ocarina Song",
        "undo_limit": 100,
    },
}


def default_settings() -> Dict[str, Dict[str, Any]]:
    """Deep copy of the built-in defaults."""
    return copy.deepcopy(DEFAULT_SETTINGS)


def load_settings(config_path: Optional[Path] = None) -> Dict[str, Dict[str, Any]]:
    """
    Load settings from config file.

    Args:
        config_path: Settings file (default ~/.ocarina_studio/settings.json)

    Returns:
        Settings dictionary, always containing every default key
    """
    config_path = Path(config_path) if config_path else SETTINGS_PATH
    settings = default_settings()

    if not config_path.exists():
        # No config file exists, save defaults
        try:
            save_settings(settings, config_path)
            print("[SETTINGS] Created new settings file with defaults")
        except IOError as e:
            print(f"[SETTINGS] Failed to save default settings: {e}")
        return settings

    try:
        with open(config_path, "r") as f:
            loaded = json.load(f)
    except (OSError, ValueError) as e:
        print(f"[SETTINGS] Failed to load settings: {e}")
        return settings

    if not isinstance(loaded, dict):
        print(f"[SETTINGS] Ignoring settings file, expected an object: {config_path}")
        return settings

    # Merge with defaults (in case new settings added)
    for category in settings:
        if isinstance(loaded.get(category), dict):
            settings[category].update(loaded[category])

    return settings


def save_settings(settings: Dict[str, Dict[str, Any]], config_path: Optional[Path] = None):
    """
    Save settings to config file.

    Raises:
        IOError: If the file cannot be written
    """
    config_path = Path(config_path) if config_path else SETTINGS_PATH
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            json.dump(settings, f, indent=2)
    except OSError as e:
        raise IOError(f"Failed to save settings to {config_path}: {e}") from e
