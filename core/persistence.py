"""
Score file I/O for the .ocarina format.

File format:
- MessagePack binary format (fast, compact)
- Contains: Score model + version field
"""
from pathlib import Path
from typing import Optional
import msgpack
from core.models import Score
from core.settings import SETTINGS_DIR

SCORE_SUFFIX = ".ocarina"


class ScoreFile:
    """Handles .ocarina score file I/O."""

    @staticmethod
    def save(score: Score, path: Path) -> Path:
        """
        Save score to .ocarina file.

        Args:
            score: Score to save
            path: Destination file path

        Returns:
            Path actually written (suffix enforced)

        Raises:
            IOError: If save fails
        """
        path = Path(path)
        if path.suffix != SCORE_SUFFIX:
            path = path.with_suffix(SCORE_SUFFIX)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            packed_data = msgpack.packb(score.to_dict(), use_bin_type=True)
            with open(path, "wb") as f:
                f.write(packed_data)
        except (OSError, TypeError, ValueError) as e:
            raise IOError(f"Failed to save score to {path}: {e}") from e

        return path

    @staticmethod
    def load(path: Path) -> Score:
        """
        Load score from .ocarina file.

        Args:
            path: Source file path

        Returns:
            Loaded score

        Raises:
            IOError: If the file cannot be read
            ValueError: If file format invalid
        """
        path = Path(path)
        if not path.exists():
            raise IOError(f"Score file not found: {path}")

        try:
            with open(path, "rb") as f:
                packed_data = f.read()
        except OSError as e:
            raise IOError(f"Failed to load score from {path}: {e}") from e

        try:
            score_data = msgpack.unpackb(packed_data, raw=False)
        except (msgpack.exceptions.ExtraData, ValueError) as e:
            raise ValueError(f"Invalid .ocarina file format: {e}") from e

        if not isinstance(score_data, dict):
            raise ValueError(f"Invalid .ocarina file format: {path}")

        version = str(score_data.get("version", "unknown"))
        if not version.startswith("1."):
            raise ValueError(f"Incompatible score version: {version}. Expected 1.x")

        try:
            return Score.from_dict(score_data)
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid .ocarina file format: {e}") from e

    @staticmethod
    def auto_save(score: Score, base_dir: Optional[Path] = None) -> Optional[Path]:
        """
        Auto-save score to the autosave folder.

        Errors are logged, never raised.
        """
        try:
            return ScoreFile.save(score, ScoreFile.get_auto_save_path(score.name, base_dir))
        except IOError as e:
            print(f"[SAVE] Auto-save failed: {e}")
            return None

    @staticmethod
    def get_auto_save_path(score_name: str, base_dir: Optional[Path] = None) -> Path:
        """
        Get path to auto-save file for a score.

        Args:
            score_name: Score name
            base_dir: Settings folder (default ~/.ocarina_studio)

        Returns:
            Path to auto-save file
        """
        auto_save_dir = Path(base_dir or SETTINGS_DIR) / "autosave"

        # Sanitize score name for file system
        safe_name = "".join(c for c in score_name if c.isalnum() or c in (' ', '-', '_')).strip()
        if not safe_name:
            safe_name = "untitled"

        return auto_save_dir / f"{safe_name}{SCORE_SUFFIX}"
