"""Per-user settings: where saves are stored and which games to leave alone.

Format (settings.yaml):
    storage_path: /mnt/backup/saves
    ignored:
      - factorio
      - terraria
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from platformdirs import user_config_dir

from savelink.core.errors import SettingsError

logger = logging.getLogger(__name__)

APP_NAME = "savelink"
SETTINGS_FILENAME = "settings.yaml"
CONFIG_DIR_ENV = "SAVELINK_CONFIG_DIR"


def default_config_dir() -> Path:
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override)
    return Path(user_config_dir(APP_NAME, appauthor=False))


def settings_path(config_dir: Path | None = None) -> Path:
    return (config_dir or default_config_dir()) / SETTINGS_FILENAME


@dataclass
class Settings:
    storage_path: Path | None = None
    ignored: set[str] = field(default_factory=set)

    @classmethod
    def load(cls, config_dir: Path | None = None) -> Settings:
        """Load settings, falling back to defaults when there are none yet.

        Raises:
            SettingsError: If the file can't be read or parsed, or holds
                values of the wrong type. The file is left as it is.
        """
        path = settings_path(config_dir)
        if not path.exists():
            return cls()

        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            raise SettingsError(f"Could not read {path}: {e}") from e

        if raw is None:
            return cls()
        if not isinstance(raw, dict):
            raise SettingsError(f"{path} must hold a mapping of settings")

        storage = raw.get("storage_path")
        if storage is not None and not isinstance(storage, str):
            raise SettingsError(f"'storage_path' in {path} must be a path, got {storage!r}")

        ignored = raw.get("ignored")
        if ignored is None:
            ignored = []
        if not isinstance(ignored, list) or not all(isinstance(i, str) for i in ignored):
            raise SettingsError(f"'ignored' in {path} must be a list of game ids, got {ignored!r}")

        return cls(
            storage_path=Path(storage) if storage else None,
            ignored={i for i in ignored if i},
        )

    def save(self, config_dir: Path | None = None) -> Path:
        path = settings_path(config_dir)
        data = {
            "storage_path": str(self.storage_path) if self.storage_path else None,
            "ignored": sorted(self.ignored),
        }
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(data, default_flow_style=False), encoding="utf-8")
        logger.debug("Saved settings to %s", path)
        return path

    def set_storage_path(self, path: Path | str) -> Path:
        """Point the storage path at *path*, creating the directory.

        Relative paths are taken relative to the working directory.
        """
        if not str(path).strip():
            raise ValueError("You must specify a path")

        resolved = Path(path).expanduser()
        if not resolved.is_absolute():
            resolved = Path.cwd() / resolved
        resolved.mkdir(parents=True, exist_ok=True)
        self.storage_path = resolved
        return resolved

    def require_storage_path(self) -> Path:
        if self.storage_path is None:
            raise SettingsError("No storage path is set, use set-storage-path first")
        if not self.storage_path.is_absolute():
            raise SettingsError(
                f"The configured storage path isn't absolute ({self.storage_path})"
            )
        return self.storage_path

    def is_ignored(self, game_id: str) -> bool:
        return game_id in self.ignored

    def ignore(self, game_id: str) -> bool:
        """Ignore *game_id*; returns False if it already was."""
        if not game_id:
            raise ValueError("The game id must not be empty")
        if game_id in self.ignored:
            return False
        self.ignored.add(game_id)
        return True

    def heed(self, game_id: str) -> bool:
        """Stop ignoring *game_id*; returns False if it wasn't ignored."""
        if not game_id:
            raise ValueError("The game id must not be empty")
        if game_id not in self.ignored:
            return False
        self.ignored.remove(game_id)
        return True
