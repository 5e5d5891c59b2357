"""Environment-driven settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_BRIDGE = "adb"


@dataclass(frozen=True)
class Settings:
    nexmon_root: Path
    bridge_executable: str
    config_home: Path
    data_home: Path

    @classmethod
    def from_env(cls) -> Settings:
        root = os.environ.get("NEXMON_ROOT")
        return cls(
            nexmon_root=Path(root) if root else Path.cwd(),
            bridge_executable=os.environ.get("NEXPROBE_ADB", DEFAULT_BRIDGE),
            config_home=Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")),
            data_home=Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local/share")),
        )

    @property
    def firmwares_dir(self) -> Path:
        return self.nexmon_root / "firmwares"

    def user_catalog_dirs(self) -> tuple[Path, Path]:
        return self.config_home / "nexprobe/chips", self.data_home / "nexprobe/chips"
