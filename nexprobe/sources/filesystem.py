"""Firmware acquisition from a local directory tree."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from nexprobe.core.errors import NoFilesFoundError, SourceUnavailableError
from nexprobe.core.model import AcquiredBinary, Acquisition, FirmwareSource
from nexprobe.sources.base import is_firmware_name, read_staged, sort_binaries

LOGGER = logging.getLogger(__name__)


def scan_firmware_tree(root: Path) -> list[Path]:
    """Return firmware files below root ordered by filename, then path."""
    matches = [path for path in root.rglob("*") if path.is_file() and is_firmware_name(path.name)]
    return sorted(matches, key=lambda p: (p.name, str(p)))


def stage_tree(root: Path, staging_dir: Path) -> Acquisition:
    files = scan_firmware_tree(root)
    if not files:
        raise NoFilesFoundError(f"No firmware files found in {root}")

    staging_dir.mkdir(parents=True, exist_ok=True)
    binaries: list[AcquiredBinary] = []
    for path in files:
        staged = staging_dir / path.name
        if staged.exists():
            # Same filename in two subdirectories: the first in sort order wins.
            LOGGER.warning("Skipping %s, %s already staged", path, path.name)
            continue
        try:
            shutil.copyfile(path, staged)
        except OSError as exc:
            raise SourceUnavailableError(f"Could not copy {path}: {exc}") from exc
        LOGGER.debug("Staged %s", path)
        binaries.append(read_staged(staged, str(path)))
    return Acquisition(binaries=sort_binaries(binaries))


class FilesystemAcquirer:
    def acquire(
        self,
        source: FirmwareSource,
        staging_dir: Path,
        *,
        chip_hint: str | None = None,
        version_hint: str | None = None,
    ) -> Acquisition:
        root = source.path
        if root is None or not root.is_dir():
            raise SourceUnavailableError(f"Source directory not found: {root}")
        LOGGER.info("Extracting firmware from filesystem: %s", root)
        return stage_tree(root, staging_dir)
