"""Firmware acquisition from a system image."""

from __future__ import annotations

import logging
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from pathlib import Path
from typing import Protocol

from nexprobe.core.commands import run_command
from nexprobe.core.errors import SourceUnavailableError
from nexprobe.core.model import Acquisition, FirmwareSource
from nexprobe.sources.filesystem import stage_tree

LOGGER = logging.getLogger(__name__)


class ImageMounter(Protocol):
    def mount(self, image: Path) -> AbstractContextManager[Path]:
        """Expose the image contents as a directory for the duration of the context."""


class LoopMounter:
    """Uses already-extracted directories as-is and loop-mounts image files read-only."""

    @contextmanager
    def mount(self, image: Path) -> Iterator[Path]:
        if image.is_dir():
            yield image
            return
        if not image.is_file():
            raise SourceUnavailableError(f"Image not found: {image}")

        for tool in ("mount", "umount"):
            if shutil.which(tool) is None:
                raise SourceUnavailableError(f"'{tool}' not found; extract the image and pass the directory")

        with tempfile.TemporaryDirectory(prefix="nexprobe-image-") as mountpoint:
            result = run_command(["mount", "-o", "loop,ro", str(image), mountpoint])
            if result is None or result.returncode != 0:
                detail = (result.stderr or "").strip() if result is not None else ""
                raise SourceUnavailableError(f"Could not mount {image}: {detail or 'mount failed'}")
            LOGGER.debug("Mounted %s at %s", image, mountpoint)
            try:
                yield Path(mountpoint)
            finally:
                run_command(["umount", mountpoint])


class ImageAcquirer:
    def __init__(self, mounter: ImageMounter | None = None) -> None:
        self.mounter = mounter or LoopMounter()

    def acquire(
        self,
        source: FirmwareSource,
        staging_dir: Path,
        *,
        chip_hint: str | None = None,
        version_hint: str | None = None,
    ) -> Acquisition:
        if source.path is None:
            raise SourceUnavailableError("Image source requires a path")
        LOGGER.info("Extracting firmware from image: %s", source.path)
        with self.mounter.mount(source.path) as root:
            return stage_tree(root, staging_dir)
