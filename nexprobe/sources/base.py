"""Firmware acquisition interfaces."""

from __future__ import annotations

import fnmatch
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

from nexprobe.core.model import AcquiredBinary, Acquisition, FirmwareSource

FIRMWARE_PATTERNS = ("fw_bcm*.bin", "brcmfmac*.bin")


class FirmwareAcquirer(Protocol):
    def acquire(
        self,
        source: FirmwareSource,
        staging_dir: Path,
        *,
        chip_hint: str | None = None,
        version_hint: str | None = None,
    ) -> Acquisition:
        """Stage firmware binaries from source and return them in filename order."""


def is_firmware_name(filename: str) -> bool:
    return any(fnmatch.fnmatch(filename, pattern) for pattern in FIRMWARE_PATTERNS)


def sort_binaries(binaries: Iterable[AcquiredBinary]) -> tuple[AcquiredBinary, ...]:
    return tuple(sorted(binaries, key=lambda b: (b.filename, b.origin_path)))


def read_staged(staged: Path, origin: str) -> AcquiredBinary:
    return AcquiredBinary(filename=staged.name, origin_path=origin, data=staged.read_bytes())
