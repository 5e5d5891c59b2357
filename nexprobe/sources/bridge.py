"""Firmware acquisition from a connected Android device over adb."""

from __future__ import annotations

import logging
import posixpath
import shutil
from collections.abc import Sequence
from pathlib import Path

from nexprobe.core.commands import run_command
from nexprobe.core.config import DEFAULT_BRIDGE
from nexprobe.core.errors import NoFilesFoundError, SourceUnavailableError, TransferError
from nexprobe.core.model import AcquiredBinary, Acquisition, FirmwareSource
from nexprobe.sources.base import is_firmware_name, read_staged, sort_binaries

LOGGER = logging.getLogger(__name__)

REMOTE_FIRMWARE_DIRS = (
    "/vendor/firmware",
    "/system/vendor/firmware",
    "/system/etc/firmware",
)
REMOTE_PATTERN = "fw_bcm*.bin"


class BridgeAcquirer:
    def __init__(
        self,
        executable: str = DEFAULT_BRIDGE,
        remote_dirs: Sequence[str] = REMOTE_FIRMWARE_DIRS,
    ) -> None:
        self.executable = executable
        self.remote_dirs = tuple(remote_dirs)

    def acquire(
        self,
        source: FirmwareSource,
        staging_dir: Path,
        *,
        chip_hint: str | None = None,
        version_hint: str | None = None,
    ) -> Acquisition:
        adb = shutil.which(self.executable)
        if adb is None:
            raise SourceUnavailableError(
                f"'{self.executable}' not found. Install Android SDK platform-tools."
            )

        devices = self._connected_devices(adb)
        if not devices:
            raise SourceUnavailableError(
                "No Android device connected or unauthorized. "
                "Enable USB debugging and authorize this computer."
            )
        LOGGER.info("Device connected: %s", ", ".join(devices))

        for remote_dir in self.remote_dirs:
            LOGGER.info("Checking %s...", remote_dir)
            remote_files = self._list_remote(adb, remote_dir)
            if remote_files:
                LOGGER.info("Found firmware files in %s", remote_dir)
                return self._pull_all(adb, remote_files, staging_dir)

        raise NoFilesFoundError(
            f"No firmware files found on device (checked {', '.join(self.remote_dirs)})"
        )

    def _connected_devices(self, adb: str) -> list[str]:
        result = run_command([adb, "devices"])
        if result is None or result.returncode != 0:
            stderr = (result.stderr or "").strip() if result is not None else ""
            raise SourceUnavailableError(f"'adb devices' failed: {stderr or 'no output'}")

        devices: list[str] = []
        for line in result.stdout.splitlines():
            parts = line.split()
            if len(parts) >= 2 and parts[-1] == "device":
                devices.append(parts[0])
        return devices

    def _list_remote(self, adb: str, remote_dir: str) -> list[str]:
        pattern = posixpath.join(remote_dir, REMOTE_PATTERN)
        result = run_command([adb, "shell", f"ls {pattern} 2>/dev/null"])
        if result is None or result.returncode != 0:
            return []
        files = {
            line.strip()
            for line in result.stdout.splitlines()
            if is_firmware_name(posixpath.basename(line.strip()))
        }
        return sorted(files, key=lambda p: (posixpath.basename(p), p))

    def _pull_all(self, adb: str, remote_files: list[str], staging_dir: Path) -> Acquisition:
        staging_dir.mkdir(parents=True, exist_ok=True)
        binaries: list[AcquiredBinary] = []
        failures: list[str] = []

        for remote in remote_files:
            staged = staging_dir / posixpath.basename(remote)
            LOGGER.info("Pulling %s...", staged.name)
            result = run_command([adb, "pull", remote, str(staged)])
            if result is None or result.returncode != 0 or not staged.is_file():
                detail = (result.stderr or "").strip() if result is not None else "adb disappeared"
                failure = f"{remote}: {detail or 'pull failed'}"
                LOGGER.warning("Transfer failed for %s", failure)
                failures.append(failure)
                continue
            binaries.append(read_staged(staged, remote))

        if not binaries:
            raise TransferError(
                f"None of {len(remote_files)} firmware transfers succeeded: {'; '.join(failures)}"
            )
        return Acquisition(binaries=sort_binaries(binaries), failures=tuple(failures))

