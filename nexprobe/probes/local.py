"""Host probe backed by the local filesystem and system tools."""

from __future__ import annotations

import fnmatch
import logging
from collections.abc import Sequence
from pathlib import Path

from nexprobe.core.commands import run_command

LOGGER = logging.getLogger(__name__)

DEVICE_TREE_MODEL = Path("/proc/device-tree/model")


class LocalHostProbe:
    def __init__(self, device_tree_model: Path = DEVICE_TREE_MODEL) -> None:
        self.device_tree_model = device_tree_model

    def read_device_tree_model(self) -> str | None:
        try:
            raw = self.device_tree_model.read_bytes()
        except OSError:
            return None
        return raw.replace(b"\0", b"").decode("utf-8", errors="replace").strip()

    def read_platform_properties(self, keys: Sequence[str]) -> dict[str, str] | None:
        properties: dict[str, str] = {}
        for key in keys:
            result = run_command(["getprop", key])
            if result is None:
                return None
            value = result.stdout.strip() if result.returncode == 0 else ""
            properties[key] = value or "Unknown"
        return properties

    def read_kernel_log(self) -> str | None:
        result = run_command(["dmesg"])
        if result is None or result.returncode != 0:
            return None
        return result.stdout

    def list_firmware_files(self, directory: str, pattern: str) -> list[str] | None:
        root = Path(directory)
        if not root.is_dir():
            return None
        try:
            return sorted(
                str(path)
                for path in root.rglob("*")
                if path.is_file() and fnmatch.fnmatch(path.name, pattern)
            )
        except OSError as exc:
            LOGGER.debug("Scanning %s failed: %s", root, exc)
            return []

