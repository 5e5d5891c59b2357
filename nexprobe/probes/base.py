"""Read-only host probe interfaces."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol


class HostProbe(Protocol):
    def read_device_tree_model(self) -> str | None:
        """Return the board model string, or None when the host has no device tree."""

    def read_platform_properties(self, keys: Sequence[str]) -> dict[str, str] | None:
        """Return the requested platform properties, or None without a property store."""

    def read_kernel_log(self) -> str | None:
        """Return the kernel log text, or None when it cannot be read."""

    def list_firmware_files(self, directory: str, pattern: str) -> list[str] | None:
        """Return matching file paths below directory, or None if it does not exist."""
