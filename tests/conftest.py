from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import pytest


class FakeHost:
    def __init__(
        self,
        *,
        model: str | None = None,
        properties: dict[str, str] | None = None,
        kernel_log: str | None = None,
        firmware: dict[str, list[str]] | None = None,
    ) -> None:
        self.model = model
        self.properties = properties
        self.kernel_log = kernel_log
        self.firmware = firmware or {}
        self.calls: list[str] = []

    def read_device_tree_model(self) -> str | None:
        self.calls.append("device-tree")
        return self.model

    def read_platform_properties(self, keys: Sequence[str]) -> dict[str, str] | None:
        self.calls.append("platform-properties")
        if self.properties is None:
            return None
        return {key: self.properties.get(key, "Unknown") for key in keys}

    def read_kernel_log(self) -> str | None:
        self.calls.append("kernel-log")
        return self.kernel_log

    def list_firmware_files(self, directory: str, pattern: str) -> list[str] | None:
        self.calls.append(f"firmware-files:{directory}")
        return self.firmware.get(directory)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setenv("NEXMON_ROOT", str(tmp_path / "nexmon"))


@pytest.fixture
def fake_host() -> type[FakeHost]:
    return FakeHost
