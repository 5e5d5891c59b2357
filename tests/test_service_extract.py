from __future__ import annotations

from pathlib import Path

import pytest

from nexprobe.core.errors import SourceUnavailableError, UsageError
from nexprobe.core.model import AcquiredBinary, Acquisition, ExtractionStatus, SourceKind
from nexprobe.core.service import FirmwareService, select_binary
from nexprobe.core.catalog import load_catalog


class FakeAcquirer:
    def __init__(self, acquisition: Acquisition) -> None:
        self.acquisition = acquisition
        self.calls: list[tuple[str | None, str | None]] = []

    def acquire(self, source, staging_dir, *, chip_hint=None, version_hint=None):
        self.calls.append((chip_hint, version_hint))
        return self.acquisition


def _bin(name: str) -> AcquiredBinary:
    return AcquiredBinary(filename=name, origin_path=f"/remote/{name}", data=name.encode())


def test_extract_end_to_end(tmp_path: Path) -> None:
    src = tmp_path / "fw"
    src.mkdir()
    (src / "fw_bcm43455c0.bin").write_bytes(b"firmware")
    out = tmp_path / "out"

    result = FirmwareService().extract(str(src), "bcm43455c0", "7_45_206", out)

    fw_dir = out / "bcm43455c0" / "7_45_206"
    assert result.status is ExtractionStatus.SUCCESS
    assert result.output_dir == fw_dir
    for name in ("fw_bcm43455c0.bin", "definitions.mk", "Makefile"):
        assert (fw_dir / name).is_file()
    assert result.source_files == ("fw_bcm43455c0.bin",)


def test_extract_empty_source_writes_nothing(tmp_path: Path) -> None:
    src = tmp_path / "fw"
    src.mkdir()
    out = tmp_path / "out"

    result = FirmwareService().extract(str(src), "bcm43455c0", "7_45_206", out)

    assert result.status is ExtractionStatus.NOT_FOUND
    assert result.files_written == ()
    assert not out.exists()


def test_extract_missing_source_raises(tmp_path: Path) -> None:
    with pytest.raises(SourceUnavailableError):
        FirmwareService().extract(str(tmp_path / "missing"), "bcm43455c0", "7_45_206", tmp_path / "out")


def test_extract_default_output_under_nexmon_root(tmp_path: Path) -> None:
    src = tmp_path / "fw"
    src.mkdir()
    (src / "brcmfmac43430-sdio.bin").write_bytes(b"fw")

    result = FirmwareService().extract(str(src), "bcm43430a1", "7_45_41_46")

    assert result.output_dir == tmp_path / "nexmon" / "firmwares" / "bcm43430a1" / "7_45_41_46"
    assert (result.output_dir / "brcmfmac43430-sdio.bin").is_file()


def test_partial_transfer_is_reported(tmp_path: Path) -> None:
    acquirer = FakeAcquirer(Acquisition(binaries=(_bin("fw_bcm4358.bin"),), failures=("fw_bcm4358_apsta.bin: failed",)))
    service = FirmwareService(acquirers={SourceKind.BRIDGE: acquirer})

    result = service.extract("adb", "bcm4358", "7_112_300_14_sta", tmp_path / "out")

    assert acquirer.calls == [("bcm4358", "7_112_300_14_sta")]
    assert result.status is ExtractionStatus.SUCCESS
    assert result.warnings == ("Transfer failed: fw_bcm4358_apsta.bin: failed",)
    assert (result.output_dir / "fw_bcm4358.bin").read_bytes() == b"fw_bcm4358.bin"


def test_select_binary_prefers_chip_family() -> None:
    profile = load_catalog().catalog.get("bcm43455c0")
    binaries = [_bin("brcmfmac43430-sdio.bin"), _bin("brcmfmac43455-sdio.bin")]
    assert select_binary(binaries, profile).filename == "brcmfmac43455-sdio.bin"
    assert select_binary(binaries, None).filename == "brcmfmac43430-sdio.bin"


@pytest.mark.parametrize(("chip", "version"), [("", "7_45_206"), ("bcm43455c0", ""), ("../etc", "1"), ("bcm43455c0", "a/b")])
def test_extract_rejects_bad_identifiers(tmp_path: Path, chip: str, version: str) -> None:
    with pytest.raises(UsageError):
        FirmwareService().extract(str(tmp_path), chip, version, tmp_path / "out")


def test_resolve_fills_chip_and_version_from_detection(fake_host) -> None:
    service = FirmwareService(probe=fake_host(model="Raspberry Pi 4 Model B Rev 1.4"))

    resolution = service.resolve(None, None, use_detection=True)

    assert resolution.chip_id == "bcm43455c0"
    assert resolution.version_id == "7_45_206"
    assert resolution.detection.strategy == "device-tree"


def test_resolve_without_detection_keeps_input(fake_host) -> None:
    host = fake_host(model="Raspberry Pi 4 Model B Rev 1.4")
    resolution = FirmwareService(probe=host).resolve(None, "7_45_206")
    assert resolution.chip_id is None
    assert host.calls == []


def test_resolve_inconclusive(fake_host) -> None:
    resolution = FirmwareService(probe=fake_host()).resolve(None, None, use_detection=True)
    assert resolution.chip_id is None
    assert resolution.version_id is None


def test_recommendations_unknown_chip() -> None:
    with pytest.raises(UsageError):
        FirmwareService().recommendations("bcm9999")
