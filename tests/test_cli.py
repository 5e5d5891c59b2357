from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from nexprobe import cli
from nexprobe.core.service import FirmwareService

runner = CliRunner()


def _use_host(monkeypatch: pytest.MonkeyPatch, host) -> None:
    monkeypatch.setattr(cli, "FirmwareService", lambda: FirmwareService(probe=host))


def test_extract_command_end_to_end(tmp_path: Path) -> None:
    src = tmp_path / "fw"
    src.mkdir()
    (src / "fw_bcm43455c0.bin").write_bytes(b"firmware")
    out = tmp_path / "out"

    result = runner.invoke(
        cli.app,
        ["extract", "--source", str(src), "--chip", "bcm43455c0", "--version", "7_45_206", "--output", str(out)],
    )

    assert result.exit_code == 0
    fw_dir = out / "bcm43455c0" / "7_45_206"
    for name in ("fw_bcm43455c0.bin", "definitions.mk", "Makefile"):
        assert (fw_dir / name).is_file()
    assert "Status: success" in result.output
    assert "Wrote: fw_bcm43455c0.bin, definitions.mk, Makefile" in result.output


def test_extract_command_empty_source_fails(tmp_path: Path) -> None:
    src = tmp_path / "fw"
    src.mkdir()
    out = tmp_path / "out"

    result = runner.invoke(
        cli.app,
        ["extract", "--source", str(src), "--chip", "bcm43455c0", "--version", "7_45_206", "--output", str(out)],
    )

    assert result.exit_code == 1
    assert "No firmware files found" in result.output
    assert not out.exists()


def test_extract_command_invalid_source_names_step(tmp_path: Path) -> None:
    result = runner.invoke(
        cli.app,
        ["extract", "--source", str(tmp_path / "missing"), "--chip", "bcm43455c0", "--version", "7_45_206"],
    )
    assert result.exit_code == 1
    assert "Error: acquisition failed: Source directory not found" in result.output
    assert "Traceback" not in result.output


def test_extract_command_missing_arguments(tmp_path: Path) -> None:
    result = runner.invoke(cli.app, ["extract", "--source", str(tmp_path), "--chip", "bcm43455c0"])
    assert result.exit_code == 1
    assert "Missing required arguments: --version" in result.output
    assert "Usage:" in result.output
    assert not (tmp_path / "nexmon").exists()


def test_extract_command_detect_fills_chip(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, fake_host) -> None:
    _use_host(monkeypatch, fake_host(kernel_log="brcmfmac: using brcm/brcmfmac43430-sdio for chip BCM43430/1"))
    src = tmp_path / "fw"
    src.mkdir()
    (src / "brcmfmac43430-sdio.bin").write_bytes(b"fw")

    result = runner.invoke(cli.app, ["extract", "--source", str(src), "--detect", "--output", str(tmp_path / "out")])

    assert result.exit_code == 0
    assert "Detected chip: bcm43430a1 (likely) via kernel-log" in result.output
    assert (tmp_path / "out" / "bcm43430a1" / "7_45_41_46" / "brcmfmac43430-sdio.bin").is_file()


def test_extract_command_detect_inconclusive(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, fake_host) -> None:
    _use_host(monkeypatch, fake_host())
    result = runner.invoke(cli.app, ["extract", "--source", str(tmp_path), "--detect"])
    assert result.exit_code == 1
    assert "Missing required arguments: --chip, --version" in result.output


def test_unknown_option(capsys: pytest.CaptureFixture[str]) -> None:
    code = cli.run(["extract", "--bogus"])
    captured = capsys.readouterr()
    assert code == 1
    assert "Unknown option: --bogus" in captured.err
    assert "Usage:" in captured.err


def test_run_help_exits_zero(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.run(["--help"]) == 0


def test_run_missing_arguments_matches_usage_contract(capsys: pytest.CaptureFixture[str], tmp_path: Path) -> None:
    code = cli.run(["extract", "--chip", "bcm4339"])
    captured = capsys.readouterr()
    assert code == 1
    assert "Missing required arguments: --source, --version" in captured.err
    assert "Usage:" in captured.err


def test_detect_command_exact(monkeypatch: pytest.MonkeyPatch, fake_host) -> None:
    _use_host(monkeypatch, fake_host(model="Raspberry Pi 4 Model B Rev 1.4"))
    result = runner.invoke(cli.app, ["detect"])
    assert result.exit_code == 0
    assert "[device-tree] Device tree model" in result.output
    assert "Chip: bcm43455c0\n" in result.output
    assert result.output.index("patches/bcm43455c0/7_45_206/nexmon/") < result.output.index(
        "patches/bcm43455c0/7_45_189/nexmon/"
    )
    assert "Next steps:" in result.output


def test_detect_command_multiple_likely(monkeypatch: pytest.MonkeyPatch, fake_host) -> None:
    _use_host(
        monkeypatch,
        fake_host(
            firmware={
                "/lib/firmware/brcm": [
                    "/lib/firmware/brcm/brcmfmac43430-sdio.bin",
                    "/lib/firmware/brcm/brcmfmac43455-sdio.bin",
                ]
            }
        ),
    )
    result = runner.invoke(cli.app, ["detect"])
    assert result.exit_code == 0
    assert "Best-effort guess" in result.output
    assert "Multiple candidate chips found:" in result.output
    assert "Chip: bcm43430a1 (likely)" in result.output
    assert "Chip: bcm43455c0 (likely)" in result.output


def test_detect_command_inconclusive_exits_zero(monkeypatch: pytest.MonkeyPatch, fake_host) -> None:
    _use_host(monkeypatch, fake_host())
    result = runner.invoke(cli.app, ["detect"])
    assert result.exit_code == 0
    assert "Could not automatically detect device" in result.output
    assert "1. Check dmesg: dmesg | grep -i brcm" in result.output
    assert "not available on this host" in result.output


def test_chips_command() -> None:
    result = runner.invoke(cli.app, ["chips"])
    assert result.exit_code == 0
    assert "bcm4358: BCM4358 (Nexus 6P)" in result.output
    assert "  7_112_300_14_sta (Android 8.0) -> patches/bcm4358/7_112_300_14_sta/nexmon/" in result.output


def test_catalog_override_warning_is_printed(tmp_path: Path) -> None:
    chips = tmp_path / "cfg" / "nexprobe" / "chips"
    chips.mkdir(parents=True)
    (chips / "bcm4339.yaml").write_text('id: bcm4339\nname: Mine\nfirmware:\n  - version: "6_37_34_43"\n    rank: 1\n')

    result = runner.invoke(cli.app, ["chips"])
    assert result.exit_code == 0
    assert "Warning: User chip 'bcm4339' overrides packaged chip" in result.output
