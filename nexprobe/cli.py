"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence
from pathlib import Path

import click
import typer

from nexprobe.core.errors import NexprobeError
from nexprobe.core.model import Confidence, DetectionReport, ExtractionResult, ExtractionStatus
from nexprobe.core.service import FirmwareService

app = typer.Typer(help="Broadcom WiFi chip detection and firmware extraction for Nexmon")

MANUAL_STEPS = (
    "Check dmesg: dmesg | grep -i brcm",
    "Check firmware: ls /lib/firmware/brcm/",
    "Check lspci: lspci | grep -i network",
    "See COMPATIBILITY.md for full device list",
)
BUILD_STEPS = (
    "Navigate to the recommended patch directory",
    "Run: source setup_env.sh",
    "Run: make",
    "Run: make install-firmware",
)


def _build_service() -> FirmwareService:
    service = FirmwareService()
    for warning in getattr(service, "load_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return service


def _fail(exc: NexprobeError) -> typer.Exit:
    typer.echo(f"Error: {exc.step} failed: {exc}", err=True)
    return typer.Exit(code=1)


def _usage_error(ctx: click.Context, message: str) -> typer.Exit:
    typer.echo(f"Error: {message}", err=True)
    typer.echo(ctx.get_usage(), err=True)
    typer.echo(f"Try '{ctx.command_path} --help' for help.", err=True)
    return typer.Exit(code=1)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
) -> None:
    """Detect WiFi chips and extract firmware for patch building."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@app.command("chips")
def list_chips() -> None:
    """List known chips and their ranked firmware versions."""
    try:
        service = _build_service()
        for profile in service.list_chips():
            typer.echo(f"{profile.chip_id}: {profile.display_name}")
            for candidate in profile.recommended():
                note = f" ({candidate.note})" if candidate.note else ""
                typer.echo(f"  {candidate.version_id}{note} -> {candidate.relative_patch_path}")
    except NexprobeError as exc:
        raise _fail(exc) from None


@app.command("detect")
def detect() -> None:
    """Detect the WiFi chip on this host and recommend firmware patches.

    Always exits 0: an inconclusive detection is reported with manual steps.
    """
    try:
        service = _build_service()
        report = service.detect()
    except NexprobeError as exc:
        typer.echo(f"Error: {exc.step} failed: {exc}", err=True)
        return
    _print_detection(report, service)


@app.command("extract")
def extract(
    ctx: typer.Context,
    source: str | None = typer.Option(None, "--source", "-s", help="adb, image:PATH, or a firmware directory"),
    chip: str | None = typer.Option(None, "--chip", "-c", help="Chip model, e.g. bcm43455c0"),
    version: str | None = typer.Option(None, "--version", "-v", help="Firmware version, e.g. 7_45_206"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output root (default: <root>/firmwares)"),
    use_detection: bool = typer.Option(False, "--detect", help="Fill a missing chip/version from detection"),
) -> None:
    """Extract firmware from a source into the canonical firmware layout."""
    if not use_detection:
        _check_required(ctx, source, chip, version)

    try:
        service = _build_service()
        if use_detection:
            resolution = service.resolve(chip, version, use_detection=True)
            chip, version = resolution.chip_id, resolution.version_id
            if resolution.detection is not None:
                detection = resolution.detection
                guess = " (likely)" if detection.confidence is Confidence.LIKELY else ""
                typer.echo(f"Detected chip: {detection.profile.chip_id}{guess} via {detection.strategy}")
            _check_required(ctx, source, chip, version)

        typer.echo(f"Extracting {chip} {version} from {source}")
        result = service.extract(source, chip, version, output)
    except NexprobeError as exc:
        raise _fail(exc) from None

    _print_extraction(result)
    if result.status is ExtractionStatus.NOT_FOUND:
        raise typer.Exit(code=1)


def _check_required(ctx: click.Context, source: str | None, chip: str | None, version: str | None) -> None:
    missing = [
        flag
        for flag, value in (("--source", source), ("--chip", chip), ("--version", version))
        if not value
    ]
    if missing:
        raise _usage_error(ctx, f"Missing required arguments: {', '.join(missing)}")


def _print_detection(report: DetectionReport, service: FirmwareService) -> None:
    typer.echo("Nexmon device detection")
    for attempt in report.attempts:
        typer.echo("")
        typer.echo(f"[{attempt.strategy}] {attempt.title}")
        if not attempt.available:
            typer.echo("  not available on this host")
            continue
        for line in attempt.observations:
            typer.echo(f"  {line}")

    result = report.result
    typer.echo("")
    if result is None:
        typer.echo("Could not automatically detect device")
        typer.echo("Manual detection steps:")
        for index, step in enumerate(MANUAL_STEPS, start=1):
            typer.echo(f"  {index}. {step}")
        return

    likely = result.confidence is Confidence.LIKELY
    if likely:
        typer.echo(f"Best-effort guess from {result.strategy}; confirm the chip before building.")
    if len(result.profiles) > 1:
        typer.echo("Multiple candidate chips found:")
    for profile in result.profiles:
        suffix = " (likely)" if likely else ""
        typer.echo(f"Chip: {profile.chip_id}{suffix}")
        typer.echo("Recommended firmware patches:")
        for candidate in service.recommendations(profile.chip_id):
            note = f" ({candidate.note})" if candidate.note else ""
            typer.echo(f"  {candidate.relative_patch_path}{note}")

    typer.echo("")
    typer.echo("Next steps:")
    for index, step in enumerate(BUILD_STEPS, start=1):
        typer.echo(f"  {index}. {step}")


def _print_extraction(result: ExtractionResult) -> None:
    if result.status is ExtractionStatus.NOT_FOUND:
        for warning in result.warnings:
            typer.echo(f"Error: acquisition failed: {warning}", err=True)
        return

    typer.echo("Found firmware files:")
    for filename in result.source_files:
        typer.echo(f"  {filename}")
    for warning in result.warnings:
        typer.echo(f"Warning: {warning}", err=True)

    typer.echo(f"Firmware directory: {result.output_dir}")
    if result.files_written:
        typer.echo(f"Wrote: {', '.join(result.files_written)}")
    typer.echo(f"Status: {result.status.value}")
    typer.echo("")
    typer.echo("Next steps:")
    typer.echo("  1. Analyze firmware with IDA Pro/Ghidra/radare2")
    typer.echo(f"  2. Update addresses in {result.output_dir / 'definitions.mk'}")
    typer.echo(f"  3. Extract flashpatches: cd {result.output_dir} && make")
    typer.echo(f"  4. Create patch structure in patches/{result.chip_id}/{result.version_id}/")


def run(argv: Sequence[str] | None = None) -> int:
    command = typer.main.get_command(app)
    try:
        rv = command.main(args=list(argv) if argv is not None else None, prog_name="nexprobe", standalone_mode=False)
    except click.exceptions.NoSuchOption as exc:
        typer.echo(f"Error: Unknown option: {exc.option_name}", err=True)
        if exc.ctx is not None:
            typer.echo(exc.ctx.get_usage(), err=True)
            typer.echo(f"Try '{exc.ctx.command_path} --help' for help.", err=True)
        return 1
    except click.UsageError as exc:
        exc.show()
        return 1
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.Abort:
        return 1
    return rv if isinstance(rv, int) else 0


if __name__ == "__main__":
    sys.exit(run())
