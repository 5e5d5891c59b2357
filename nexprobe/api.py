"""Stable public API for building tooling on top of nexprobe.

This module is the supported integration surface for third-party callers
such as build scripts or provisioning tools. Avoid importing from the
``nexprobe.core`` modules unless intentionally depending on non-stable
internals.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

from nexprobe.core.config import Settings
from nexprobe.core.errors import (
    AcquisitionError,
    CatalogLoadError,
    CatalogValidationError,
    NexprobeError,
    NoFilesFoundError,
    ScaffoldError,
    SourceUnavailableError,
    TransferError,
    UsageError,
)
from nexprobe.core.model import (
    AcquiredBinary,
    ChipProfile,
    Confidence,
    Detection,
    DetectionReport,
    ExtractionResult,
    ExtractionStatus,
    FirmwareCandidate,
    FirmwareSource,
    SourceKind,
)
from nexprobe.core.service import FirmwareService
from nexprobe.probes.base import HostProbe
from nexprobe.sources.base import FirmwareAcquirer

__all__ = [
    "NexprobeError",
    "CatalogLoadError",
    "CatalogValidationError",
    "UsageError",
    "AcquisitionError",
    "SourceUnavailableError",
    "NoFilesFoundError",
    "TransferError",
    "ScaffoldError",
    "AcquiredBinary",
    "ChipProfile",
    "Confidence",
    "Detection",
    "DetectionReport",
    "ExtractionResult",
    "ExtractionStatus",
    "FirmwareCandidate",
    "FirmwareSource",
    "SourceKind",
    "Settings",
    "Client",
]


class Client:
    """Public client for chip detection and firmware extraction.

    A `Client` wraps catalog loading, the detection chain, and source
    acquisition behind a stable API. Probes and acquirers can be swapped for
    fakes, which is how the test-suite drives it without real hardware.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        probe: HostProbe | None = None,
        acquirers: Mapping[SourceKind, FirmwareAcquirer] | None = None,
    ) -> None:
        self._service = FirmwareService(settings=settings, probe=probe, acquirers=acquirers)

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    def list_chips(self) -> list[ChipProfile]:
        return self._service.list_chips()

    def recommendations(self, chip_id: str) -> list[FirmwareCandidate]:
        return self._service.recommendations(chip_id)

    def detect(self) -> DetectionReport:
        return self._service.detect()

    def extract(
        self,
        source: str | FirmwareSource,
        *,
        chip_id: str,
        version_id: str,
        output_root: Path | None = None,
    ) -> ExtractionResult:
        return self._service.extract(source, chip_id, version_id, output_root)
