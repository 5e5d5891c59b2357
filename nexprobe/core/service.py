"""Service layer used by the CLI and the public API."""

from __future__ import annotations

import logging
import re
import tempfile
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from pathlib import Path

from nexprobe.core.catalog import ChipCatalog, load_catalog
from nexprobe.core.config import Settings
from nexprobe.core.detection import DetectionEngine
from nexprobe.core.errors import NoFilesFoundError, UsageError
from nexprobe.core.model import (
    AcquiredBinary,
    ChipProfile,
    Detection,
    DetectionReport,
    ExtractionResult,
    ExtractionStatus,
    FirmwareCandidate,
    FirmwareSource,
    SourceKind,
)
from nexprobe.core.scaffold import scaffold
from nexprobe.probes.base import HostProbe
from nexprobe.probes.local import LocalHostProbe
from nexprobe.sources.base import FirmwareAcquirer
from nexprobe.sources.bridge import BridgeAcquirer
from nexprobe.sources.filesystem import FilesystemAcquirer
from nexprobe.sources.image import ImageAcquirer

LOGGER = logging.getLogger(__name__)

_PATH_COMPONENT_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


@dataclass(frozen=True)
class Resolution:
    chip_id: str | None
    version_id: str | None
    detection: Detection | None = None


class FirmwareService:
    def __init__(
        self,
        *,
        settings: Settings | None = None,
        probe: HostProbe | None = None,
        acquirers: Mapping[SourceKind, FirmwareAcquirer] | None = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        loaded = load_catalog(self.settings)
        self.catalog: ChipCatalog = loaded.catalog
        self.load_warnings = loaded.warnings
        self.probe = probe or LocalHostProbe()
        self.acquirers: dict[SourceKind, FirmwareAcquirer] = {
            SourceKind.BRIDGE: BridgeAcquirer(self.settings.bridge_executable),
            SourceKind.FILESYSTEM: FilesystemAcquirer(),
            SourceKind.IMAGE: ImageAcquirer(),
        }
        if acquirers:
            self.acquirers.update(acquirers)

    def list_chips(self) -> list[ChipProfile]:
        return self.catalog.profiles()

    def recommendations(self, chip_id: str) -> list[FirmwareCandidate]:
        profile = self.catalog.get(chip_id)
        if profile is None:
            known = ", ".join(p.chip_id for p in self.catalog.profiles())
            raise UsageError(f"Unknown chip '{chip_id}'. Known chips: {known}")
        return profile.recommended()

    def detect(self) -> DetectionReport:
        return DetectionEngine(self.catalog).detect(self.probe)

    def resolve(
        self,
        chip_id: str | None,
        version_id: str | None,
        *,
        use_detection: bool = False,
    ) -> Resolution:
        if not use_detection or (chip_id and version_id):
            return Resolution(chip_id=chip_id, version_id=version_id)

        detection: Detection | None = None
        if not chip_id:
            detection = self.detect().result
            if detection is None:
                return Resolution(chip_id=None, version_id=version_id)
            chip_id = detection.profile.chip_id

        if not version_id:
            profile = self.catalog.get(chip_id)
            if profile is not None:
                version_id = profile.recommended()[0].version_id
        return Resolution(chip_id=chip_id, version_id=version_id, detection=detection)

    def extract(
        self,
        source: str | FirmwareSource,
        chip_id: str,
        version_id: str,
        output_root: Path | None = None,
    ) -> ExtractionResult:
        _require_component("chip", chip_id)
        _require_component("version", version_id)
        firmware_source = source if isinstance(source, FirmwareSource) else FirmwareSource.parse(source)
        root = output_root or self.settings.firmwares_dir
        fw_dir = root / chip_id / version_id

        profile = self.catalog.get(chip_id)
        if profile is None:
            LOGGER.warning("Chip '%s' is not in the catalog", chip_id)
        elif profile.candidate(version_id) is None:
            LOGGER.warning("Firmware version '%s' is not a known candidate for %s", version_id, chip_id)

        acquirer = self.acquirers[firmware_source.kind]
        with tempfile.TemporaryDirectory(prefix="nexprobe-staging-") as staging:
            try:
                acquisition = acquirer.acquire(
                    firmware_source,
                    Path(staging),
                    chip_hint=chip_id,
                    version_hint=version_id,
                )
            except NoFilesFoundError as exc:
                LOGGER.warning("%s", exc)
                return ExtractionResult(
                    chip_id=chip_id,
                    version_id=version_id,
                    output_dir=fw_dir,
                    files_written=(),
                    status=ExtractionStatus.NOT_FOUND,
                    warnings=(str(exc),),
                )

        binary = select_binary(acquisition.binaries, profile)
        result = scaffold(chip_id, version_id, binary, root)
        # A partial transfer still succeeds; failed files are carried as warnings.
        return replace(
            result,
            warnings=tuple(f"Transfer failed: {failure}" for failure in acquisition.failures),
            source_files=tuple(b.filename for b in acquisition.binaries),
        )


def select_binary(binaries: Sequence[AcquiredBinary], profile: ChipProfile | None) -> AcquiredBinary:
    """Pick the first binary naming the chip's family, else the first overall."""
    if profile is not None:
        for binary in binaries:
            if any(fragment in binary.filename for fragment in profile.match.fragments):
                return binary
    return binaries[0]


def _require_component(name: str, value: str | None) -> None:
    if not value:
        raise UsageError(f"Missing required argument: {name}")
    if not _PATH_COMPONENT_RE.match(value) or value in {".", ".."}:
        raise UsageError(f"Invalid {name} '{value}'")
