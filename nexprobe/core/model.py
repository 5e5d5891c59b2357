"""Core data models used across catalog, detection, acquisition, and CLI."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType


class SignalKind(str, Enum):
    DEVICE_TREE_MODEL = "device_tree_model"
    PLATFORM_PROPERTIES = "platform_properties"
    KERNEL_LOG = "kernel_log"
    FIRMWARE_FILENAME = "firmware_filename"


class Confidence(str, Enum):
    EXACT = "exact"
    LIKELY = "likely"


class SourceKind(str, Enum):
    BRIDGE = "bridge"
    FILESYSTEM = "filesystem"
    IMAGE = "image"


class ExtractionStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class DeviceSignature:
    """Raw text observed per signal source during one detection run."""

    signals: Mapping[SignalKind, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "signals", MappingProxyType(dict(self.signals)))

    def get(self, kind: SignalKind) -> str | None:
        return self.signals.get(kind)


@dataclass(frozen=True)
class MatchRules:
    board_models: tuple[str, ...] = ()
    device_codenames: Mapping[str, str] = field(default_factory=dict)
    fragments: tuple[str, ...] = ()


@dataclass(frozen=True)
class FirmwareCandidate:
    version_id: str
    relative_patch_path: str
    rank: int
    note: str = ""


@dataclass(frozen=True)
class ChipProfile:
    chip_id: str
    display_name: str
    candidate_firmware_versions: tuple[FirmwareCandidate, ...]
    match: MatchRules = field(default_factory=MatchRules)

    def recommended(self) -> list[FirmwareCandidate]:
        # sorted() is stable, so equal ranks keep declaration order.
        return sorted(self.candidate_firmware_versions, key=lambda c: c.rank)

    def candidate(self, version_id: str) -> FirmwareCandidate | None:
        for candidate in self.candidate_firmware_versions:
            if candidate.version_id == version_id:
                return candidate
        return None


@dataclass(frozen=True)
class SignatureRule:
    kind: SignalKind
    pattern: str
    chip_id: str
    label: str = ""


@dataclass(frozen=True)
class Detection:
    strategy: str
    profiles: tuple[ChipProfile, ...]
    confidence: Confidence
    evidence: tuple[str, ...] = ()

    @property
    def profile(self) -> ChipProfile:
        return self.profiles[0]


@dataclass(frozen=True)
class StrategyAttempt:
    strategy: str
    title: str
    available: bool
    observations: tuple[str, ...] = ()
    detection: Detection | None = None
    raw: str | None = None


@dataclass(frozen=True)
class DetectionReport:
    attempts: tuple[StrategyAttempt, ...]
    signature: DeviceSignature
    result: Detection | None


@dataclass(frozen=True)
class FirmwareSource:
    kind: SourceKind
    path: Path | None = None

    @classmethod
    def parse(cls, text: str) -> FirmwareSource:
        if text == "adb":
            return cls(kind=SourceKind.BRIDGE)
        if text.startswith("image:"):
            return cls(kind=SourceKind.IMAGE, path=Path(text[len("image:"):]))
        return cls(kind=SourceKind.FILESYSTEM, path=Path(text))

    def describe(self) -> str:
        if self.kind is SourceKind.BRIDGE:
            return "adb"
        return f"{self.kind.value}:{self.path}"


@dataclass(frozen=True)
class AcquiredBinary:
    filename: str
    origin_path: str
    data: bytes = field(repr=False)


@dataclass(frozen=True)
class Acquisition:
    binaries: tuple[AcquiredBinary, ...]
    failures: tuple[str, ...] = ()

    @property
    def partial(self) -> bool:
        return bool(self.binaries) and bool(self.failures)


@dataclass(frozen=True)
class ExtractionResult:
    chip_id: str
    version_id: str
    output_dir: Path
    files_written: tuple[str, ...]
    status: ExtractionStatus
    warnings: tuple[str, ...] = ()
    source_files: tuple[str, ...] = ()
