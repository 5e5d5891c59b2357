"""Ordered chip detection chain."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Sequence
from typing import Protocol

from nexprobe.core.catalog import ChipCatalog
from nexprobe.core.model import (
    ChipProfile,
    Confidence,
    Detection,
    DetectionReport,
    DeviceSignature,
    SignalKind,
    StrategyAttempt,
)
from nexprobe.probes.base import HostProbe

LOGGER = logging.getLogger(__name__)

PLATFORM_PROPERTY_KEYS = (
    "ro.product.manufacturer",
    "ro.product.model",
    "ro.product.device",
)
FIRMWARE_DIRS = (
    "/lib/firmware/brcm",
    "/vendor/firmware",
    "/system/vendor/firmware",
)
FIRMWARE_FILE_PATTERN = "brcmfmac*.bin"

_VENDOR_LINE_RE = re.compile(r"brcm|broadcom", re.IGNORECASE)
_MAX_LOG_LINES = 5


class DetectionStrategy(Protocol):
    name: str
    title: str
    kind: SignalKind

    def try_detect(self, host: HostProbe, catalog: ChipCatalog) -> StrategyAttempt:
        """Probe one signal source and return what was seen and matched."""


class DeviceTreeStrategy:
    name = "device-tree"
    title = "Device tree model"
    kind = SignalKind.DEVICE_TREE_MODEL

    def try_detect(self, host: HostProbe, catalog: ChipCatalog) -> StrategyAttempt:
        model = host.read_device_tree_model()
        if not model:
            return StrategyAttempt(strategy=self.name, title=self.title, available=False)

        observations = [f"Model: {model}"]
        for rule in catalog.signature_rules(self.kind):
            if rule.pattern in model:
                profile = catalog.get(rule.chip_id)
                if profile is None:
                    continue
                detection = Detection(
                    strategy=self.name,
                    profiles=(profile,),
                    confidence=Confidence.EXACT,
                    evidence=(f"board '{rule.pattern}'",),
                )
                return StrategyAttempt(
                    strategy=self.name,
                    title=self.title,
                    available=True,
                    observations=tuple(observations),
                    detection=detection,
                    raw=model,
                )

        observations.append("Unknown board model")
        return StrategyAttempt(
            strategy=self.name,
            title=self.title,
            available=True,
            observations=tuple(observations),
            raw=model,
        )


class PlatformPropertyStrategy:
    name = "platform-properties"
    title = "Android platform properties"
    kind = SignalKind.PLATFORM_PROPERTIES

    def try_detect(self, host: HostProbe, catalog: ChipCatalog) -> StrategyAttempt:
        properties = host.read_platform_properties(PLATFORM_PROPERTY_KEYS)
        if properties is None:
            return StrategyAttempt(strategy=self.name, title=self.title, available=False)

        manufacturer = properties.get("ro.product.manufacturer", "Unknown")
        model = properties.get("ro.product.model", "Unknown")
        device = properties.get("ro.product.device", "Unknown")
        raw = f"{manufacturer}/{model}/{device}"
        observations = [
            f"Manufacturer: {manufacturer}",
            f"Model: {model}",
            f"Device: {device}",
        ]

        codename = device.strip().lower()
        for rule in catalog.signature_rules(self.kind):
            if rule.pattern != codename:
                continue
            profile = catalog.get(rule.chip_id)
            if profile is None:
                continue
            observations.append(f"Detected: {rule.label}")
            return StrategyAttempt(
                strategy=self.name,
                title=self.title,
                available=True,
                observations=tuple(observations),
                detection=Detection(
                    strategy=self.name,
                    profiles=(profile,),
                    confidence=Confidence.EXACT,
                    evidence=(f"device codename '{rule.pattern}'",),
                ),
                raw=raw,
            )

        observations.append("Device not in known database")
        observations.append("Check /vendor/firmware/ for firmware files")
        return StrategyAttempt(
            strategy=self.name,
            title=self.title,
            available=True,
            observations=tuple(observations),
            raw=raw,
        )


class KernelLogStrategy:
    name = "kernel-log"
    title = "Broadcom references in kernel log"
    kind = SignalKind.KERNEL_LOG

    def try_detect(self, host: HostProbe, catalog: ChipCatalog) -> StrategyAttempt:
        log_text = host.read_kernel_log()
        if log_text is None:
            return StrategyAttempt(strategy=self.name, title=self.title, available=False)

        vendor_lines = [line.strip() for line in log_text.splitlines() if _VENDOR_LINE_RE.search(line)]
        if not vendor_lines:
            return StrategyAttempt(strategy=self.name, title=self.title, available=False)

        raw = "\n".join(vendor_lines)
        # Rules are tried in priority order across all vendor lines.
        for rule in catalog.signature_rules(self.kind):
            matched = next((line for line in vendor_lines if rule.pattern in line), None)
            if matched is None:
                continue
            profile = catalog.get(rule.chip_id)
            if profile is None:
                continue
            return StrategyAttempt(
                strategy=self.name,
                title=self.title,
                available=True,
                observations=(matched,),
                detection=Detection(
                    strategy=self.name,
                    profiles=(profile,),
                    confidence=Confidence.LIKELY,
                    evidence=(matched,),
                ),
                raw=raw,
            )

        observations = ["Could not determine exact chip model", *vendor_lines[:_MAX_LOG_LINES]]
        return StrategyAttempt(
            strategy=self.name,
            title=self.title,
            available=True,
            observations=tuple(observations),
            raw=raw,
        )


class FirmwareFileStrategy:
    name = "firmware-files"
    title = "Firmware files"
    kind = SignalKind.FIRMWARE_FILENAME

    def __init__(self, directories: Sequence[str] = FIRMWARE_DIRS) -> None:
        self.directories = tuple(directories)

    def try_detect(self, host: HostProbe, catalog: ChipCatalog) -> StrategyAttempt:
        for directory in self.directories:
            files = host.list_firmware_files(directory, FIRMWARE_FILE_PATTERN)
            if not files:
                continue

            observations = [f"Location: {directory}"]
            profiles: list[ChipProfile] = []
            evidence: list[str] = []
            for path in sorted(files, key=os.path.basename):
                filename = os.path.basename(path)
                matched = catalog.match_fragment(filename, self.kind)
                if matched is None:
                    observations.append(filename)
                    continue
                _, profile = matched
                observations.append(f"{filename} -> {profile.chip_id} ({profile.display_name})")
                evidence.append(filename)
                if profile not in profiles:
                    profiles.append(profile)

            raw = "\n".join(os.path.basename(p) for p in files)
            detection = None
            if profiles:
                detection = Detection(
                    strategy=self.name,
                    profiles=tuple(profiles),
                    confidence=Confidence.LIKELY,
                    evidence=tuple(evidence),
                )
            return StrategyAttempt(
                strategy=self.name,
                title=self.title,
                available=True,
                observations=tuple(observations),
                detection=detection,
                raw=raw,
            )

        return StrategyAttempt(strategy=self.name, title=self.title, available=False)


DEFAULT_STRATEGIES: tuple[DetectionStrategy, ...] = (
    DeviceTreeStrategy(),
    PlatformPropertyStrategy(),
    KernelLogStrategy(),
    FirmwareFileStrategy(),
)


class DetectionEngine:
    def __init__(
        self,
        catalog: ChipCatalog,
        strategies: Sequence[DetectionStrategy] = DEFAULT_STRATEGIES,
    ) -> None:
        self.catalog = catalog
        self.strategies = tuple(strategies)

    def detect(self, host: HostProbe) -> DetectionReport:
        attempts: list[StrategyAttempt] = []
        signals: dict[SignalKind, str] = {}
        result: Detection | None = None

        for strategy in self.strategies:
            attempt = strategy.try_detect(host, self.catalog)
            attempts.append(attempt)
            if attempt.raw is not None:
                signals[strategy.kind] = attempt.raw
            if attempt.detection is not None:
                result = attempt.detection
                LOGGER.debug(
                    "Strategy %s matched %s (%s)",
                    strategy.name,
                    ", ".join(p.chip_id for p in result.profiles),
                    result.confidence.value,
                )
                break
            LOGGER.debug("Strategy %s declined", strategy.name)

        return DetectionReport(
            attempts=tuple(attempts),
            signature=DeviceSignature(signals),
            result=result,
        )
