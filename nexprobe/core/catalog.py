"""Chip catalog loading, validation, and signature rule tables."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from nexprobe.core.config import Settings
from nexprobe.core.errors import CatalogLoadError, CatalogValidationError
from nexprobe.core.model import ChipProfile, FirmwareCandidate, MatchRules, SignalKind, SignatureRule

LOGGER = logging.getLogger(__name__)

PATCH_PATH_TEMPLATE = "patches/{chip}/{version}/nexmon/"


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise CatalogValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


class ChipCatalog:
    """Static chip table with the ordered signature rules derived from it.

    Rules for each signal kind are ordered most specific first (longest
    pattern), then by catalog order. That order is the detection priority:
    "Raspberry Pi 3 Model B Plus" is tried before "Raspberry Pi 3 Model B",
    and the fragment "43430" before "4339".
    """

    def __init__(self, profiles: dict[str, ChipProfile], warnings: tuple[str, ...] = ()) -> None:
        self._profiles = dict(profiles)
        self.warnings = warnings

    def __contains__(self, chip_id: object) -> bool:
        return chip_id in self._profiles

    def get(self, chip_id: str) -> ChipProfile | None:
        return self._profiles.get(chip_id)

    def profiles(self) -> list[ChipProfile]:
        return sorted(self._profiles.values(), key=lambda p: p.chip_id)

    def signature_rules(self, kind: SignalKind) -> list[SignatureRule]:
        rules: list[SignatureRule] = []
        for profile in self.profiles():
            if kind is SignalKind.DEVICE_TREE_MODEL:
                rules.extend(
                    SignatureRule(kind=kind, pattern=board, chip_id=profile.chip_id, label=board)
                    for board in profile.match.board_models
                )
            elif kind is SignalKind.PLATFORM_PROPERTIES:
                rules.extend(
                    SignatureRule(kind=kind, pattern=codename, chip_id=profile.chip_id, label=label)
                    for codename, label in profile.match.device_codenames.items()
                )
            else:
                rules.extend(
                    SignatureRule(kind=kind, pattern=fragment, chip_id=profile.chip_id, label=profile.display_name)
                    for fragment in profile.match.fragments
                )
        return sorted(rules, key=lambda r: -len(r.pattern))

    def match_fragment(
        self,
        text: str,
        kind: SignalKind = SignalKind.FIRMWARE_FILENAME,
    ) -> tuple[SignatureRule, ChipProfile] | None:
        for rule in self.signature_rules(kind):
            if rule.pattern in text:
                return rule, self._profiles[rule.chip_id]
        return None


@dataclass(frozen=True)
class LoadedCatalog:
    catalog: ChipCatalog
    warnings: tuple[str, ...]


def _load_schema_validator() -> Any:
    schema_text = resources.files("nexprobe.schemas").joinpath("chip.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _read_yaml(path: Path | Traversable) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CatalogLoadError(f"Could not read chip file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise CatalogValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise CatalogValidationError(f"Chip file {path} must contain a mapping at root")
    return loaded


def _build_profile(doc: dict[str, Any], source: Path | Traversable, validator: Any) -> ChipProfile:
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise CatalogValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    chip_id = doc["id"]
    candidates: list[FirmwareCandidate] = []
    seen: set[str] = set()
    for entry in doc["firmware"]:
        version = entry["version"]
        if version in seen:
            raise CatalogValidationError(f"{chip_id} declares firmware version '{version}' twice")
        seen.add(version)
        candidates.append(
            FirmwareCandidate(
                version_id=version,
                relative_patch_path=entry.get("path", PATCH_PATH_TEMPLATE.format(chip=chip_id, version=version)),
                rank=int(entry["rank"]),
                note=entry.get("note", ""),
            )
        )

    match = doc.get("match", {})
    return ChipProfile(
        chip_id=chip_id,
        display_name=doc["name"],
        candidate_firmware_versions=tuple(candidates),
        match=MatchRules(
            board_models=tuple(match.get("board_models", [])),
            device_codenames={k.lower(): v for k, v in match.get("device_codenames", {}).items()},
            fragments=tuple(match.get("fragments", [])),
        ),
    )


def _iter_packaged_chip_paths() -> list[Traversable]:
    chip_root = resources.files("nexprobe.chips")
    return [item for item in chip_root.iterdir() if item.name.endswith((".yml", ".yaml"))]


def _iter_user_chip_paths(settings: Settings) -> list[Path]:
    paths: list[Path] = []
    for directory in settings.user_catalog_dirs():
        if not directory.is_dir():
            continue
        paths.extend(sorted(p for p in directory.iterdir() if p.suffix in {".yml", ".yaml"}))
    return paths


def load_catalog(settings: Settings | None = None) -> LoadedCatalog:
    settings = settings or Settings.from_env()
    validator = _load_schema_validator()
    profiles: dict[str, ChipProfile] = {}
    warnings: list[str] = []

    for path in sorted(_iter_packaged_chip_paths(), key=lambda p: p.name):
        profile = _build_profile(_read_yaml(path), path, validator)
        profiles[profile.chip_id] = profile

    for path in _iter_user_chip_paths(settings):
        profile = _build_profile(_read_yaml(path), path, validator)
        if profile.chip_id in profiles:
            warning = f"User chip '{profile.chip_id}' overrides packaged chip"
            LOGGER.warning(warning)
            warnings.append(warning)
        profiles[profile.chip_id] = profile

    return LoadedCatalog(catalog=ChipCatalog(profiles, tuple(warnings)), warnings=tuple(warnings))
