"""Canonical firmware directory scaffolding."""

from __future__ import annotations

import logging
from pathlib import Path

from nexprobe.core.errors import ScaffoldError
from nexprobe.core.model import AcquiredBinary, ExtractionResult, ExtractionStatus

LOGGER = logging.getLogger(__name__)

DEFINITIONS_FILE = "definitions.mk"
MAKEFILE = "Makefile"

HOOK_PLACEHOLDERS = (
    "WLC_UCODE_WRITE_BL_HOOK_ADDR",
    "HNDRTE_RECLAIM_0_END_PTR",
)

DEFINITIONS_TEMPLATE = """\
# Firmware definitions for {chip_id} {version_id}
# Update these addresses based on firmware analysis

NEXMON_CHIP=CHIP_VER_BCM
NEXMON_CHIP_NUM=0x
NEXMON_FW_VERSION=FW_VER_ALL

# RAM addresses (update based on firmware analysis)
RAMSTART=0x
RAMSIZE=0x

# Function addresses (update based on firmware analysis)
# Use IDA Pro, Ghidra, or radare2 to find these
{hooks}

# Template RAM
TEMPLATERAMSTART_PTR=0x

# Add more addresses as needed
"""

MAKEFILE_TEMPLATE = """\
include definitions.mk
include $(NEXMON_ROOT)/firmwares/common.mk
"""


def render_definitions(chip_id: str, version_id: str) -> str:
    hooks = "\n".join(f"{name}=0x" for name in HOOK_PLACEHOLDERS)
    return DEFINITIONS_TEMPLATE.format(chip_id=chip_id, version_id=version_id, hooks=hooks)


def scaffold(
    chip_id: str,
    version_id: str,
    binary: AcquiredBinary,
    output_root: Path,
) -> ExtractionResult:
    """Materialize ``output_root/chip_id/version_id`` for the patch build.

    The binary is always written; the build templates are only created when
    missing so user edits survive re-extraction.
    """
    fw_dir = output_root / chip_id / version_id
    written: list[str] = []
    try:
        fw_dir.mkdir(parents=True, exist_ok=True)

        (fw_dir / binary.filename).write_bytes(binary.data)
        written.append(binary.filename)
        LOGGER.info("Copied firmware to %s", fw_dir)

        definitions = fw_dir / DEFINITIONS_FILE
        if not definitions.exists():
            definitions.write_text(render_definitions(chip_id, version_id), encoding="utf-8")
            written.append(DEFINITIONS_FILE)
            LOGGER.info("Created template %s", DEFINITIONS_FILE)

        makefile = fw_dir / MAKEFILE
        if not makefile.exists():
            makefile.write_text(MAKEFILE_TEMPLATE, encoding="utf-8")
            written.append(MAKEFILE)
            LOGGER.info("Created %s", MAKEFILE)
    except OSError as exc:
        raise ScaffoldError(f"Could not write {fw_dir}: {exc}") from exc

    return ExtractionResult(
        chip_id=chip_id,
        version_id=version_id,
        output_dir=fw_dir,
        files_written=tuple(written),
        status=ExtractionStatus.SUCCESS,
    )
