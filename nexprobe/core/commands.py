"""External tool invocation shared by host probes and acquisition sources."""

from __future__ import annotations

import subprocess
from collections.abc import Sequence


def run_command(cmd: Sequence[str]) -> subprocess.CompletedProcess[str] | None:
    """Run cmd and capture its output, or return None when the tool cannot be started.

    Output is decoded leniently: kernel logs and adb listings may carry
    non-UTF-8 bytes (SSIDs, vendor file names).
    """
    try:
        return subprocess.run(
            list(cmd),
            check=False,
            capture_output=True,
            text=True,
            errors="replace",
        )
    except OSError:
        # Missing or non-executable tool.
        return None
