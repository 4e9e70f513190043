"""SSH connectivity probe used to validate a freshly installed key."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_SECONDS = 20
CONNECT_TIMEOUT_SECONDS = 10

SUCCESS_MARKERS = ("successfully authenticated", "Welcome to GitLab", "Hi ")


@dataclass(frozen=True)
class ProbeResult:
    ok: bool
    output: str = ""


def probe_ssh(host: str, timeout: int = PROBE_TIMEOUT_SECONDS) -> ProbeResult:
    """Run ``ssh -T git@<host>`` and look for a greeting.

    GitHub and GitLab both exit non-zero on ``-T`` even when
    authentication succeeded, so only the output is inspected.
    """
    cmd = [
        "ssh", "-T",
        "-o", "StrictHostKeyChecking=no",
        "-o", f"ConnectTimeout={CONNECT_TIMEOUT_SECONDS}",
        f"git@{host}",
    ]
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout, check=False)
    except subprocess.TimeoutExpired:
        return ProbeResult(False, f"timed out after {timeout}s")
    except OSError as exc:
        return ProbeResult(False, f"could not run ssh: {exc}")

    output = (proc.stdout + proc.stderr).strip()
    ok = any(marker in output for marker in SUCCESS_MARKERS)
    logger.debug("ssh probe %s: ok=%s output=%r", host, ok, output)
    return ProbeResult(ok, output)
