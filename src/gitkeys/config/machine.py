"""Local machine identity detection.

macOS reports a hardware UUID through ``system_profiler`` (falling back
to ``ioreg``). Linux exposes a stable ``machine-id`` file. The name and
OS fields come from the ``platform`` module.
"""

from __future__ import annotations

import logging
import platform
import subprocess
from pathlib import Path

from gitkeys.config.models import Machine
from gitkeys.exceptions import GitKeysError

logger = logging.getLogger(__name__)

_LINUX_MACHINE_ID_FILES = ("/etc/machine-id", "/var/lib/dbus/machine-id")


def _run(args: list[str]) -> str | None:
    try:
        proc = subprocess.run(args, capture_output=True, text=True, check=True)
    except (OSError, subprocess.CalledProcessError):
        return None
    return proc.stdout


def _macos_machine_id() -> str | None:
    output = _run(["system_profiler", "SPHardwareDataType"])
    if output:
        for line in output.splitlines():
            if "Hardware UUID:" in line:
                return line.split(":", 1)[1].strip()

    output = _run(["ioreg", "-rd1", "-c", "IOPlatformExpertDevice"])
    if output:
        for line in output.splitlines():
            if "IOPlatformUUID" in line:
                parts = line.split('"')
                if len(parts) >= 4:
                    return parts[3]
    return None


def _linux_machine_id() -> str | None:
    for candidate in _LINUX_MACHINE_ID_FILES:
        try:
            value = Path(candidate).read_text(encoding="utf-8").strip()
        except OSError:
            continue
        if value:
            return value
    return None


def _os_name(system: str) -> str:
    return "macOS" if system == "Darwin" else system


def _os_version(system: str) -> str:
    if system == "Darwin":
        return platform.mac_ver()[0]
    return platform.release()


def detect_machine() -> Machine:
    """Detect the local machine's identity.

    Raises:
        GitKeysError: If no stable machine id can be determined.
    """
    system = platform.system()
    machine_id = _macos_machine_id() if system == "Darwin" else _linux_machine_id()
    if not machine_id:
        raise GitKeysError(f"could not determine a machine id on {system or 'this OS'}")

    name = platform.node() or "unknown"
    logger.debug("Detected machine %s (%s)", name, machine_id)
    return Machine(
        id=machine_id,
        name=name,
        os=_os_name(system),
        os_version=_os_version(system),
    )
