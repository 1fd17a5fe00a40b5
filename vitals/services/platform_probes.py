import platform
import re
import shutil
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

import psutil

from vitals.config import get_settings
from vitals.models.vitals import UNKNOWN, HardwareInfo

_DMI_DIR = Path("/sys/devices/virtual/dmi/id")
_CPUINFO = Path("/proc/cpuinfo")

# "model name	: Intel(R) Core(TM) i7-8700 CPU @ 3.20GHz"
_CPU_MODEL_PATTERN = re.compile(r"^model name\s*:\s*(.+)$", re.MULTILINE)

# dnf/yum check-update exits with 100 when updates are available
_YUM_UPDATES_AVAILABLE = 100


def _run_command(args: List[str], ok_codes=(0,)) -> Optional[str]:
    """
    Run an external command and return its stdout.

    Returns None if the binary is missing, the command exits with an
    unexpected code or does not finish within the configured timeout.
    """
    try:
        result = subprocess.run(
            args,
            check=False,
            capture_output=True,
            text=True,
            timeout=get_settings().update_check_timeout_seconds,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None

    if result.returncode not in ok_codes:
        return None
    return result.stdout


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8", errors="replace").strip()
    except OSError:
        return ""


def _read_cpu_model() -> str:
    match = _CPU_MODEL_PATTERN.search(_read_text(_CPUINFO))
    if match:
        return match.group(1).strip()

    if sys.platform == "darwin":
        output = _run_command(["sysctl", "-n", "machdep.cpu.brand_string"])
        if output and output.strip():
            return output.strip()

    return platform.processor() or UNKNOWN


def probe_hardware() -> HardwareInfo:
    """
    Static hardware identification.

    Every part is best-effort: a missing source leaves "Unknown" or 0 rather
    than failing the probe.
    """
    try:
        total_memory = psutil.virtual_memory().total
    except OSError:
        total_memory = 0

    return HardwareInfo(
        cpu_model=_read_cpu_model(),
        cpu_cores=psutil.cpu_count(logical=False) or 0,
        cpu_threads=psutil.cpu_count(logical=True) or 0,
        total_memory=total_memory,
        system_vendor=_read_text(_DMI_DIR / "sys_vendor") or UNKNOWN,
        system_model=_read_text(_DMI_DIR / "product_name") or UNKNOWN,
    )


def _count_apt_updates(output: str) -> int:
    # First line is the "Listing..." banner
    return sum(
        1
        for line in output.splitlines()
        if line.strip() and not line.startswith("Listing")
    )


def _count_yum_updates(output: str) -> int:
    count = 0
    for line in output.splitlines():
        if not line.strip():
            continue
        # The obsoleting-packages section is not a list of updates
        if line.startswith("Obsoleting"):
            break
        count += 1
    return count


def _count_softwareupdate_updates(output: str) -> int:
    return sum(1 for line in output.splitlines() if "recommended" in line.lower())


def probe_pending_updates() -> int:
    """
    Best-effort count of pending OS package updates.

    Tries apt, then dnf/yum on Linux and softwareupdate on macOS. An unknown
    package manager, a failing command or a timeout yields 0.
    """
    if not get_settings().check_updates:
        return 0

    if sys.platform.startswith("linux"):
        if shutil.which("apt"):
            output = _run_command(["apt", "list", "--upgradable"])
            if output:
                count = _count_apt_updates(output)
                if count > 0:
                    return count

        for manager in ("dnf", "yum"):
            if shutil.which(manager):
                output = _run_command(
                    [manager, "check-update", "--quiet"],
                    ok_codes=(0, _YUM_UPDATES_AVAILABLE),
                )
                return _count_yum_updates(output) if output else 0

    elif sys.platform == "darwin":
        output = _run_command(["softwareupdate", "-l"])
        if output:
            return _count_softwareupdate_updates(output)

    return 0
