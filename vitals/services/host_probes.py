import platform
import socket
import time
from typing import Dict, List, Tuple

import psutil

from vitals.config import get_settings
from vitals.models.vitals import (
    UNKNOWN,
    CpuStats,
    DiskInfo,
    DiskIOCounters,
    HostInfo,
    LoadAverage,
    MemoryStats,
    NetworkInterface,
    NetworkTotals,
    TemperatureReading,
)


def probe_cpu() -> CpuStats:
    """
    Sample CPU utilisation over one blocking window.

    Aggregate and per-core values come from the same window: the aggregate is
    the mean over the logical cores, so one snapshot costs one window of wall
    time instead of two.
    """
    interval = get_settings().cpu_sample_seconds
    per_core = psutil.cpu_percent(interval=interval, percpu=True)
    if not per_core:
        raise RuntimeError("psutil returned no per-core CPU values")

    usage = sum(per_core) / len(per_core)
    return CpuStats(usage_percent=min(usage, 100.0), per_core=per_core)


def probe_memory() -> MemoryStats:
    memory = psutil.virtual_memory()
    return MemoryStats(total=memory.total, used=memory.used, used_percent=memory.percent)


def probe_swap() -> MemoryStats:
    swap = psutil.swap_memory()
    return MemoryStats(total=swap.total, used=swap.used, used_percent=swap.percent)


def probe_disks() -> List[DiskInfo]:
    """
    Return usage for every mounted partition.

    Partitions whose usage cannot be read (stale network mounts, permission
    problems) are left out instead of failing the whole probe.
    """
    disks: List[DiskInfo] = []
    for partition in psutil.disk_partitions(all=False):
        try:
            usage = psutil.disk_usage(partition.mountpoint)
        except OSError:
            continue

        disks.append(
            DiskInfo(
                mount_point=partition.mountpoint,
                file_system=partition.fstype,
                total=usage.total,
                used=usage.used,
                free=usage.free,
                used_percent=usage.percent,
            )
        )
    return disks


def probe_disk_io() -> Dict[str, DiskIOCounters]:
    # None when the kernel exposes no block devices (e.g. some containers)
    counters = psutil.disk_io_counters(perdisk=True) or {}
    return {
        device: DiskIOCounters(
            read_count=io.read_count,
            write_count=io.write_count,
            read_bytes=io.read_bytes,
            write_bytes=io.write_bytes,
            read_time=io.read_time,
            write_time=io.write_time,
        )
        for device, io in counters.items()
    }


def _first_address(addresses, family) -> str:
    for address in addresses:
        if address.family == family and address.address:
            return address.address
    return ""


def probe_network() -> Tuple[NetworkTotals, List[NetworkInterface]]:
    """
    Return the byte counters summed over all interfaces plus one record per
    interface.

    Counters are matched with addresses and link state by interface name.
    Interfaces without a match keep empty IP/MAC fields, so the aggregate is
    always the sum of the listed interfaces.
    """
    counters = psutil.net_io_counters(pernic=True)
    addresses = psutil.net_if_addrs()
    stats = psutil.net_if_stats()

    interfaces: List[NetworkInterface] = []
    bytes_sent = 0
    bytes_recv = 0
    for name, io in counters.items():
        bytes_sent += io.bytes_sent
        bytes_recv += io.bytes_recv

        iface_addresses = addresses.get(name, [])
        ip_address = _first_address(iface_addresses, socket.AF_INET) or _first_address(
            iface_addresses, socket.AF_INET6
        )
        iface_stats = stats.get(name)

        interfaces.append(
            NetworkInterface(
                name=name,
                ip_address=ip_address,
                mac_addr=_first_address(iface_addresses, psutil.AF_LINK),
                bytes_sent=io.bytes_sent,
                bytes_recv=io.bytes_recv,
                is_up=bool(iface_stats and iface_stats.isup),
            )
        )

    return NetworkTotals(bytes_sent=bytes_sent, bytes_recv=bytes_recv), interfaces


def _platform_name_and_version() -> Tuple[str, str]:
    # os-release gives "ubuntu" / "22.04"; fall back to the kernel otherwise
    try:
        release = platform.freedesktop_os_release()
    except (AttributeError, OSError):
        release = {}

    name = release.get("ID") or platform.system() or UNKNOWN
    version = release.get("VERSION_ID") or platform.release()
    return name, version


def probe_host() -> HostInfo:
    """
    Hostname, platform and uptime.

    Load averages and the process count come from their own probes and are
    merged into the same record by the collector.
    """
    boot_time = psutil.boot_time()
    uptime_seconds = max(int(time.time() - boot_time), 0)
    name, version = _platform_name_and_version()

    return HostInfo(
        hostname=socket.gethostname() or UNKNOWN,
        platform=name,
        platform_version=version,
        uptime=uptime_seconds,
    )


def probe_load() -> LoadAverage:
    load1, load5, load15 = psutil.getloadavg()
    return LoadAverage(load1=load1, load5=load5, load15=load15)


def probe_temperature() -> List[TemperatureReading]:
    """Sensor temperatures in Celsius; empty where the platform has no sensor support."""
    if not hasattr(psutil, "sensors_temperatures"):
        return []

    readings: List[TemperatureReading] = []
    for chip, entries in (psutil.sensors_temperatures() or {}).items():
        for index, entry in enumerate(entries):
            label = entry.label or str(index)
            readings.append(
                TemperatureReading(sensor_key=f"{chip}_{label}", temperature=entry.current)
            )
    return readings
