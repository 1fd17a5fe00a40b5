from datetime import timedelta
from typing import List

from vitals.models.vitals import VitalsSnapshot

_WIDTH = 44


def _human_bytes(value: int) -> str:
    if value < 1024:
        return f"{value} B"
    size = value / 1024
    for unit in ("KiB", "MiB", "GiB"):
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TiB"


def _section(title: str) -> List[str]:
    return ["-" * _WIDTH, title]


def render_text(snapshot: VitalsSnapshot) -> str:
    """
    Render a snapshot as a compact plain-text report for terminals and logs.

    Sections whose data is empty (no sensors, no busy processes) are left out.
    """
    host = snapshot.host
    lines = [
        "=" * _WIDTH,
        "SYSTEM VITALS".center(_WIDTH),
        f"collected at {snapshot.collected_at.isoformat()}".center(_WIDTH),
    ]

    lines += _section("CPU")
    lines.append(f"  usage   {snapshot.cpu.usage_percent:6.2f} %  ({len(snapshot.cpu.per_core)} cores)")

    lines += _section("MEMORY")
    for label, stats in (("ram", snapshot.memory), ("swap", snapshot.swap)):
        lines.append(
            f"  {label:<5} {_human_bytes(stats.used)} / {_human_bytes(stats.total)}"
            f"  ({stats.used_percent:.1f} %)"
        )

    if snapshot.disks:
        lines += _section("DISKS")
        for disk in snapshot.disks:
            lines.append(
                f"  {disk.mount_point:<12} {_human_bytes(disk.used)} / {_human_bytes(disk.total)}"
                f"  ({disk.used_percent:.1f} %)"
            )

    lines += _section("NETWORK")
    lines.append(
        f"  sent {_human_bytes(snapshot.network.bytes_sent)}"
        f"  recv {_human_bytes(snapshot.network.bytes_recv)}"
    )

    lines += _section(f"HOST {host.hostname}")
    lines.append(f"  {host.platform} {host.platform_version}".rstrip())
    lines.append(f"  uptime  {timedelta(seconds=host.uptime)}")
    lines.append(
        f"  load    {host.load_avg.load1:.2f} {host.load_avg.load5:.2f} {host.load_avg.load15:.2f}"
    )
    lines.append(f"  processes {host.processes}")

    if snapshot.top_processes:
        lines += _section("TOP PROCESSES")
        for proc in snapshot.top_processes:
            lines.append(f"  {proc.pid:>7} {proc.name[:20]:<20} {proc.cpu:6.1f} %")

    if snapshot.temperature:
        lines += _section("TEMPERATURES")
        for reading in snapshot.temperature:
            lines.append(f"  {reading.sensor_key[:28]:<28} {reading.temperature:6.1f} C")

    lines += _section("SERVER PROCESS")
    lines.append(f"  threads {snapshot.runtime_stats.threads}")
    lines.append(f"  memory  {_human_bytes(snapshot.runtime_stats.memory_rss)}")

    if snapshot.probe_errors:
        lines += _section("UNAVAILABLE")
        lines.append("  " + ", ".join(snapshot.probe_errors))

    lines.append("=" * _WIDTH)
    return "\n".join(lines) + "\n"
