"""Assemble one VitalsSnapshot from all metric probes.

Each probe is called in isolation: an exception is logged, the matching
snapshot field keeps its zero/empty default and the probe name is recorded
in ``probe_errors``. Assembly itself never raises.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from vitals.models.vitals import (
    CpuStats,
    HardwareInfo,
    HostInfo,
    LoadAverage,
    MemoryStats,
    NetworkTotals,
    RuntimeStats,
    VitalsSnapshot,
)
from vitals.services import host_probes, platform_probes, process_probes
from vitals.utils.logging import get_logger

logger = get_logger("vitals.collector")


@dataclass(frozen=True)
class Probe:
    """
    One metric family: how to read it and what to report when that fails.

    When a warmup is given, collect receives whatever it returned (None if
    the warmup failed), so state such as a CPU baseline stays private to one
    assembly.
    """

    name: str
    collect: Callable[..., Any]
    default: Callable[[], Any]
    warmup: Optional[Callable[[], Any]] = None


def default_probes() -> List[Probe]:
    # Looked up at call time so tests can monkeypatch the probe modules
    return [
        Probe("cpu", host_probes.probe_cpu, CpuStats),
        Probe("memory", host_probes.probe_memory, MemoryStats),
        Probe("swap", host_probes.probe_swap, MemoryStats),
        Probe("disks", host_probes.probe_disks, list),
        Probe("disk_io", host_probes.probe_disk_io, dict),
        Probe("network", host_probes.probe_network, lambda: (NetworkTotals(), [])),
        Probe("host", host_probes.probe_host, HostInfo),
        Probe("load", host_probes.probe_load, LoadAverage),
        Probe(
            "processes",
            process_probes.probe_processes,
            lambda: (0, []),
            warmup=process_probes.prime_process_cpu,
        ),
        Probe("temperature", host_probes.probe_temperature, list),
        Probe("hardware", platform_probes.probe_hardware, HardwareInfo),
        Probe("runtime", process_probes.probe_runtime, RuntimeStats),
        Probe("updates", platform_probes.probe_pending_updates, int),
    ]


class SnapshotAssembler:
    """Runs a set of probes and merges their results into a VitalsSnapshot."""

    def __init__(self, probes: Optional[Sequence[Probe]] = None):
        self._probes = list(probes) if probes is not None else None

    @property
    def probes(self) -> List[Probe]:
        return self._probes if self._probes is not None else default_probes()

    def collect(self) -> VitalsSnapshot:
        collected_at = datetime.now(timezone.utc)
        probes = self.probes

        # Warm-ups run before any probe so they cover the CPU sampling window
        warmed: Dict[str, Any] = {}
        for probe in probes:
            if probe.warmup is None:
                continue
            warmed[probe.name] = None
            try:
                warmed[probe.name] = probe.warmup()
            except Exception as exc:
                logger.warning("probe_warmup_failed", probe=probe.name, error=str(exc))

        results: Dict[str, Any] = {}
        errors: List[str] = []
        for probe in probes:
            try:
                if probe.warmup is None:
                    results[probe.name] = probe.collect()
                else:
                    results[probe.name] = probe.collect(warmed[probe.name])
            except Exception as exc:
                logger.warning("probe_failed", probe=probe.name, error=str(exc))
                errors.append(probe.name)
                results[probe.name] = probe.default()

        return self._merge(collected_at, results, errors)

    @staticmethod
    def _merge(collected_at: datetime, results: Dict[str, Any], errors: List[str]) -> VitalsSnapshot:
        network, network_ifaces = results.get("network", (NetworkTotals(), []))
        process_count, top_processes = results.get("processes", (0, []))

        host = results.get("host", HostInfo()).model_copy(
            update={
                "load_avg": results.get("load", LoadAverage()),
                "processes": process_count,
            }
        )

        return VitalsSnapshot(
            collected_at=collected_at,
            cpu=results.get("cpu", CpuStats()),
            memory=results.get("memory", MemoryStats()),
            swap=results.get("swap", MemoryStats()),
            disks=results.get("disks", []),
            disk_io=results.get("disk_io", {}),
            network=network,
            network_ifaces=network_ifaces,
            host=host,
            temperature=results.get("temperature", []),
            top_processes=top_processes,
            hardware=results.get("hardware", HardwareInfo()),
            runtime_stats=results.get("runtime", RuntimeStats()),
            pending_update_count=results.get("updates", 0),
            probe_errors=errors,
        )


def collect_vitals() -> VitalsSnapshot:
    """
    Collect one fresh snapshot with the default probes.

    Blocks for roughly one CPU sampling window; call it from a worker thread
    when running inside the event loop.
    """
    return SnapshotAssembler().collect()
