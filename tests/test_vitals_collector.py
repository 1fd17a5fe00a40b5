import json

from vitals.models.vitals import (
    CpuStats,
    HostInfo,
    LoadAverage,
    MemoryStats,
    NetworkInterface,
    NetworkTotals,
    TopProcess,
)
from vitals.services import host_probes, vitals_collector
from vitals.services.vitals_collector import Probe, SnapshotAssembler

SERIALIZED_KEYS = {
    "collectedAt",
    "cpu",
    "memory",
    "swap",
    "disks",
    "diskIO",
    "network",
    "networkIfaces",
    "host",
    "temperature",
    "topProcesses",
    "hardware",
    "runtimeStats",
    "pendingUpdateCount",
    "probeErrors",
}


def _boom():
    raise RuntimeError("sensor bus exploded")


def _fake_probes(**overrides):
    probes = {
        "cpu": Probe("cpu", lambda: CpuStats(usage_percent=12.5, per_core=[10.0, 15.0]), CpuStats),
        "memory": Probe("memory", lambda: MemoryStats(total=100, used=40, used_percent=40.0), MemoryStats),
        "network": Probe(
            "network",
            lambda: (
                NetworkTotals(bytes_sent=3, bytes_recv=7),
                [NetworkInterface(name="eth0", bytes_sent=3, bytes_recv=7, is_up=True)],
            ),
            lambda: (NetworkTotals(), []),
        ),
        "host": Probe("host", lambda: HostInfo(hostname="box", platform="debian", uptime=42), HostInfo),
        "load": Probe("load", lambda: LoadAverage(load1=1.0, load5=0.5, load15=0.25), LoadAverage),
        "processes": Probe(
            "processes",
            lambda: (99, [TopProcess(pid=1, name="init", cpu=1.0)]),
            lambda: (0, []),
        ),
        "temperature": Probe("temperature", list, list),
    }
    probes.update(overrides)
    return list(probes.values())


def test_assembler_merges_probe_results():
    snapshot = SnapshotAssembler(_fake_probes()).collect()

    assert snapshot.cpu.usage_percent == 12.5
    assert snapshot.memory.used == 40
    assert snapshot.network.bytes_sent == 3
    assert snapshot.network_ifaces[0].name == "eth0"
    assert snapshot.host.hostname == "box"
    assert snapshot.host.load_avg.load5 == 0.5
    assert snapshot.host.processes == 99
    assert snapshot.top_processes[0].name == "init"
    assert snapshot.probe_errors == []


def test_failing_probe_leaves_default_and_others_populated():
    probes = _fake_probes(memory=Probe("memory", _boom, MemoryStats))

    snapshot = SnapshotAssembler(probes).collect()

    assert snapshot.memory == MemoryStats()
    assert snapshot.probe_errors == ["memory"]
    assert snapshot.cpu.usage_percent == 12.5
    assert snapshot.host.hostname == "box"
    assert snapshot.host.processes == 99


def test_every_probe_failing_still_yields_full_schema():
    probes = [Probe(p.name, _boom, p.default) for p in vitals_collector.default_probes()]

    snapshot = SnapshotAssembler(probes).collect()

    data = snapshot.model_dump(by_alias=True)
    assert set(data) == SERIALIZED_KEYS
    assert data["swap"] == {"total": 0, "used": 0, "usedPercent": 0.0}
    assert data["hardware"]["systemVendor"] == "Unknown"
    assert data["hardware"]["cpuCores"] == 0
    assert data["host"]["loadAvg"] == {"load1": 0.0, "load5": 0.0, "load15": 0.0}
    assert len(snapshot.probe_errors) == len(probes)


def test_failing_warmup_does_not_stop_assembly():
    received = []
    probes = _fake_probes(
        processes=Probe(
            "processes",
            lambda primed: received.append(primed) or (5, []),
            lambda: (0, []),
            warmup=_boom,
        ),
    )

    snapshot = SnapshotAssembler(probes).collect()

    assert received == [None]
    assert snapshot.host.processes == 5
    assert snapshot.probe_errors == []


def test_warmups_run_before_probes():
    order = []
    probes = [
        Probe("cpu", lambda: order.append("cpu") or CpuStats(), CpuStats),
        Probe(
            "processes",
            lambda primed: order.append("processes") or (0, []),
            lambda: (0, []),
            warmup=lambda: order.append("warmup"),
        ),
    ]

    SnapshotAssembler(probes).collect()

    assert order == ["warmup", "cpu", "processes"]


def test_each_assembly_gets_its_own_warmup_result():
    baselines = iter(["first-baseline", "second-baseline"])
    received = []
    probes = [
        Probe(
            "processes",
            lambda primed: received.append(primed) or (0, []),
            lambda: (0, []),
            warmup=lambda: next(baselines),
        ),
    ]
    assembler = SnapshotAssembler(probes)

    assembler.collect()
    assembler.collect()

    assert received == ["first-baseline", "second-baseline"]


def test_default_probes_pick_up_patched_functions(monkeypatch):
    monkeypatch.setattr(host_probes, "probe_cpu", _boom)

    names = {probe.name: probe for probe in vitals_collector.default_probes()}

    assert names["cpu"].collect is _boom


def test_consecutive_snapshots_are_independent():
    assembler = SnapshotAssembler(_fake_probes())

    first = assembler.collect()
    second = assembler.collect()

    assert first is not second
    assert first.collected_at <= second.collected_at
    assert first.network_ifaces is not second.network_ifaces
    assert set(json.loads(second.to_json())) == SERIALIZED_KEYS


def test_collect_vitals_against_the_real_host(fast_settings):
    snapshot = vitals_collector.collect_vitals()

    assert 0.0 <= snapshot.cpu.usage_percent <= 100.0
    assert snapshot.memory.total > 0
    assert snapshot.host.hostname.strip() != ""
    assert snapshot.host.processes > 0
    assert len(snapshot.top_processes) <= 5
    assert snapshot.network.bytes_sent == sum(i.bytes_sent for i in snapshot.network_ifaces)
    assert snapshot.network.bytes_recv == sum(i.bytes_recv for i in snapshot.network_ifaces)
    assert snapshot.pending_update_count == 0
