import socket
from collections import namedtuple
from types import SimpleNamespace

import psutil
import pytest

from vitals.services import host_probes

Partition = namedtuple("Partition", ["device", "mountpoint", "fstype", "opts"])
Usage = namedtuple("Usage", ["total", "used", "free", "percent"])
NetIO = namedtuple("NetIO", ["bytes_sent", "bytes_recv"])
Addr = namedtuple("Addr", ["family", "address"])
IfStats = namedtuple("IfStats", ["isup"])
Temp = namedtuple("Temp", ["label", "current"])
DiskIO = namedtuple(
    "DiskIO",
    ["read_count", "write_count", "read_bytes", "write_bytes", "read_time", "write_time"],
)


def test_probe_cpu_uses_one_window_for_aggregate_and_cores(monkeypatch, fast_settings):
    calls = []

    def fake_cpu_percent(interval=None, percpu=False):
        calls.append((interval, percpu))
        return [10.0, 30.0, 50.0, 70.0]

    monkeypatch.setattr(host_probes.psutil, "cpu_percent", fake_cpu_percent)

    stats = host_probes.probe_cpu()

    assert calls == [(0.1, True)]
    assert stats.usage_percent == pytest.approx(40.0)
    assert stats.per_core == [10.0, 30.0, 50.0, 70.0]


def test_probe_cpu_without_values_fails(monkeypatch):
    monkeypatch.setattr(host_probes.psutil, "cpu_percent", lambda interval=None, percpu=False: [])

    with pytest.raises(RuntimeError):
        host_probes.probe_cpu()


def test_probe_disks_skips_unreadable_partitions(monkeypatch):
    partitions = [
        Partition("/dev/sda1", "/", "ext4", "rw"),
        Partition("server:/export", "/mnt/stale", "nfs", "rw"),
        Partition("/dev/sda2", "/home", "xfs", "rw"),
    ]

    def fake_disk_usage(path):
        if path == "/mnt/stale":
            raise PermissionError("stale file handle")
        return Usage(total=1000, used=250, free=750, percent=25.0)

    monkeypatch.setattr(host_probes.psutil, "disk_partitions", lambda all=False: partitions)
    monkeypatch.setattr(host_probes.psutil, "disk_usage", fake_disk_usage)

    disks = host_probes.probe_disks()

    assert [disk.mount_point for disk in disks] == ["/", "/home"]
    assert disks[1].file_system == "xfs"
    assert disks[0].free == 750
    assert disks[0].used_percent == 25.0


def test_probe_disk_io_handles_missing_counters(monkeypatch):
    monkeypatch.setattr(host_probes.psutil, "disk_io_counters", lambda perdisk=False: None)
    assert host_probes.probe_disk_io() == {}

    monkeypatch.setattr(
        host_probes.psutil,
        "disk_io_counters",
        lambda perdisk=False: {"sda": DiskIO(1, 2, 512, 1024, 3, 4)},
    )
    counters = host_probes.probe_disk_io()
    assert counters["sda"].read_bytes == 512
    assert counters["sda"].write_time == 4


def test_probe_network_sums_interfaces_and_keeps_unmatched(monkeypatch):
    counters = {
        "eth0": NetIO(bytes_sent=1000, bytes_recv=5000),
        "lo": NetIO(bytes_sent=200, bytes_recv=200),
        "tun0": NetIO(bytes_sent=30, bytes_recv=70),
    }
    addresses = {
        "eth0": [
            Addr(psutil.AF_LINK, "aa:bb:cc:dd:ee:ff"),
            Addr(socket.AF_INET6, "fe80::1"),
            Addr(socket.AF_INET, "192.168.1.10"),
        ],
        "lo": [Addr(socket.AF_INET6, "::1")],
    }
    stats = {"eth0": IfStats(isup=True), "lo": IfStats(isup=False)}

    monkeypatch.setattr(host_probes.psutil, "net_io_counters", lambda pernic=False: counters)
    monkeypatch.setattr(host_probes.psutil, "net_if_addrs", lambda: addresses)
    monkeypatch.setattr(host_probes.psutil, "net_if_stats", lambda: stats)

    totals, interfaces = host_probes.probe_network()

    assert [iface.name for iface in interfaces] == ["eth0", "lo", "tun0"]
    assert totals.bytes_sent == sum(iface.bytes_sent for iface in interfaces) == 1230
    assert totals.bytes_recv == sum(iface.bytes_recv for iface in interfaces) == 5270

    eth0, lo, tun0 = interfaces
    assert eth0.ip_address == "192.168.1.10"
    assert eth0.mac_addr == "aa:bb:cc:dd:ee:ff"
    assert eth0.is_up is True
    assert lo.ip_address == "::1"
    assert lo.is_up is False
    assert tun0.ip_address == ""
    assert tun0.mac_addr == ""
    assert tun0.is_up is False


def test_probe_host_reports_uptime(monkeypatch):
    monkeypatch.setattr(host_probes.psutil, "boot_time", lambda: 1_000.0)
    monkeypatch.setattr(host_probes, "time", SimpleNamespace(time=lambda: 4_600.5))
    monkeypatch.setattr(host_probes.socket, "gethostname", lambda: "homeserver")

    info = host_probes.probe_host()

    assert info.hostname == "homeserver"
    assert info.uptime == 3600
    assert info.platform != ""


def test_probe_load(monkeypatch):
    monkeypatch.setattr(host_probes.psutil, "getloadavg", lambda: (0.5, 0.25, 0.125))

    load = host_probes.probe_load()

    assert (load.load1, load.load5, load.load15) == (0.5, 0.25, 0.125)


def test_probe_temperature_builds_sensor_keys(monkeypatch):
    sensors = {
        "coretemp": [Temp("Package id 0", 48.0), Temp("", 45.5)],
        "nvme": [Temp("Composite", 39.9)],
    }
    monkeypatch.setattr(host_probes.psutil, "sensors_temperatures", lambda: sensors, raising=False)

    readings = host_probes.probe_temperature()

    assert [(r.sensor_key, r.temperature) for r in readings] == [
        ("coretemp_Package id 0", 48.0),
        ("coretemp_1", 45.5),
        ("nvme_Composite", 39.9),
    ]


def test_probe_temperature_unsupported_platform_is_empty(monkeypatch):
    monkeypatch.delattr(host_probes.psutil, "sensors_temperatures", raising=False)

    assert host_probes.probe_temperature() == []
