from datetime import datetime, timezone
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

UNKNOWN = "Unknown"


class _VitalsModel(BaseModel):
    """Base for all snapshot records: camelCase on the wire, immutable."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class CpuStats(_VitalsModel):
    usage_percent: float = Field(
        0.0,
        ge=0,
        le=100,
        description="Overall CPU utilisation in percent over the sampling window",
    )
    per_core: List[float] = Field(
        default_factory=list,
        description="Utilisation per logical core, same sampling window",
    )


class MemoryStats(_VitalsModel):
    """Used for both RAM and swap."""

    total: int = Field(0, ge=0, description="Total bytes")
    used: int = Field(0, ge=0, description="Used bytes")
    used_percent: float = Field(0.0, ge=0, le=100, description="Used share in percent")


class DiskInfo(_VitalsModel):
    mount_point: str = Field(..., description="Mount point, e.g. / or /home")
    file_system: str = Field("", description="Filesystem type, e.g. ext4")
    total: int = Field(0, ge=0)
    used: int = Field(0, ge=0)
    free: int = Field(0, ge=0)
    used_percent: float = Field(0.0, ge=0, le=100)


class DiskIOCounters(_VitalsModel):
    """Cumulative counters since boot for one block device."""

    read_count: int = 0
    write_count: int = 0
    read_bytes: int = 0
    write_bytes: int = 0
    read_time: int = Field(0, description="Milliseconds spent reading")
    write_time: int = Field(0, description="Milliseconds spent writing")


class NetworkTotals(_VitalsModel):
    bytes_sent: int = Field(0, ge=0, description="Sum of bytes sent over all interfaces")
    bytes_recv: int = Field(0, ge=0, description="Sum of bytes received over all interfaces")


class NetworkInterface(_VitalsModel):
    name: str
    ip_address: str = ""
    mac_addr: str = ""
    bytes_sent: int = Field(0, ge=0)
    bytes_recv: int = Field(0, ge=0)
    is_up: bool = False


class LoadAverage(_VitalsModel):
    load1: float = 0.0
    load5: float = 0.0
    load15: float = 0.0


class HostInfo(_VitalsModel):
    hostname: str = Field(UNKNOWN, description="System hostname")
    platform: str = Field(UNKNOWN, description="Distribution or OS name")
    platform_version: str = Field("", description="Distribution or OS version")
    uptime: int = Field(0, ge=0, description="Seconds since boot")
    load_avg: LoadAverage = Field(default_factory=LoadAverage)
    processes: int = Field(0, ge=0, description="Number of running processes")


class TemperatureReading(_VitalsModel):
    sensor_key: str
    temperature: float = Field(..., description="Degrees Celsius")


class TopProcess(_VitalsModel):
    pid: int
    name: str = ""
    cpu: float = Field(0.0, ge=0, description="CPU percent, may exceed 100 on multi-core hosts")
    memory: float = Field(0.0, ge=0, description="Share of physical memory in percent")
    command: str = ""


class HardwareInfo(_VitalsModel):
    cpu_model: str = UNKNOWN
    cpu_cores: int = Field(0, ge=0, description="Physical cores")
    cpu_threads: int = Field(0, ge=0, description="Logical CPUs")
    total_memory: int = Field(0, ge=0, description="Installed RAM in bytes")
    system_vendor: str = UNKNOWN
    system_model: str = UNKNOWN


class RuntimeStats(_VitalsModel):
    """Resource usage of the serving process itself."""

    threads: int = Field(0, ge=0, description="Active threads in the server process")
    memory_rss: int = Field(0, ge=0, description="Resident memory of the server process in bytes")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VitalsSnapshot(_VitalsModel):
    """
    One immutable record of all observed metrics at a point in time.

    Every field has a zero/empty default so the serialized key set never
    changes, whatever the probes managed to read. Failed probes are listed in
    probe_errors, which tells a failure apart from a genuine zero.
    """

    collected_at: datetime = Field(default_factory=_utcnow)
    cpu: CpuStats = Field(default_factory=CpuStats)
    memory: MemoryStats = Field(default_factory=MemoryStats)
    swap: MemoryStats = Field(default_factory=MemoryStats)
    disks: List[DiskInfo] = Field(default_factory=list)
    disk_io: Dict[str, DiskIOCounters] = Field(default_factory=dict, alias="diskIO")
    network: NetworkTotals = Field(default_factory=NetworkTotals)
    network_ifaces: List[NetworkInterface] = Field(default_factory=list)
    host: HostInfo = Field(default_factory=HostInfo)
    temperature: List[TemperatureReading] = Field(default_factory=list)
    top_processes: List[TopProcess] = Field(default_factory=list, max_length=5)
    hardware: HardwareInfo = Field(default_factory=HardwareInfo)
    runtime_stats: RuntimeStats = Field(default_factory=RuntimeStats)
    pending_update_count: int = Field(0, ge=0)
    probe_errors: List[str] = Field(default_factory=list)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)
