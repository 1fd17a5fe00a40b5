import threading
from typing import Callable, Dict, List, Optional, Tuple, TypeVar

import psutil

from vitals.models.vitals import RuntimeStats, TopProcess

TOP_PROCESS_LIMIT = 5

T = TypeVar("T")


def _read(getter: Callable[[], T], default: T) -> T:
    """Read one process attribute, falling back to default if the process denies or vanished."""
    try:
        value = getter()
    except psutil.Error:
        return default
    return default if value is None else value


def _process_map() -> Dict[int, psutil.Process]:
    processes: Dict[int, psutil.Process] = {}
    for pid in psutil.pids():
        try:
            processes[pid] = psutil.Process(pid)
        except psutil.Error:
            continue
    return processes


def prime_process_cpu() -> Dict[int, psutil.Process]:
    """
    Start a CPU measurement for every running process.

    psutil reports per-process CPU as the delta since the previous call on the
    same Process object. The objects are created here rather than taken from
    process_iter()'s module-wide cache, so a collection running at the same
    time cannot reset this collection's baseline. Pass the returned map to
    probe_processes() after the CPU sampling window.
    """
    primed = _process_map()
    for proc in primed.values():
        _read(lambda: proc.cpu_percent(interval=None), 0.0)
    return primed


def rank_top_processes(processes: List[TopProcess], limit: int = TOP_PROCESS_LIMIT) -> List[TopProcess]:
    """
    Keep the busiest processes.

    Only processes with strictly positive CPU usage qualify. The sort is
    stable, so ties keep the enumeration order.
    """
    candidates = [proc for proc in processes if proc.cpu > 0]
    return sorted(candidates, key=lambda proc: proc.cpu, reverse=True)[:limit]


def probe_processes(primed: Optional[Dict[int, psutil.Process]] = None) -> Tuple[int, List[TopProcess]]:
    """
    Return the number of processes and the top CPU consumers.

    CPU usage is measured since prime_process_cpu() built ``primed``. Without
    a primed map every process reads 0 % and the top list is empty.
    Attributes a process refuses to give (or that disappear mid-walk) are
    reported as zero/empty instead of dropping the process.
    """
    count = len(psutil.pids())
    if primed is None:
        # Unprimed objects report 0.0 on their first cpu_percent() call
        primed = _process_map()

    processes: List[TopProcess] = []
    for pid, proc in primed.items():
        cmdline = _read(proc.cmdline, [])
        processes.append(
            TopProcess(
                pid=pid,
                name=_read(proc.name, ""),
                cpu=max(_read(lambda: proc.cpu_percent(interval=None), 0.0), 0.0),
                memory=max(_read(proc.memory_percent, 0.0), 0.0),
                command=" ".join(cmdline),
            )
        )

    return count, rank_top_processes(processes)


def probe_runtime() -> RuntimeStats:
    return RuntimeStats(
        threads=threading.active_count(),
        memory_rss=psutil.Process().memory_info().rss,
    )
