import time, psutil
from typing import Dict, List, NamedTuple, Optional
from utils import get_logger

_SKIP = (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess, OSError)


class ProcessUsage(NamedTuple):
    name: str
    pid: int
    usage: float


def format_processes(processes: List[ProcessUsage], unit: str) -> str:
    if unit == "%":
        return "\n".join(f"  - {p.name} (PID {p.pid}): {p.usage:.1f}%" for p in processes)
    return "\n".join(f"  - {p.name} (PID {p.pid}): {p.usage:.0f} {unit}" for p in processes)


def _check_count(n):
    if isinstance(n, bool) or not isinstance(n, int) or n < 1:
        raise ValueError(f"process count must be a positive integer, got {n!r}")


class ProcessRanker:
    """Ranks live processes by CPU (delta since the previous call) or RAM.

    CPU usage is the CPU time a process consumed since the last ranking pass
    divided by the wall time of that window across all logical cores. A pid
    seen for the first time has a baseline of 0.
    """

    def __init__(self, tick_interval: float = 0.5, cpu_count: Optional[int] = None,
                 clock=time.monotonic, logger=None):
        self.tick_interval = tick_interval
        self.cpu_count = cpu_count or psutil.cpu_count(logical=True) or 1
        self._clock = clock
        self._last_call = clock()
        self._baselines: Dict[int, float] = {}
        self.log = logger or get_logger()

    @property
    def baseline_size(self) -> int:
        return len(self._baselines)

    def top_by_cpu(self, n: int) -> str:
        return format_processes(self.rank_by_cpu(n), "%")

    def top_by_ram(self, n: int) -> str:
        return format_processes(self.rank_by_ram(n), "MB")

    def rank_by_cpu(self, n: int) -> List[ProcessUsage]:
        _check_count(n)
        now = self._clock()
        elapsed = max(now - self._last_call, self.tick_interval)
        self._last_call = now

        seen = set()
        ranked = []
        for proc in psutil.process_iter():
            seen.add(proc.pid)
            cpu_seconds = self._cpu_seconds(proc)
            if cpu_seconds is None:
                continue
            name, cumulative = cpu_seconds
            delta = cumulative - self._baselines.get(proc.pid, 0.0)
            self._baselines[proc.pid] = cumulative
            usage = delta / (elapsed * self.cpu_count) * 100.0
            ranked.append(ProcessUsage(name, proc.pid, max(0.0, usage)))

        stale = [pid for pid in self._baselines if pid not in seen]
        for pid in stale:
            del self._baselines[pid]
        if stale:
            self.log.debug(f"Dropped {len(stale)} stale CPU baselines")

        return _top(ranked, n)

    def rank_by_ram(self, n: int) -> List[ProcessUsage]:
        _check_count(n)
        ranked = []
        for proc in psutil.process_iter():
            try:
                rss = proc.memory_info().rss
                name = proc.name()
            except _SKIP:
                continue
            ranked.append(ProcessUsage(name, proc.pid, rss / (1024.0 * 1024.0)))
        return _top(ranked, n)

    @staticmethod
    def _cpu_seconds(proc):
        # None when the process exited or is not readable
        try:
            times = proc.cpu_times()
            return proc.name(), times.user + times.system
        except _SKIP:
            return None


def _top(ranked: List[ProcessUsage], n: int) -> List[ProcessUsage]:
    # sorted() is stable, ties keep enumeration order
    return sorted(ranked, key=lambda p: p.usage, reverse=True)[:n]
