import math, psutil
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from utils import DisposedError, get_logger


@dataclass(frozen=True)
class MetricSample:
    cpu_percent: float
    ram_percent: float
    timestamp: datetime = field(default_factory=datetime.now)


class MetricSampler:
    """Reads whole-system CPU and RAM utilization.

    psutil's cpu_percent(interval=None) measures against the previous call,
    so the constructor performs one throwaway read. Reads never raise while
    the sampler is alive: an OS failure is reported as 0.
    """

    def __init__(self, logger=None):
        self.log = logger or get_logger()
        self._disposed = False
        self._read_cpu()

    def sample(self) -> MetricSample:
        return MetricSample(self.cpu_percent(), self.ram_percent())

    def cpu_percent(self) -> float:
        self._check_disposed()
        value = self._read_cpu()
        if value is None or math.isnan(value) or math.isinf(value):
            return 0.0
        return min(max(value, 0.0), 100.0)

    def ram_percent(self) -> float:
        self._check_disposed()
        value = self._read_ram()
        return 0.0 if value is None else value

    def _read_cpu(self) -> Optional[float]:
        try:
            return float(psutil.cpu_percent(interval=None))
        except (psutil.Error, OSError) as e:
            self.log.debug(f"CPU read failed: {e}")
            return None

    def _read_ram(self) -> Optional[float]:
        try:
            vm = psutil.virtual_memory()
        except (psutil.Error, OSError) as e:
            self.log.debug(f"RAM read failed: {e}")
            return None
        if not vm.total:
            return None
        return (vm.total - vm.available) * 100.0 / vm.total

    def _check_disposed(self):
        if self._disposed:
            raise DisposedError("MetricSampler has been disposed")

    def dispose(self):
        self._disposed = True

    close = dispose

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.dispose()
