from collections import namedtuple
from datetime import datetime

import psutil
import pytest

CpuTimes = namedtuple("CpuTimes", "user system")
MemInfo = namedtuple("MemInfo", "rss")


class FakeProcess:
    def __init__(self, pid, name, cpu=0.0, rss=0, error=None):
        self.pid = pid
        self._name = name
        self.cpu = cpu
        self.rss = rss
        self.error = error

    def name(self):
        if self.error:
            raise self.error
        return self._name

    def cpu_times(self):
        if self.error:
            raise self.error
        return CpuTimes(self.cpu, 0.0)

    def memory_info(self):
        if self.error:
            raise self.error
        return MemInfo(self.rss)


class FakeClock:
    def __init__(self, start=0.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeDateClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def processes(monkeypatch):
    procs = []
    monkeypatch.setattr(psutil, "process_iter", lambda *a, **kw: iter(list(procs)))
    return procs
