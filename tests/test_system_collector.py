from collections import namedtuple

import psutil
import pytest

from collectors.system_collector import MetricSample, MetricSampler
from utils import DisposedError

VirtualMemory = namedtuple("VirtualMemory", "total available percent")


def fake_cpu(monkeypatch, values):
    calls = []

    def cpu_percent(interval=None):
        calls.append(interval)
        v = values.pop(0)
        if isinstance(v, Exception):
            raise v
        return v

    monkeypatch.setattr(psutil, "cpu_percent", cpu_percent)
    return calls


def fake_ram(monkeypatch, total, available):
    monkeypatch.setattr(psutil, "virtual_memory", lambda: VirtualMemory(total, available, 0.0))


def test_constructor_primes_cpu_counter(monkeypatch):
    calls = fake_cpu(monkeypatch, [0.0, 42.0])
    sampler = MetricSampler()
    assert calls == [None]
    assert sampler.cpu_percent() == 42.0


@pytest.mark.parametrize("raw,expected", [
    (float("nan"), 0.0),
    (float("inf"), 0.0),
    (float("-inf"), 0.0),
    (150.0, 100.0),
    (-3.0, 0.0),
    (55.5, 55.5),
])
def test_cpu_reading_is_sanitized(monkeypatch, raw, expected):
    fake_cpu(monkeypatch, [0.0, raw])
    assert MetricSampler().cpu_percent() == expected


def test_cpu_read_failure_reports_zero(monkeypatch):
    fake_cpu(monkeypatch, [0.0, psutil.AccessDenied()])
    assert MetricSampler().cpu_percent() == 0.0


def test_ram_percent_from_total_and_available(monkeypatch):
    fake_cpu(monkeypatch, [0.0])
    fake_ram(monkeypatch, 8000, 2000)
    assert MetricSampler().ram_percent() == pytest.approx(75.0)


def test_ram_zero_total_reports_zero(monkeypatch):
    fake_cpu(monkeypatch, [0.0])
    fake_ram(monkeypatch, 0, 0)
    assert MetricSampler().ram_percent() == 0.0


def test_ram_read_failure_reports_zero(monkeypatch):
    fake_cpu(monkeypatch, [0.0])

    def broken():
        raise OSError("no /proc")

    monkeypatch.setattr(psutil, "virtual_memory", broken)
    assert MetricSampler().ram_percent() == 0.0


def test_sample_combines_both_metrics(monkeypatch):
    fake_cpu(monkeypatch, [0.0, 12.0])
    fake_ram(monkeypatch, 100, 40)
    sample = MetricSampler().sample()
    assert isinstance(sample, MetricSample)
    assert sample.cpu_percent == 12.0
    assert sample.ram_percent == pytest.approx(60.0)
    assert sample.timestamp is not None


def test_use_after_dispose_raises(monkeypatch):
    fake_cpu(monkeypatch, [0.0])
    fake_ram(monkeypatch, 100, 40)
    with MetricSampler() as sampler:
        pass
    sampler.dispose()
    with pytest.raises(DisposedError):
        sampler.sample()
    with pytest.raises(DisposedError):
        sampler.ram_percent()
