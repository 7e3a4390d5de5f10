import time
from datetime import datetime
from typing import Optional
from alerting.summary_worker import SummaryRequest
from collectors.system_collector import MetricSample
from detectors.spike import SpikeDetector
from utils import DisposedError, StoppableThread, get_logger


class SpikeCoordinator:
    """Runs one sample/detect/log cycle per tick.

    A detected spike is written to the event log before on_tick() returns;
    the AI summary for it is only queued and may never arrive.
    """

    def __init__(self, settings, sampler, ranker, event_log, summarizer=None,
                 clock=datetime.now, logger=None):
        self.settings = settings
        self.sampler = sampler
        self.ranker = ranker
        self.event_log = event_log
        self.summarizer = summarizer
        self.log = logger or get_logger()
        self._clock = clock
        self._last_sample: Optional[MetricSample] = None
        self.spike_count = 0
        self.detectors = {
            "CPU": SpikeDetector(settings.cpu_threshold, settings.spike_seconds),
            "RAM": SpikeDetector(settings.ram_threshold, settings.spike_seconds),
        }

    def current_metrics(self) -> Optional[MetricSample]:
        return self._last_sample

    def apply_settings(self, settings):
        self.settings = settings
        self.detectors["CPU"].reconfigure(settings.cpu_threshold, settings.spike_seconds)
        self.detectors["RAM"].reconfigure(settings.ram_threshold, settings.spike_seconds)
        self.ranker.tick_interval = settings.tick_interval
        self.event_log.spike_seconds = settings.spike_seconds
        if self.summarizer is not None:
            self.summarizer.reconfigure(settings)
        self.log.info("Settings applied")

    def on_tick(self) -> MetricSample:
        sample = self.sampler.sample()
        self._last_sample = sample
        interval = self.settings.tick_interval
        self._check("CPU", sample.cpu_percent, interval, self.ranker.top_by_cpu)
        self._check("RAM", sample.ram_percent, interval, self.ranker.top_by_ram)
        return sample

    def _check(self, metric: str, value: float, interval: float, top_processes):
        if not self.detectors[metric].update(value, interval):
            return
        # detector is already latched; record the spike even without a ranking
        try:
            top = top_processes(self.settings.top_process_count)
        except Exception as e:
            self.log.warning(f"Ranking {metric} processes failed: {e}")
            top = ""
        spike_time = self.event_log.log_spike(metric, value, top, timestamp=self._clock())
        self.spike_count += 1
        self.log.warning(f"{metric} spike detected: {value:.1f}% for {self.settings.spike_seconds:g}s")

        if self.summarizer is not None and self.summarizer.ready:
            self.summarizer.submit(SummaryRequest(metric, value, top, spike_time))


class MonitorLoop(StoppableThread):
    def __init__(self, coordinator: SpikeCoordinator, logger=None):
        super().__init__(name="MonitorLoop", daemon=True)
        self.coordinator = coordinator
        self.log = logger or get_logger()

    def run(self):
        while not self.stopped():
            started = time.monotonic()
            try:
                self.coordinator.on_tick()
            except DisposedError as e:
                self.log.info(f"Monitor loop exiting: {e}")
                break
            except Exception:
                self.log.exception("Monitoring tick failed")
            elapsed = time.monotonic() - started
            self.wait(max(0.0, self.coordinator.settings.tick_interval - elapsed))
