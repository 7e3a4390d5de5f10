import queue
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from datetime import datetime
from typing import NamedTuple
from utils import DisposedError, StoppableThread, get_logger


class SummaryRequest(NamedTuple):
    metric: str
    value: float
    top_processes: str
    spike_time: datetime


class SummaryWorker(StoppableThread):
    """Background channel that turns spike records into AI summaries.

    Requests are queued by the tick loop and handled one at a time; each
    generation is bounded by ``timeout`` and a late or empty result is
    dropped. Results are appended to the event log under its own lock.
    """

    def __init__(self, generator, event_log, timeout: float = 30.0, max_pending: int = 16, logger=None):
        super().__init__(name="SummaryWorker", daemon=True)
        self.generator = generator
        self.event_log = event_log
        self.timeout = timeout
        self.q: "queue.Queue[SummaryRequest]" = queue.Queue(maxsize=max_pending)
        self.log = logger or get_logger()
        self._pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="summary")

    @property
    def ready(self) -> bool:
        return self.is_alive() and not self.stopped() and self.generator.ready

    def submit(self, request: SummaryRequest) -> bool:
        try:
            self.q.put_nowait(request)
            return True
        except queue.Full:
            self.log.warning(f"Summary queue full, skipping summary for {request.metric} spike")
            return False

    def reconfigure(self, settings):
        self.timeout = settings.summary.timeout_seconds
        self.generator.spike_seconds = settings.spike_seconds

    def run(self):
        while not self.stopped():
            try:
                request = self.q.get(timeout=0.5)
            except queue.Empty:
                continue
            if request is None:
                break
            self.handle(request)

    def handle(self, request: SummaryRequest) -> bool:
        """Generate and append one summary; returns True if it reached the log."""
        try:
            future = self._pool.submit(self.generator.generate_summary, request.metric, request.value,
                                       request.top_processes, self.timeout)
        except RuntimeError:
            # pool already shut down by stop()
            return False
        # the wait includes time queued behind an abandoned generation still holding the pool thread
        try:
            text = future.result(timeout=self.timeout)
        except FutureTimeout:
            future.cancel()
            self.log.info(f"Summary for {request.metric} spike timed out after {self.timeout:g}s")
            return False
        except Exception as e:
            self.log.warning(f"Summary generation failed: {e}")
            return False

        if not text or not text.strip():
            return False
        try:
            self.event_log.append_summary(request.metric, request.spike_time, text)
        except DisposedError:
            self.log.debug("Event log closed before summary could be appended")
            return False
        return True

    def stop(self):
        super().stop()
        try:
            self.q.put_nowait(None)
        except queue.Full:
            pass
        self._pool.shutdown(wait=False, cancel_futures=True)
