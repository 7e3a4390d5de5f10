import os, shutil, tempfile, threading, collections
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence
from utils import DisposedError, ensure_writable, get_logger

DEFAULT_LOG_FILE = "spike_monitor_log.txt"
HEADER_MARK = "====="
SEPARATOR = "-" * 48


def default_log_paths(file_name: str = DEFAULT_LOG_FILE, log_dir: Optional[str] = None) -> List[str]:
    paths = []
    if log_dir:
        paths.append(os.path.join(os.path.expanduser(log_dir), file_name))
    paths.append(os.path.join(os.path.expanduser("~"), "Desktop", file_name))
    paths.append(os.path.join(os.getcwd(), file_name))
    return paths


def choose_log_path(candidates: Sequence[str]) -> str:
    if not candidates:
        raise ValueError("at least one log path candidate is required")
    for path in candidates:
        directory = os.path.dirname(os.path.abspath(path))
        if os.path.isdir(directory) and os.access(directory, os.W_OK):
            return os.path.abspath(path)
    return os.path.abspath(candidates[-1])


def build_day_header(now: datetime) -> str:
    return f"{HEADER_MARK} {now:%Y-%m-%d} ({now:%A}) {HEADER_MARK}"


def is_header(line: str) -> bool:
    s = line.strip()
    return s.startswith(HEADER_MARK) and s.endswith(HEADER_MARK) and len(s) > 10


def parse_header_date(line: str) -> Optional[datetime]:
    """Date of a ``===== YYYY-MM-DD (Weekday) =====`` line, or None."""
    s = line.strip()
    if not s.startswith(HEADER_MARK) or not s.endswith(HEADER_MARK) or len(s) < 25:
        return None
    start = s.find(" ") + 1
    end = s.find(" ", start)
    if start <= 0 or end <= start:
        return None
    try:
        return datetime.strptime(s[start:end], "%Y-%m-%d")
    except ValueError:
        return None


def indent_text(text: str) -> List[str]:
    return [f"  {line.strip()}" for line in text.split("\n") if line.strip()]


def _open_append(path: str):
    # plain open() shares read/write with other processes on every platform
    return open(path, "a", encoding="utf-8", newline="\n")


def _read_lines(path: str, keepends: bool = False) -> List[str]:
    with open(path, "r", encoding="utf-8", errors="replace", newline="") as f:
        return f.read().splitlines(keepends)


class EventLog:
    """Append-only, date-sectioned text log of spike events.

    All state (file handle, write-behind cache, known day headers) is guarded
    by one lock. When the file cannot be opened or written, lines go to a
    bounded in-memory cache that is flushed ahead of any new content on the
    next operation.
    """

    def __init__(self, candidates: Optional[Sequence[str]] = None, retention_days: int = 7,
                 spike_seconds: float = 10, max_cached_lines: int = 1000, clock=datetime.now,
                 logger=None):
        if retention_days <= 0:
            raise ValueError("retention_days must be positive")
        if max_cached_lines <= 0:
            raise ValueError("max_cached_lines must be positive")
        self.log = logger or get_logger()
        self.retention_days = retention_days
        self.spike_seconds = spike_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._cache = collections.deque(maxlen=max_cached_lines)
        self._fh = None
        self._last_header_date = None
        self._disposed = False
        self._path = choose_log_path(candidates or default_log_paths())

        self._prune_file()
        self._known_headers = self._load_headers()
        self._open_locked()
        with self._lock:
            self._ensure_header_locked()
        self.log.info(f"Logging spikes to {self._path}")

    @property
    def path(self) -> str:
        return self._path

    @property
    def cached_line_count(self) -> int:
        with self._lock:
            return len(self._cache)

    def log_spike(self, metric: str, value: float, top_processes: str,
                  timestamp: Optional[datetime] = None, summary: Optional[str] = None) -> datetime:
        if not metric or not metric.strip():
            raise ValueError("metric name is required")
        self._check_disposed()
        ts = timestamp or self._clock()
        lines = [
            f"{ts:%H:%M:%S} - {metric} spike detected (>= {self.spike_seconds:g}s): {value:.1f}%",
            f"Top {metric}-consuming processes:",
        ]
        lines.extend(top_processes.splitlines() if top_processes.strip() else ["  (no process data available)"])
        if summary and summary.strip():
            lines.append("")
            lines.append("AI Analysis:")
            lines.extend(indent_text(summary))
        lines.append("")

        with self._lock:
            self._flush_cache_locked()
            self._ensure_header_locked()
            self._emit_locked(lines)
        return ts

    def append_summary(self, metric: str, spike_time: datetime, text: str):
        if not text or not text.strip():
            return
        self._check_disposed()
        lines = [f"AI Analysis (for {metric} spike at {spike_time:%H:%M:%S}):"]
        lines.extend(indent_text(text))
        lines.append("")
        with self._lock:
            self._flush_cache_locked()
            self._emit_locked(lines)

    def ensure_daily_header(self):
        self._check_disposed()
        with self._lock:
            self._flush_cache_locked()
            self._ensure_header_locked()

    def try_flush_cache(self) -> bool:
        self._check_disposed()
        with self._lock:
            return self._flush_cache_locked()

    def prune_old_entries(self) -> int:
        """Drop dated sections older than the retention window; returns lines removed."""
        self._check_disposed()
        with self._lock:
            self._flush_cache_locked()
            self._close_locked()
            removed = self._prune_file()
            self._known_headers = self._load_headers()
            self._last_header_date = None
            self._open_locked()
        return removed

    def dispose(self):
        with self._lock:
            if self._disposed:
                return
            if not self._flush_cache_locked():
                self.log.warning(f"{len(self._cache)} log lines could not be written before shutdown")
            self._close_locked()
            self._disposed = True

    close = dispose

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.dispose()

    def _check_disposed(self):
        if self._disposed:
            raise DisposedError("EventLog has been disposed")

    # everything below expects self._lock to be held (or runs before any thread can see us)

    def _open_locked(self) -> bool:
        if self._fh is not None:
            return True
        try:
            ensure_writable(self._path)
            self._fh = _open_append(self._path)
            return True
        except OSError as e:
            self.log.debug(f"Log file unavailable: {e}")
            self._fh = None
            return False

    def _close_locked(self):
        fh, self._fh = self._fh, None
        if fh is None:
            return
        try:
            fh.close()
        except OSError as e:
            self.log.debug(f"Closing log file failed: {e}")

    def _write_locked(self, lines: Iterable[str]) -> bool:
        if self._fh is None and not self._open_locked():
            return False
        try:
            self._fh.write("".join(f"{line}\n" for line in lines))
            self._fh.flush()
            return True
        except (OSError, ValueError) as e:
            self.log.debug(f"Log write failed: {e}")
            self._close_locked()
            return False

    def _cache_locked(self, lines: List[str]):
        overflow = len(self._cache) + len(lines) - self._cache.maxlen
        if overflow > 0:
            self.log.warning(f"Log cache full, dropping {overflow} oldest lines")
        self._cache.extend(lines)

    def _flush_cache_locked(self) -> bool:
        if not self._cache:
            return True
        if not self._write_locked(self._cache):
            return False
        self.log.info(f"Flushed {len(self._cache)} cached log lines")
        self._cache.clear()
        return True

    def _emit_locked(self, lines: List[str]):
        # new lines may not overtake older cached ones
        if self._cache or not self._write_locked(lines):
            self._cache_locked(lines)

    def _ensure_header_locked(self):
        now = self._clock()
        header = build_day_header(now)
        if self._last_header_date == now.date() and header in self._known_headers:
            return
        if header not in self._known_headers:
            self._emit_locked(["", header, f"Started: {now:%H:%M:%S} (Local)", SEPARATOR])
            self._known_headers.add(header)
        self._last_header_date = now.date()

    def _load_headers(self) -> set:
        try:
            return {line.strip() for line in _read_lines(self._path) if is_header(line)}
        except FileNotFoundError:
            return set()
        except OSError as e:
            self.log.debug(f"Could not read existing headers: {e}")
            return set()

    def _prune_file(self) -> int:
        try:
            lines = _read_lines(self._path, keepends=True)
        except FileNotFoundError:
            return 0
        except OSError as e:
            self.log.warning(f"Log pruning skipped, cannot read {self._path}: {e}")
            return 0

        cutoff = datetime.combine(self._clock().date(), datetime.min.time()) - timedelta(days=self.retention_days)
        retained = []
        keep = True
        for line in lines:
            section_date = parse_header_date(line)
            if section_date is not None:
                keep = section_date >= cutoff
            if keep:
                retained.append(line)

        if len(retained) == len(lines):
            return 0
        while retained and not retained[0].strip():
            retained.pop(0)

        try:
            self._replace_file(retained)
        except OSError as e:
            self.log.warning(f"Log pruning failed, keeping existing file: {e}")
            return 0
        removed = len(lines) - len(retained)
        self.log.info(f"Pruned {removed} log lines older than {self.retention_days} days")
        return removed

    def _replace_file(self, lines: List[str]):
        # lines keep their original endings so retained sections stay byte-identical
        ensure_writable(self._path)
        directory = os.path.dirname(self._path)
        fd, tmp = tempfile.mkstemp(prefix=".prune-", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write("".join(lines))
            shutil.copymode(self._path, tmp)
            os.replace(tmp, self._path)
        except BaseException:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise
