import os, stat, threading, logging, pathlib

LOGGER_NAME = "spike-monitor"


class DisposedError(RuntimeError):
    """Raised when a component is used after dispose()."""


def ensure_dirs(path: str):
    pathlib.Path(path).mkdir(parents=True, exist_ok=True)


def ensure_writable(path: str):
    # clears the read-only bit; failures surface later when the file is opened
    try:
        mode = os.stat(path).st_mode
    except OSError:
        return
    if not mode & stat.S_IWUSR:
        try:
            os.chmod(path, mode | stat.S_IWUSR)
        except OSError:
            pass


def setup_logger(level: str = "INFO"):
    lvl = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=lvl,
        format="%(asctime)s | %(levelname)s | %(threadName)s | %(message)s"
    )
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(lvl)
    return logger


def get_logger():
    return logging.getLogger(LOGGER_NAME)


class StoppableThread(threading.Thread):
    def __init__(self, *a, **kw):
        super().__init__(*a, **kw)
        self._stop_event = threading.Event()

    def stop(self):
        self._stop_event.set()

    def stopped(self):
        return self._stop_event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; returns True if stop() was called meanwhile."""
        return self._stop_event.wait(seconds)
