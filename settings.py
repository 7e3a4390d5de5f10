import os, yaml
from dataclasses import dataclass, field, fields
from typing import Optional
from genai import DEFAULT_API_URL, DEFAULT_MODEL
from alerting.event_log import DEFAULT_LOG_FILE
from utils import get_logger

MIN_TOP_PROCESSES = 1
MAX_TOP_PROCESSES = 10


@dataclass
class SummarySettings:
    enabled: bool = True
    model: str = DEFAULT_MODEL
    api_url: str = DEFAULT_API_URL
    api_key_env: str = "OPENAI_API_KEY"
    timeout_seconds: float = 30.0


@dataclass
class Settings:
    log_level: str = "INFO"
    tick_interval_ms: int = 500
    cpu_threshold: float = 80.0
    ram_threshold: float = 80.0
    spike_seconds: float = 10.0
    top_process_count: int = 3
    log_file_name: str = DEFAULT_LOG_FILE
    log_dir: Optional[str] = None
    log_retention_days: int = 7
    max_cached_lines: int = 1000
    summary: SummarySettings = field(default_factory=SummarySettings)

    @property
    def tick_interval(self) -> float:
        return self.tick_interval_ms / 1000.0

    @classmethod
    def from_dict(cls, cfg: Optional[dict]) -> "Settings":
        cfg = dict(cfg or {})
        summary_cfg = cfg.pop("summary", None) or {}
        known = {f.name for f in fields(cls)} - {"summary"}
        s = cls(**{k: v for k, v in cfg.items() if k in known})
        known_summary = {f.name for f in fields(SummarySettings)}
        s.summary = SummarySettings(**{k: v for k, v in summary_cfg.items() if k in known_summary})
        s.validate()
        return s

    def validate(self):
        try:
            self.tick_interval_ms = int(self.tick_interval_ms)
            self.cpu_threshold = float(self.cpu_threshold)
            self.ram_threshold = float(self.ram_threshold)
            self.spike_seconds = float(self.spike_seconds)
            self.top_process_count = int(self.top_process_count)
            self.log_retention_days = int(self.log_retention_days)
            self.max_cached_lines = int(self.max_cached_lines)
            self.summary.timeout_seconds = float(self.summary.timeout_seconds)
        except (TypeError, ValueError) as e:
            raise ValueError(f"invalid setting: {e}") from e

        for name in ("tick_interval_ms", "spike_seconds", "log_retention_days", "max_cached_lines"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.summary.timeout_seconds <= 0:
            raise ValueError("summary.timeout_seconds must be positive")
        self.top_process_count = min(max(self.top_process_count, MIN_TOP_PROCESSES), MAX_TOP_PROCESSES)
        return self


def load_settings(path: str = "config.yaml", logger=None) -> Settings:
    log = logger or get_logger()
    path = os.path.expanduser(path)
    if not os.path.exists(path):
        log.warning(f"Config file {path} not found, using defaults")
        return Settings()
    with open(path, "r") as f:
        cfg = yaml.safe_load(f) or {}
    if not isinstance(cfg, dict):
        raise ValueError(f"{path} must contain a mapping")
    return Settings.from_dict(cfg)
