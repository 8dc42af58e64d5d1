from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from reflectscan.errors import ConfigError

ALLOWED_METHODS = ("GET", "POST")

DEFAULT_RATE = 20
DEFAULT_BATCH_SIZE = 5
DEFAULT_TIMEOUT = 15.0
DEFAULT_QUEUE_SIZE = 1000
DEFAULT_MAX_BODY = 2 * 1024 * 1024


@dataclass
class ScanConfig:
    paths_file: str = ""
    parameters_file: str = ""
    method: str = "GET"
    rate: int = DEFAULT_RATE
    workers: int = 0
    batch_size: int = DEFAULT_BATCH_SIZE
    timeout: float = DEFAULT_TIMEOUT
    proxy: Optional[str] = None
    insecure: bool = False
    retries: int = 0
    backoff: float = 0.5
    verbose: bool = False
    queue_size: int = DEFAULT_QUEUE_SIZE
    max_body: int = DEFAULT_MAX_BODY
    max_time: Optional[float] = None
    shuffle: bool = False
    progress: bool = True
    log_file: Optional[str] = None

    @property
    def resolved_workers(self) -> int:
        return self.workers or self.rate

    def validate(self) -> "ScanConfig":
        if not self.paths_file:
            raise ConfigError("paths file is required")
        if not self.parameters_file:
            raise ConfigError("parameters file is required")
        self.method = (self.method or "").upper()
        if self.method not in ALLOWED_METHODS:
            raise ConfigError("method must be GET or POST")
        if self.rate <= 0:
            raise ConfigError("rate must be positive")
        if self.batch_size <= 0:
            raise ConfigError("parameter batch size must be positive")
        if self.workers < 0:
            raise ConfigError("workers must not be negative")
        if self.retries < 0:
            raise ConfigError("retries must not be negative")
        if self.timeout <= 0:
            raise ConfigError("timeout must be positive")
        if self.queue_size <= 0:
            raise ConfigError("queue size must be positive")
        if self.max_body <= 0:
            raise ConfigError("max body size must be positive")
        if self.max_time is not None and self.max_time <= 0:
            raise ConfigError("max time must be positive")
        return self
