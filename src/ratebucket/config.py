"""YAML configuration and logging setup for ratebucket."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Union

import yaml

from ratebucket.constants import INTERVALS, STORE_FILENAME
from ratebucket.limiter import RateLimiter
from ratebucket.storage import InMemoryStorage, JsonFileStorage, StorageAdapter

logger = logging.getLogger(__name__)

STORAGE_BACKENDS = ("memory", "json")


@dataclass
class LimiterConfig:
    capacity: int = 10
    tokens: int = 10
    interval: Union[str, int] = "second"  # "second" / "minute" / "hour" or seconds


@dataclass
class StorageConfig:
    backend: str = "memory"
    path: Optional[str] = None  # JSON file for the "json" backend


@dataclass
class RateBucketConfig:
    limiter: LimiterConfig = field(default_factory=LimiterConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    log_level: str = "INFO"


def load_config(path: Path) -> RateBucketConfig:
    """Load configuration from a YAML file."""
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError("Config must be a mapping")

    config = RateBucketConfig()

    if "limiter" in raw:
        lim = raw["limiter"]
        config.limiter = LimiterConfig(
            capacity=lim.get("capacity", 10),
            tokens=lim.get("tokens", 10),
            interval=lim.get("interval", "second"),
        )

    if "storage" in raw:
        s = raw["storage"]
        config.storage = StorageConfig(
            backend=s.get("backend", "memory"),
            path=s.get("path"),
        )

    config.log_level = raw.get("log_level", "INFO")

    # Surface bad values at load time rather than on first use
    interval_seconds(config.limiter)
    if config.storage.backend not in STORAGE_BACKENDS:
        raise ValueError(f"Unknown storage backend: {config.storage.backend!r}")
    return config


def interval_seconds(config: LimiterConfig) -> int:
    """Resolve the configured interval to a number of seconds."""
    interval = config.interval
    if isinstance(interval, str):
        if interval not in INTERVALS:
            raise ValueError(
                f"Unknown interval {interval!r}; "
                f"expected one of {', '.join(INTERVALS)} or a number of seconds"
            )
        return INTERVALS[interval]
    if isinstance(interval, bool) or not isinstance(interval, int) or interval <= 0:
        raise ValueError(f"Interval must be a positive integer, got {interval!r}")
    return interval


def build_storage(config: StorageConfig) -> StorageAdapter:
    if config.backend == "memory":
        return InMemoryStorage()
    if config.backend == "json":
        path = Path(config.path) if config.path else Path.cwd() / STORE_FILENAME
        logger.info("Using JSON bucket store at %s", path)
        return JsonFileStorage(path)
    raise ValueError(f"Unknown storage backend: {config.backend!r}")


def build_limiter(
    config: RateBucketConfig,
    clock: Callable[[], float] = time.time,
) -> RateLimiter:
    """Create a limiter (and its storage) from configuration."""
    return RateLimiter(
        build_storage(config.storage),
        capacity=config.limiter.capacity,
        tokens_per_interval=config.limiter.tokens,
        interval_seconds=interval_seconds(config.limiter),
        clock=clock,
    )


class _JsonFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record):
        entry = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def setup_logging(level: str, json_log: bool = False) -> None:
    """Configure root logging for a process that embeds ratebucket.

    The library itself only logs through module loggers and never installs
    handlers. Applications that have no logging setup of their own (scripts,
    workers configured from the same YAML file) can call this with
    ``RateBucketConfig.log_level`` to see limiter decisions at DEBUG.
    Pass ``json_log=True`` for one JSON object per line.
    """
    level_no = getattr(logging, level.upper(), logging.INFO)
    if json_log:
        handler = logging.StreamHandler()
        handler.setFormatter(_JsonFormatter())
        logging.basicConfig(
            level=level_no,
            handlers=[handler],
        )
    else:
        logging.basicConfig(
            level=level_no,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
