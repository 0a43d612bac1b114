"""Tests for YAML configuration loading."""

import json
import logging
import sys

import pytest

from ratebucket.config import (
    LimiterConfig,
    RateBucketConfig,
    StorageConfig,
    build_limiter,
    build_storage,
    interval_seconds,
    load_config,
    _JsonFormatter,
    setup_logging,
)
from ratebucket.storage import InMemoryStorage, JsonFileStorage


def _write(tmp_path, text):
    path = tmp_path / "ratebucket.yaml"
    path.write_text(text)
    return path


class TestLoadConfig:
    def test_empty_file_gives_defaults(self, tmp_path):
        config = load_config(_write(tmp_path, ""))
        assert config.limiter.capacity == 10
        assert config.limiter.tokens == 10
        assert config.limiter.interval == "second"
        assert config.storage.backend == "memory"
        assert config.log_level == "INFO"

    def test_full_file(self, tmp_path):
        config = load_config(_write(tmp_path, (
            "limiter:\n"
            "  capacity: 20\n"
            "  tokens: 100\n"
            "  interval: minute\n"
            "storage:\n"
            "  backend: json\n"
            "  path: /tmp/buckets.json\n"
            "log_level: DEBUG\n"
        )))
        assert config.limiter == LimiterConfig(capacity=20, tokens=100, interval="minute")
        assert config.storage == StorageConfig(backend="json", path="/tmp/buckets.json")
        assert config.log_level == "DEBUG"

    def test_unknown_interval(self, tmp_path):
        with pytest.raises(ValueError, match="Unknown interval"):
            load_config(_write(tmp_path, "limiter:\n  interval: fortnight\n"))

    @pytest.mark.parametrize("text", ["- 1\n- 2\n", "just a string\n"])
    def test_top_level_must_be_mapping(self, tmp_path, text):
        with pytest.raises(ValueError, match="Config must be a mapping"):
            load_config(_write(tmp_path, text))

    def test_unknown_backend(self, tmp_path):
        with pytest.raises(ValueError, match="Unknown storage backend"):
            load_config(_write(tmp_path, "storage:\n  backend: redis\n"))


class TestIntervalSeconds:
    @pytest.mark.parametrize("interval,expected", [
        ("second", 1),
        ("minute", 60),
        ("hour", 3600),
        (90, 90),
    ])
    def test_resolves(self, interval, expected):
        assert interval_seconds(LimiterConfig(interval=interval)) == expected

    @pytest.mark.parametrize("interval", [0, -5, 1.5, True])
    def test_rejects(self, interval):
        with pytest.raises(ValueError):
            interval_seconds(LimiterConfig(interval=interval))


class TestBuild:
    def test_memory_storage(self):
        assert isinstance(build_storage(StorageConfig()), InMemoryStorage)

    def test_json_storage(self, tmp_path):
        path = tmp_path / "b.json"
        store = build_storage(StorageConfig(backend="json", path=str(path)))
        assert isinstance(store, JsonFileStorage)
        assert store.path == path

    def test_build_limiter(self, clock):
        config = RateBucketConfig(limiter=LimiterConfig(capacity=2, tokens=30, interval="minute"))
        rl = build_limiter(config, clock=clock)
        assert rl.capacity == 2
        assert rl.refill_rate_per_second == 0.5
        assert rl.allow("alice") is True
        assert rl.allow("alice") is True
        assert rl.allow("alice") is False


def test_setup_logging_json(monkeypatch):
    calls = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.update(kw))
    setup_logging("debug", json_log=True)
    assert calls["level"] == logging.DEBUG
    assert len(calls["handlers"]) == 1


def test_setup_logging_plain(monkeypatch):
    calls = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.update(kw))
    setup_logging("nonsense")
    assert calls["level"] == logging.INFO
    assert "%(name)s" in calls["format"]
    assert "handlers" not in calls


class TestJsonFormatter:
    def _record(self, exc_info=None):
        return logging.LogRecord(
            name="ratebucket.limiter", level=logging.DEBUG, pathname=__file__,
            lineno=1, msg="Denied %s:%s", args=("api", "alice"),
            exc_info=exc_info,
        )

    def test_fields(self):
        entry = json.loads(_JsonFormatter().format(self._record()))
        assert set(entry) == {"timestamp", "level", "logger", "message"}
        assert entry["level"] == "DEBUG"
        assert entry["logger"] == "ratebucket.limiter"
        assert entry["message"] == "Denied api:alice"

    def test_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = self._record(exc_info=sys.exc_info())
        entry = json.loads(_JsonFormatter().format(record))
        assert "RuntimeError: boom" in entry["exc_info"]
