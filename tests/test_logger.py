"""
Tests for logging functionality.
"""
import logging

import pytest

from src.config.settings import settings
from src.utils.logger import (
    LogBuffer,
    LoggerMixin,
    get_logger,
    log_buffer,
    log_error,
    setup_logging,
)


@pytest.fixture
def log_dir(tmp_path, monkeypatch):
    path = tmp_path / "logs"
    monkeypatch.setattr(settings, "log_dir", str(path))
    yield path
    # 测试结束后移除指向临时目录的文件处理器
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if isinstance(handler, logging.FileHandler):
            root_logger.removeHandler(handler)
            handler.close()


def test_setup_logging(log_dir):
    """Test logging setup."""
    setup_logging()

    assert log_dir.exists()
    assert (log_dir / "app.log").exists()

    logger = get_logger("test")
    assert logger is not None


def test_setup_logging_twice_keeps_single_file_handler(log_dir):
    setup_logging()
    setup_logging()

    file_handlers = [
        h for h in logging.getLogger().handlers
        if isinstance(h, logging.FileHandler) and h.baseFilename.endswith("app.log")
    ]
    assert len(file_handlers) == 1


def test_logger_mixin():
    """Test LoggerMixin functionality."""

    class Worker(LoggerMixin):
        def run(self):
            self.logger.info("Test message")
            return "success"

    worker = Worker()

    assert worker.run() == "success"
    assert hasattr(worker, "logger")


def test_log_error(log_dir):
    """Test error logging function."""
    setup_logging()

    try:
        raise ValueError("Test error")
    except ValueError as e:
        log_error(e, {"context": "test"})


def test_stdlib_records_reach_buffer(log_dir):
    setup_logging()
    log_buffer.clear()

    logging.getLogger("src.services.sample").warning("页面为空")

    entries = log_buffer.get_entries(source="src.services.sample")
    assert entries[-1]["message"] == "页面为空"
    assert entries[-1]["level"] == "WARNING"
    log_buffer.clear()


class TestLogBuffer:
    """日志缓冲区测试"""

    def test_ring_buffer_drops_oldest(self):
        buffer = LogBuffer(max_entries=2)
        for i in range(3):
            buffer.append("INFO", "app", f"message {i}")

        messages = [e["message"] for e in buffer.get_entries()]
        assert messages == ["message 1", "message 2"]

    def test_filter_by_source_and_clear(self):
        buffer = LogBuffer()
        buffer.append("INFO", "app", "a")
        buffer.append("ERROR", "worker", "b")

        assert [e["message"] for e in buffer.get_entries("worker")] == ["b"]

        buffer.clear()
        assert buffer.get_entries() == []
