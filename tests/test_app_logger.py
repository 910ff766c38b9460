"""
Tests for the async file log sink
"""
import logging
import os
import threading
import time

from wxpay.services.app_logger import AppLogger, AppLoggerHandler


def _read(app_logger: AppLogger) -> list:
    with open(app_logger.log_path(), encoding="utf-8") as f:
        return f.read().splitlines()


class TestAppLogger:

    def test_messages_written_in_order(self, tmp_path):
        app_logger = AppLogger(str(tmp_path / "logs"))
        for i in range(20):
            app_logger.enqueue_message(f"msg {i}")
        app_logger.close()

        lines = _read(app_logger)
        assert len(lines) == 20
        assert [line.split("]-", 1)[1] for line in lines] == [f"msg {i}" for i in range(20)]
        assert lines[0].startswith("[")

    def test_daily_file_name(self, tmp_path):
        app_logger = AppLogger(str(tmp_path))
        name = os.path.basename(app_logger.log_path())
        assert name.startswith("wx_log_") and name.endswith(".txt")
        assert len(name) == len("wx_log_20240101.txt")
        app_logger.close()

    def test_write_after_close_is_synchronous(self, tmp_path):
        app_logger = AppLogger(str(tmp_path))
        app_logger.close()
        assert app_logger.closed

        app_logger.enqueue_message("late")
        assert _read(app_logger)[-1].endswith("]-late")

    def test_full_queue_falls_back_to_direct_write(self, tmp_path):
        app_logger = AppLogger(str(tmp_path), max_queued=1)
        gate = threading.Event()
        original = app_logger.write_message

        def slow_write(message):
            if message == "first":
                gate.wait(5)
            original(message)

        app_logger.write_message = slow_write
        app_logger.enqueue_message("first")    # taken by the worker, blocked on gate
        app_logger.enqueue_message("second")   # fills the queue or is written directly
        app_logger.enqueue_message("third")
        gate.set()
        app_logger.close()

        lines = _read(app_logger)
        assert sorted(line.split("]-", 1)[1] for line in lines) == ["first", "second", "third"]

    def test_write_error_does_not_stop_worker(self, tmp_path, capsys):
        app_logger = AppLogger(str(tmp_path))
        original = app_logger.write_message
        failures = []

        def flaky_write(message):
            if message == "bad" and not failures:
                failures.append(message)
                raise OSError("disk full")
            original(message)

        app_logger.write_message = flaky_write
        app_logger.enqueue_message("bad")
        app_logger.flush()
        assert app_logger._thread.is_alive()

        app_logger.enqueue_message("good")
        app_logger.close()

        assert [line.split("]-", 1)[1] for line in _read(app_logger)] == ["good"]
        assert "AppLogger 写日志失败: bad" in capsys.readouterr().err

    def test_close_returns_when_worker_is_stuck(self, tmp_path):
        app_logger = AppLogger(str(tmp_path), max_queued=1)
        gate = threading.Event()
        original = app_logger.write_message

        def stuck_write(message):
            if message == "first":
                gate.wait(5)
            original(message)

        app_logger.write_message = stuck_write
        app_logger.enqueue_message("first")
        time.sleep(0.05)
        app_logger.enqueue_message("second")

        started = time.perf_counter()
        app_logger.close(timeout=0.2)
        assert time.perf_counter() - started < 2.0
        gate.set()

    def test_handler_forwards_records(self, tmp_path):
        app_logger = AppLogger(str(tmp_path))
        handler = AppLoggerHandler(app_logger)
        handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
        log = logging.getLogger("wxpay.test_handler")
        log.addHandler(handler)
        log.setLevel(logging.INFO)
        try:
            log.info("支付通知")
        finally:
            log.removeHandler(handler)
            handler.close()

        assert _read(app_logger)[-1].endswith("]-INFO 支付通知")
