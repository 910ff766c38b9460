"""
异步文件日志
有界队列 + 单个后台线程按天追加写入日志文件；
队列已满或已关闭时由调用方同步直接写入，避免丢消息
"""
import logging
import os
import queue
import sys
import threading
import traceback
from datetime import datetime
from typing import Optional

MAX_QUEUED_MESSAGES = 1024

_STOP = object()


class AppLogger:
    """后台写日志文件"""

    def __init__(self, log_dir: str, max_queued: int = MAX_QUEUED_MESSAGES):
        self.log_dir = log_dir
        self._queue: queue.Queue = queue.Queue(maxsize=max_queued)
        self._closed = False
        self._write_lock = threading.Lock()
        self._thread = threading.Thread(target=self._process_queue, name="wx-app-logger", daemon=True)
        self._thread.start()

    @property
    def closed(self) -> bool:
        return self._closed

    def _process_queue(self):
        while True:
            message = self._queue.get()
            try:
                if message is _STOP:
                    return
                self._write_safely(message)
            finally:
                self._queue.task_done()

    def enqueue_message(self, message: str):
        """入队，不阻塞；队列满或已关闭时同步写入"""
        if not self._closed:
            try:
                self._queue.put_nowait(message)
                return
            except queue.Full:
                pass
        self.write_message(message)

    def log_path(self, now: Optional[datetime] = None) -> str:
        now = now or datetime.now()
        return os.path.join(self.log_dir, f"wx_log_{now:%Y%m%d}.txt")

    def write_message(self, message: str):
        now = datetime.now()
        with self._write_lock:
            os.makedirs(self.log_dir, exist_ok=True)
            with open(self.log_path(now), 'a', encoding='utf-8') as f:
                f.write(f"[{now:%Y-%m-%d %H:%M:%S}]-{message}\n")

    def _write_safely(self, message: str):
        """写失败时输出到 stderr，后台线程继续消费"""
        try:
            self.write_message(message)
        except Exception:
            sys.stderr.write(f"--- AppLogger 写日志失败: {message}\n")
            traceback.print_exc(file=sys.stderr)

    def flush(self):
        """等待队列中已有消息写完"""
        self._queue.join()

    def close(self, timeout: Optional[float] = 5.0):
        """停止接收新消息，写完剩余消息后退出后台线程"""
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put(_STOP, timeout=timeout)
        except queue.Full:
            pass
        self._thread.join(timeout)
        # 关闭期间并发入队的消息
        while True:
            try:
                message = self._queue.get_nowait()
            except queue.Empty:
                break
            if message is not _STOP:
                self._write_safely(message)
            self._queue.task_done()


class AppLoggerHandler(logging.Handler):
    """将标准 logging 记录转发到 AppLogger"""

    def __init__(self, app_logger: AppLogger, level=logging.NOTSET):
        super().__init__(level)
        self.app_logger = app_logger

    def emit(self, record: logging.LogRecord):
        try:
            self.app_logger.enqueue_message(self.format(record))
        except Exception:
            self.handleError(record)

    def close(self):
        self.app_logger.close()
        super().close()
