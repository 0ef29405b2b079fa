"""
后台过期清理线程
"""

import threading
from typing import Optional

from expiring_cache.core.entry import Duration, NANOS_PER_SECOND, to_nanos
from expiring_cache.core.store import ExpiringStore
from expiring_cache.utils.logger import LoggerMixin


class Janitor(LoggerMixin):
    """
    定期调用 store.delete_expired() 的守护线程

    只持有存储的引用，不持有外层 Cache，外层对象因此可以被回收。
    """

    def __init__(self, store: ExpiringStore, interval: Duration, join_timeout: float = 5.0):
        interval_ns = to_nanos(interval)
        if interval_ns <= 0:
            raise ValueError("Janitor interval must be positive")

        self.store = store
        self.interval = interval_ns / NANOS_PER_SECOND
        self.join_timeout = join_timeout

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._state_lock = threading.Lock()

    @property
    def running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive() and not self._stop_event.is_set()

    def start(self) -> None:
        """启动清理线程"""
        with self._state_lock:
            if self._thread is not None or self._stop_event.is_set():
                return

            self._thread = threading.Thread(
                target=self._run,
                daemon=True,
                name=f"ExpiringCache-Janitor-{id(self.store)}",
            )
            self._thread.start()
        self.log_debug("Janitor started", interval=self.interval)

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                self.store.delete_expired()
            except Exception as e:
                self.log_error("Janitor sweep failed", error=str(e))

    def stop(self) -> None:
        """停止清理线程，可重复调用"""
        with self._state_lock:
            if self._stop_event.is_set():
                return
            self._stop_event.set()
            thread = self._thread

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.join_timeout)
        self.log_debug("Janitor stopped")
