"""
后台清理线程测试
"""

import threading
import time

import pytest

from expiring_cache.core import ExpiringStore, Janitor, NO_EXPIRATION


class TestJanitor:
    """Janitor 测试"""

    def test_invalid_interval(self, store):
        with pytest.raises(ValueError):
            Janitor(store, 0)
        with pytest.raises(ValueError):
            Janitor(store, -1)

    def test_sweeps_periodically(self, store, evictions, wait_until):
        """定期清理过期条目并触发回调"""
        calls, on_evicted = evictions
        store.on_evicted(on_evicted)
        store.set("expiring", "value", 0.02)
        store.set("forever", "value", NO_EXPIRATION)

        janitor = Janitor(store, 0.02)
        janitor.start()
        try:
            assert janitor.running
            assert wait_until(lambda: store.item_count() == 1)
            assert calls == [("expiring", "value")]
            assert store.get("forever") == ("value", True)
        finally:
            janitor.stop()

    def test_stop_is_idempotent(self, store):
        janitor = Janitor(store, 0.01)
        janitor.start()
        janitor.stop()
        janitor.stop()

        assert not janitor.running
        assert janitor._thread is not None
        assert not janitor._thread.is_alive()

    def test_stop_before_start(self, store):
        """未启动时停止不报错，之后也不会再启动"""
        janitor = Janitor(store, 0.01)
        janitor.stop()
        janitor.start()

        assert not janitor.running
        assert janitor._thread is None

    def test_no_sweep_after_stop(self, store):
        janitor = Janitor(store, 0.01)
        janitor.start()
        janitor.stop()

        store.set("expiring", "value", 0.01)
        time.sleep(0.05)
        assert store.item_count() == 1

    def test_survives_failing_callback(self, store, wait_until):
        """回调异常不会终止清理线程"""
        failures = []

        def on_evicted(key, value):
            failures.append(key)
            raise RuntimeError("callback failed")

        store.on_evicted(on_evicted)
        store.set("first", 1, 0.01)

        janitor = Janitor(store, 0.02)
        janitor.start()
        try:
            assert wait_until(lambda: failures == ["first"])

            store.set("second", 2, 0.01)
            assert wait_until(lambda: failures == ["first", "second"])
            assert janitor.running
        finally:
            janitor.stop()

    def test_stop_from_callback(self, store, wait_until):
        """在清理线程内部调用stop不会死锁"""
        janitor = Janitor(store, 0.01)
        stopped = threading.Event()

        def on_evicted(key, value):
            janitor.stop()
            stopped.set()

        store.on_evicted(on_evicted)
        store.set("key", 1, 0.01)
        janitor.start()

        assert stopped.wait(2.0)
        assert wait_until(lambda: not janitor._thread.is_alive())

    def test_holds_only_store(self):
        store = ExpiringStore()
        janitor = Janitor(store, 1)
        assert janitor.store is store
        assert janitor.interval == 1.0
