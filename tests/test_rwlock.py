"""
读写锁测试
"""

import threading
import time

from expiring_cache.core.rwlock import RWLock


class TestRWLock:
    """RWLock 测试"""

    def test_readers_share(self):
        """多个读者可以同时持有锁"""
        lock = RWLock()
        inside = threading.Barrier(3, timeout=2.0)
        errors = []

        def reader():
            try:
                with lock.read_locked():
                    inside.wait()
            except threading.BrokenBarrierError as e:
                errors.append(e)

        threads = [threading.Thread(target=reader) for _ in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5.0)

        assert errors == []

    def test_writer_excludes_readers(self):
        lock = RWLock()
        acquired = threading.Event()

        lock.acquire_write()

        def reader():
            with lock.read_locked():
                acquired.set()

        t = threading.Thread(target=reader, daemon=True)
        t.start()

        assert not acquired.wait(0.1)
        lock.release_write()
        assert acquired.wait(2.0)
        t.join(timeout=2.0)

    def test_reader_blocks_writer(self):
        lock = RWLock()
        acquired = threading.Event()

        lock.acquire_read()

        def writer():
            with lock.write_locked():
                acquired.set()

        t = threading.Thread(target=writer, daemon=True)
        t.start()

        assert not acquired.wait(0.1)
        lock.release_read()
        assert acquired.wait(2.0)
        t.join(timeout=2.0)

    def test_waiting_writer_blocks_new_readers(self):
        """有写者等待时新读者排队"""
        lock = RWLock()
        order = []

        lock.acquire_read()

        def writer():
            with lock.write_locked():
                order.append("writer")

        def reader():
            with lock.read_locked():
                order.append("reader")

        w = threading.Thread(target=writer, daemon=True)
        w.start()
        time.sleep(0.05)

        r = threading.Thread(target=reader, daemon=True)
        r.start()
        time.sleep(0.05)
        assert order == []

        lock.release_read()
        w.join(timeout=2.0)
        r.join(timeout=2.0)

        assert order == ["writer", "reader"]

    def test_release_on_exception(self):
        lock = RWLock()
        try:
            with lock.write_locked():
                raise RuntimeError("boom")
        except RuntimeError:
            pass

        with lock.read_locked():
            pass
        with lock.write_locked():
            pass
