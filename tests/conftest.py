"""
测试配置和通用fixture
"""
import time
from typing import Callable, Generator, List, Tuple

import pytest

from expiring_cache.core import Cache, ExpiringStore, SnapshotCodec


@pytest.fixture
def store() -> ExpiringStore:
    """无默认过期时间的存储"""
    return ExpiringStore()


@pytest.fixture
def cache() -> Generator[Cache, None, None]:
    """不带清理线程的缓存"""
    c = Cache()
    yield c
    c.close()


@pytest.fixture
def codec() -> SnapshotCodec:
    """独立的编解码器，避免污染全局注册表"""
    return SnapshotCodec()


@pytest.fixture
def evictions() -> Tuple[List[Tuple[str, object]], Callable[[str, object], None]]:
    """记录淘汰回调调用"""
    calls: List[Tuple[str, object]] = []

    def on_evicted(key: str, value: object) -> None:
        calls.append((key, value))

    return calls, on_evicted


@pytest.fixture
def wait_until() -> Callable[..., bool]:
    """轮询等待条件成立"""

    def _wait(predicate: Callable[[], bool], timeout: float = 2.0, interval: float = 0.01) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(interval)
        return predicate()

    return _wait
