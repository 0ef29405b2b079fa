"""
缓存句柄

对外暴露的Cache对象：持有ExpiringStore，并负责后台清理线程的生命周期。
推荐使用 close() 或 with 语句确定性地停止清理线程；
Cache被回收时 weakref.finalize 也会停止线程。
"""

import weakref
from datetime import datetime
from typing import IO, Any, Dict, Mapping, Optional, Tuple

from expiring_cache.config import Settings, settings as default_settings
from expiring_cache.core.entry import DEFAULT_EXPIRATION, Duration, Entry, to_nanos
from expiring_cache.core.janitor import Janitor
from expiring_cache.core.snapshot import SnapshotCodec
from expiring_cache.core.store import EvictionCallback, ExpiringStore, Number, PathLike
from expiring_cache.utils.logger import LoggerMixin


class Cache(LoggerMixin):
    """
    带过期时间的内存缓存

    Args:
        default_expiration: 默认过期时长，0表示永不过期
        cleanup_interval: 清理间隔，非正数表示不启动清理线程
        items: 初始条目，会被复制
        codec: 快照编解码器，默认使用全局编解码器
        snapshot_path: save_file/load_file 未指定路径时使用的文件
    """

    def __init__(
        self,
        default_expiration: Duration = DEFAULT_EXPIRATION,
        cleanup_interval: Duration = 0,
        items: Optional[Mapping[str, Entry]] = None,
        codec: Optional[SnapshotCodec] = None,
        snapshot_path: Optional[PathLike] = None,
    ):
        self._store = ExpiringStore(default_expiration, items=items, codec=codec)
        self._janitor: Optional[Janitor] = None
        self._finalizer: Optional[weakref.finalize] = None
        self._closed = False
        self.snapshot_path = snapshot_path

        if to_nanos(cleanup_interval) > 0:
            self._janitor = Janitor(self._store, cleanup_interval)
            self._janitor.start()
            # 回调只引用janitor，不能引用self
            self._finalizer = weakref.finalize(self, self._janitor.stop)

        self.log_debug(
            "Cache initialized",
            default_expiration_ns=self._store.default_expiration_ns,
            janitor=self._janitor is not None,
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs: Any) -> "Cache":
        """根据配置创建缓存"""
        settings = settings or default_settings
        return cls(
            default_expiration=settings.default_expiration,
            cleanup_interval=settings.cleanup_interval,
            snapshot_path=settings.snapshot_path,
            **kwargs,
        )

    # ==================== 生命周期 ====================

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def janitor_running(self) -> bool:
        return self._janitor is not None and self._janitor.running

    def close(self) -> None:
        """停止后台清理线程，可重复调用；存储本身仍可使用"""
        if self._closed:
            return
        self._closed = True
        if self._finalizer is not None:
            # finalize只会执行一次
            self._finalizer()

    def __enter__(self) -> "Cache":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ==================== 存储操作 ====================

    def set(self, key: str, value: Any, ttl: Duration = DEFAULT_EXPIRATION) -> None:
        self._store.set(key, value, ttl)

    def set_default(self, key: str, value: Any) -> None:
        self._store.set_default(key, value)

    def add(self, key: str, value: Any, ttl: Duration = DEFAULT_EXPIRATION) -> None:
        self._store.add(key, value, ttl)

    def replace(self, key: str, value: Any, ttl: Duration = DEFAULT_EXPIRATION) -> None:
        self._store.replace(key, value, ttl)

    def get(self, key: str) -> Tuple[Any, bool]:
        return self._store.get(key)

    def get_with_expiration(self, key: str) -> Tuple[Any, Optional[datetime], bool]:
        return self._store.get_with_expiration(key)

    def increment(self, key: str, n: Number = 1) -> Number:
        return self._store.increment(key, n)

    def decrement(self, key: str, n: Number = 1) -> Number:
        return self._store.decrement(key, n)

    def delete(self, key: str) -> None:
        self._store.delete(key)

    def delete_expired(self) -> int:
        return self._store.delete_expired()

    def items(self) -> Dict[str, Entry]:
        return self._store.items()

    def item_count(self) -> int:
        return self._store.item_count()

    def __len__(self) -> int:
        return self._store.item_count()

    def flush(self) -> None:
        self._store.flush()

    def on_evicted(self, callback: Optional[EvictionCallback]) -> None:
        self._store.on_evicted(callback)

    # ==================== 快照 ====================

    def save(self, stream: IO[bytes]) -> None:
        self._store.save(stream)

    def load(self, stream: IO[bytes]) -> int:
        return self._store.load(stream)

    def _resolve_path(self, path: Optional[PathLike]) -> PathLike:
        path = path if path is not None else self.snapshot_path
        if path is None:
            raise ValueError("no snapshot path given and no default snapshot_path configured")
        return path

    def save_file(self, path: Optional[PathLike] = None) -> None:
        self._store.save_file(self._resolve_path(path))

    def load_file(self, path: Optional[PathLike] = None) -> int:
        return self._store.load_file(self._resolve_path(path))


def new(default_expiration: Duration = DEFAULT_EXPIRATION, cleanup_interval: Duration = 0) -> Cache:
    """创建空缓存"""
    return Cache(default_expiration, cleanup_interval)


def new_from(
    default_expiration: Duration,
    cleanup_interval: Duration,
    items: Mapping[str, Entry],
) -> Cache:
    """以已有条目创建缓存，例如由 items() 或快照解码得到的条目"""
    return Cache(default_expiration, cleanup_interval, items=items)
