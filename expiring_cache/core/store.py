"""
带过期时间的键值存储

整表一把读写锁：读操作共享，写操作独占。
淘汰回调总是在释放锁之后调用，回调内部可以再次访问存储。
"""

import os
from decimal import Decimal
from datetime import datetime
from typing import IO, Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from expiring_cache.core.entry import (
    DEFAULT_EXPIRATION,
    NO_EXPIRATION,
    Duration,
    Entry,
    expiration_from,
    now_ns,
    to_nanos,
)
from expiring_cache.core.exceptions import (
    KeyExistsError,
    KeyNotFoundError,
    NotNumericError,
    SnapshotError,
)
from expiring_cache.core.rwlock import RWLock
from expiring_cache.core.snapshot import SnapshotCodec, get_default_codec
from expiring_cache.utils.logger import LoggerMixin

EvictionCallback = Callable[[str, Any], None]
Number = Union[int, float, Decimal]
PathLike = Union[str, "os.PathLike[str]"]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


class ExpiringStore(LoggerMixin):
    """
    过期键值存储

    - 基础操作：set/add/replace/get/delete
    - 过期清理：delete_expired 单次扫描后统一通知
    - 淘汰回调：on_evicted
    - 快照：save/load 及文件版本
    """

    def __init__(
        self,
        default_expiration: Duration = DEFAULT_EXPIRATION,
        items: Optional[Mapping[str, Entry]] = None,
        codec: Optional[SnapshotCodec] = None,
    ):
        default_ns = to_nanos(default_expiration)
        if default_ns == 0:
            default_ns = to_nanos(NO_EXPIRATION)

        self._default_expiration = default_ns
        self._items: Dict[str, Entry] = dict(items) if items else {}
        self._lock = RWLock()
        self._on_evicted: Optional[EvictionCallback] = None
        self._codec = codec or get_default_codec()

    @property
    def default_expiration_ns(self) -> int:
        return self._default_expiration

    def _expiration(self, ttl: Duration) -> Optional[int]:
        ttl_ns = to_nanos(ttl)
        if ttl_ns == 0:
            ttl_ns = self._default_expiration
        return expiration_from(ttl_ns)

    def _get_live(self, key: str) -> Optional[Entry]:
        entry = self._items.get(key)
        if entry is None or entry.expired():
            return None
        return entry

    # ==================== 写操作 ====================

    def set(self, key: str, value: Any, ttl: Duration = DEFAULT_EXPIRATION) -> None:
        """
        设置键值，已存在则覆盖

        Args:
            key: 键名
            value: 值
            ttl: 过期时长（秒或timedelta），DEFAULT_EXPIRATION使用默认值，
                 NO_EXPIRATION或非正数表示永不过期
        """
        expiration = self._expiration(ttl)
        with self._lock.write_locked():
            self._items[key] = Entry(value=value, expiration=expiration)

    def set_default(self, key: str, value: Any) -> None:
        """使用默认过期时间设置键值"""
        self.set(key, value, DEFAULT_EXPIRATION)

    def add(self, key: str, value: Any, ttl: Duration = DEFAULT_EXPIRATION) -> None:
        """仅当键不存在或已过期时设置，否则抛出KeyExistsError"""
        expiration = self._expiration(ttl)
        with self._lock.write_locked():
            if self._get_live(key) is not None:
                raise KeyExistsError(key)
            self._items[key] = Entry(value=value, expiration=expiration)

    def replace(self, key: str, value: Any, ttl: Duration = DEFAULT_EXPIRATION) -> None:
        """仅当键存在且未过期时覆盖，否则抛出KeyNotFoundError"""
        expiration = self._expiration(ttl)
        with self._lock.write_locked():
            if self._get_live(key) is None:
                raise KeyNotFoundError(key)
            self._items[key] = Entry(value=value, expiration=expiration)

    def increment(self, key: str, n: Number = 1) -> Number:
        """数值自增，保留原过期时间，返回新值"""
        if not _is_number(n):
            raise NotNumericError(key, type(n))
        with self._lock.write_locked():
            entry = self._get_live(key)
            if entry is None:
                raise KeyNotFoundError(key)
            if not _is_number(entry.value):
                raise NotNumericError(key, type(entry.value))
            try:
                result = entry.value + n
            except TypeError:
                raise NotNumericError(key, type(n))
            self._items[key] = Entry(value=result, expiration=entry.expiration)
            return result

    def decrement(self, key: str, n: Number = 1) -> Number:
        """数值自减，保留原过期时间，返回新值"""
        if not _is_number(n):
            raise NotNumericError(key, type(n))
        return self.increment(key, -n)

    def delete(self, key: str) -> None:
        """删除键（不论是否过期），有回调时在释放锁后通知"""
        with self._lock.write_locked():
            entry = self._items.pop(key, None)
            callback = self._on_evicted

        if entry is not None and callback is not None:
            callback(key, entry.value)

    def delete_expired(self) -> int:
        """
        清理所有过期条目

        单次独占锁内扫描全表并收集被删除的键值，释放锁后逐个通知回调。
        某个回调失败不影响其余通知，全部通知完成后重新抛出第一个异常。

        Returns:
            清理的条目数量
        """
        now = now_ns()
        evicted: List[Tuple[str, Any]] = []

        with self._lock.write_locked():
            for key, entry in self._items.items():
                if entry.expired(now):
                    evicted.append((key, entry.value))
            for key, _ in evicted:
                del self._items[key]
            callback = self._on_evicted

        if evicted:
            self.log_debug("Deleted expired items", count=len(evicted))

        if callback is not None:
            first_error: Optional[BaseException] = None
            for key, value in evicted:
                try:
                    callback(key, value)
                except Exception as e:
                    self.log_exception("Eviction callback failed", key=key)
                    if first_error is None:
                        first_error = e
            if first_error is not None:
                raise first_error

        return len(evicted)

    def flush(self) -> None:
        """清空所有条目，不触发回调"""
        with self._lock.write_locked():
            self._items = {}
        self.log_info("Cache flushed")

    def on_evicted(self, callback: Optional[EvictionCallback]) -> None:
        """设置淘汰回调，None表示移除"""
        with self._lock.write_locked():
            self._on_evicted = callback

    # ==================== 读操作 ====================

    def get(self, key: str) -> Tuple[Any, bool]:
        """获取键值，返回 (值, 是否命中)；过期条目视为不存在但不删除"""
        with self._lock.read_locked():
            entry = self._get_live(key)
        if entry is None:
            return None, False
        return entry.value, True

    def get_with_expiration(self, key: str) -> Tuple[Any, Optional[datetime], bool]:
        """获取键值及过期时间，永不过期的条目过期时间为None"""
        with self._lock.read_locked():
            entry = self._get_live(key)
        if entry is None:
            return None, None, False
        return entry.value, entry.expires_at, True

    def items(self) -> Dict[str, Entry]:
        """返回所有未过期条目的副本"""
        now = now_ns()
        with self._lock.read_locked():
            return {key: entry for key, entry in self._items.items() if not entry.expired(now)}

    def item_count(self) -> int:
        """表中条目总数，包含已过期但尚未清理的条目"""
        with self._lock.read_locked():
            return len(self._items)

    def __len__(self) -> int:
        return self.item_count()

    # ==================== 快照 ====================

    def save(self, stream: IO[bytes]) -> None:
        """
        将整表（包括已过期条目）写入流

        持有共享锁直到写入完成。先在内存中完整编码，编码失败时不写入任何数据。
        """
        with self._lock.read_locked():
            try:
                data = self._codec.encode(self._items)
            except SnapshotError as e:
                self.log_error("Snapshot save failed", error=str(e))
                raise
            stream.write(data)
            count = len(self._items)
        self.log_info("Snapshot saved", items=count, size=len(data))

    def save_file(self, path: PathLike) -> None:
        """保存快照到文件"""
        with open(path, "wb") as f:
            self.save(f)

    def load(self, stream: IO[bytes]) -> int:
        """
        从流中读取快照并合并

        当前没有该键或当前条目已过期时采用快照中的条目，否则保留当前条目。

        Returns:
            合并进表中的条目数量
        """
        data = stream.read()
        try:
            incoming = self._codec.decode(data)
        except SnapshotError as e:
            self.log_error("Snapshot load failed", error=str(e))
            raise

        merged = 0
        now = now_ns()
        with self._lock.write_locked():
            for key, entry in incoming.items():
                current = self._items.get(key)
                if current is None or current.expired(now):
                    self._items[key] = entry
                    merged += 1
        self.log_info("Snapshot loaded", items=len(incoming), merged=merged)
        return merged

    def load_file(self, path: PathLike) -> int:
        """从文件加载快照"""
        with open(path, "rb") as f:
            return self.load(f)
