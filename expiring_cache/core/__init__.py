"""
过期缓存核心模块

提供进程内带过期时间的键值缓存，支持：
- 绝对过期时间与默认TTL
- 后台定期清理过期条目
- 淘汰回调（释放锁后调用）
- 整表快照保存与合并加载
"""

from .cache import Cache, new, new_from
from .entry import DEFAULT_EXPIRATION, NO_EXPIRATION, Entry
from .exceptions import (
    CacheError,
    DuplicateTypeCodeError,
    KeyExistsError,
    KeyNotFoundError,
    NotNumericError,
    SnapshotDecodeError,
    SnapshotEncodeError,
    SnapshotError,
)
from .janitor import Janitor
from .snapshot import SnapshotCodec, get_default_codec, register_type
from .store import ExpiringStore

__all__ = [
    "Cache",
    "new",
    "new_from",
    "Entry",
    "DEFAULT_EXPIRATION",
    "NO_EXPIRATION",
    "ExpiringStore",
    "Janitor",
    "SnapshotCodec",
    "get_default_codec",
    "register_type",
    "CacheError",
    "KeyExistsError",
    "KeyNotFoundError",
    "NotNumericError",
    "SnapshotError",
    "SnapshotEncodeError",
    "SnapshotDecodeError",
    "DuplicateTypeCodeError",
]
