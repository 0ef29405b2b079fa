"""
缓存条目与时长处理

过期时间以纳秒级Unix时间戳（time.time_ns）保存，None表示永不过期。
"""

import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

Duration = Union[int, float, timedelta]

# 哨兵值：使用存储的默认过期时间
DEFAULT_EXPIRATION: int = 0
# 哨兵值：永不过期
NO_EXPIRATION: int = -1

NANOS_PER_SECOND = 1_000_000_000


def now_ns() -> int:
    """当前时间（纳秒）"""
    return time.time_ns()


def to_nanos(duration: Duration) -> int:
    """将秒数或timedelta转换为纳秒"""
    if isinstance(duration, timedelta):
        return (duration // timedelta(microseconds=1)) * 1000
    if isinstance(duration, bool) or not isinstance(duration, (int, float)):
        raise TypeError(f"duration must be seconds or timedelta, got {type(duration).__name__}")
    nanos = int(duration * NANOS_PER_SECOND)
    # 亚纳秒时长不能截断为0，0是“使用默认值”的哨兵
    if nanos == 0 and duration > 0:
        return 1
    if nanos == 0 and duration < 0:
        return -1
    return nanos


def expiration_from(ttl_ns: int, now: Optional[int] = None) -> Optional[int]:
    """根据TTL计算绝对过期时间，非正数表示不过期"""
    if ttl_ns <= 0:
        return None
    return (now if now is not None else now_ns()) + ttl_ns


def ns_to_datetime(ns: int) -> datetime:
    """
    纳秒时间戳转UTC datetime

    datetime只有微秒精度，向上取整，返回值不会早于真实过期时间。
    """
    seconds, remainder = divmod(ns, NANOS_PER_SECOND)
    micros = -(-remainder // 1000)
    return datetime.fromtimestamp(seconds, tz=timezone.utc) + timedelta(microseconds=micros)


@dataclass(frozen=True)
class Entry:
    """缓存条目"""
    value: Any
    expiration: Optional[int] = None  # 纳秒时间戳，None表示永不过期

    def expired(self, now: Optional[int] = None) -> bool:
        """检查是否过期"""
        if self.expiration is None:
            return False
        current = now if now is not None else now_ns()
        return current >= self.expiration

    @property
    def expires_at(self) -> Optional[datetime]:
        if self.expiration is None:
            return None
        return ns_to_datetime(self.expiration)
