"""
条目与时长转换测试
"""

import time
from datetime import datetime, timedelta, timezone

import pytest

from expiring_cache.core.entry import (
    Entry,
    expiration_from,
    now_ns,
    ns_to_datetime,
    to_nanos,
)


class TestEntry:
    """Entry 测试"""

    def test_entry_without_expiration(self):
        entry = Entry(value="test")
        assert entry.expiration is None
        assert not entry.expired()
        assert entry.expires_at is None

    def test_entry_expiration(self):
        """测试过期判断：当前时间严格早于过期时间才算有效"""
        current = now_ns()

        assert not Entry(value="x", expiration=current + 1).expired(current)
        assert Entry(value="x", expiration=current).expired(current)
        assert Entry(value="x", expiration=current - 1).expired(current)

    def test_entry_is_frozen(self):
        entry = Entry(value=1)
        with pytest.raises(AttributeError):
            entry.value = 2

    def test_expires_at(self):
        """微秒以下的部分向上取整"""
        base = datetime(2030, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        ns = int(base.timestamp()) * 1_000_000_000 + 678901 * 1000

        assert Entry(value=1, expiration=ns).expires_at == base.replace(microsecond=678901)
        assert Entry(value=1, expiration=ns + 123).expires_at == base.replace(microsecond=678902)

    def test_expires_at_never_before_expiration(self):
        """返回的过期时间不早于真实过期时间"""
        for ns in (1_700_000_000_000_000_001, 1_700_000_000_999_999_999, 1_700_000_000_000_000_000):
            expires_at = Entry(value=1, expiration=ns).expires_at
            delta = expires_at - ns_to_datetime(0)
            as_ns = (delta // timedelta(microseconds=1)) * 1000
            assert 0 <= as_ns - ns < 1000


class TestDurations:
    """时长转换测试"""

    def test_seconds(self):
        assert to_nanos(1) == 1_000_000_000
        assert to_nanos(0.5) == 500_000_000
        assert to_nanos(0) == 0
        assert to_nanos(-1) == -1_000_000_000

    def test_sub_nanosecond_not_truncated_to_zero(self):
        """极小的正数时长至少为1纳秒，负数至少为-1纳秒"""
        assert to_nanos(1e-10) == 1
        assert to_nanos(-1e-10) == -1
        assert to_nanos(0.0) == 0

    def test_timedelta(self):
        assert to_nanos(timedelta(milliseconds=10)) == 10_000_000
        assert to_nanos(timedelta(days=1)) == 86_400 * 1_000_000_000

    def test_invalid_duration(self):
        with pytest.raises(TypeError):
            to_nanos("10")
        with pytest.raises(TypeError):
            to_nanos(True)

    def test_expiration_from(self):
        assert expiration_from(0) is None
        assert expiration_from(-5) is None
        assert expiration_from(10, now=100) == 110

        before = time.time_ns()
        result = expiration_from(1_000_000_000)
        assert before + 1_000_000_000 <= result <= time.time_ns() + 1_000_000_000

    def test_ns_to_datetime(self):
        assert ns_to_datetime(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)
