"""
过期缓存使用示例

展示如何把Cache用作会话缓存：
- 带TTL的会话数据
- 淘汰回调记录过期会话
- 后台清理线程
- 退出时保存快照，启动时合并加载
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from expiring_cache import NO_EXPIRATION, Cache, KeyExistsError, register_type
from expiring_cache.config import settings
from expiring_cache.utils.logger import get_logger, setup_logging

setup_logging(settings)
logger = get_logger(__name__)

SNAPSHOT_FILE = Path("./data/sessions.snapshot")


@dataclass(frozen=True)
class Session:
    """会话数据"""
    user_id: str
    roles: tuple
    created_at: datetime


register_type(
    Session, 16,
    lambda s: [s.user_id, s.roles, s.created_at],
    lambda payload: Session(*payload),
)


def main() -> None:
    SNAPSHOT_FILE.parent.mkdir(parents=True, exist_ok=True)

    with Cache(default_expiration=2, cleanup_interval=0.5, snapshot_path=SNAPSHOT_FILE) as cache:
        cache.on_evicted(lambda key, value: logger.info("Session expired", key=key))

        if SNAPSHOT_FILE.exists():
            merged = cache.load_file()
            logger.info("Restored sessions", merged=merged)

        session = Session("alice", ("admin", "trader"), datetime.now(timezone.utc))
        try:
            cache.add("session:alice", session)
        except KeyExistsError:
            logger.info("Session already active", key="session:alice")

        cache.set("session:bob", Session("bob", ("viewer",), datetime.now(timezone.utc)), 0.5)
        cache.set("request_count", 0, NO_EXPIRATION)
        for _ in range(5):
            cache.increment("request_count")

        value, expires_at, found = cache.get_with_expiration("session:alice")
        logger.info("Lookup", found=found, user=value.user_id if found else None, expires_at=str(expires_at))

        time.sleep(1.5)
        logger.info("After sleep", live=len(cache.items()), total=cache.item_count())

        cache.save_file()
        logger.info("Snapshot written", path=str(SNAPSHOT_FILE))


if __name__ == "__main__":
    main()
