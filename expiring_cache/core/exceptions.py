"""
缓存异常定义
"""


class CacheError(Exception):
    """缓存错误基类"""
    pass


class KeyExistsError(CacheError, KeyError):
    """键已存在且未过期（add失败）"""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"item {key} already exists")

    def __str__(self) -> str:
        return self.args[0]


class KeyNotFoundError(CacheError, KeyError):
    """键不存在或已过期（replace/increment失败）"""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"item {key} doesn't exist")

    def __str__(self) -> str:
        return self.args[0]


class NotNumericError(CacheError, TypeError):
    """值不是数字，无法自增/自减"""

    def __init__(self, key: str, value_type: type):
        self.key = key
        self.value_type = value_type
        super().__init__(f"value for {key} is not numeric: {value_type.__name__}")


class SnapshotError(CacheError):
    """快照编解码错误基类"""
    pass


class SnapshotEncodeError(SnapshotError):
    """快照编码失败（值类型不受支持）"""
    pass


class SnapshotDecodeError(SnapshotError):
    """快照解码失败（数据损坏或格式不符）"""
    pass


class DuplicateTypeCodeError(CacheError, ValueError):
    """扩展类型编码重复注册"""
    pass
