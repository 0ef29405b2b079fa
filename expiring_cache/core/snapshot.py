"""
快照编解码

将整个条目表序列化为msgpack文档：
    {"format": "expiring-cache", "version": 1,
     "items": {key: [value, expiration_ns 或 nil]}}

msgpack原生类型之外的值以扩展类型写入以保留Python类型信息。
内置支持 tuple/set/frozenset/datetime/date/timedelta/Decimal/complex，
其他类型需要通过 register_type 显式注册。
"""

import threading
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import msgpack

from expiring_cache.core.entry import Entry
from expiring_cache.core.exceptions import (
    DuplicateTypeCodeError,
    SnapshotDecodeError,
    SnapshotEncodeError,
)
from expiring_cache.utils.logger import LoggerMixin

SNAPSHOT_FORMAT = "expiring-cache"
SNAPSHOT_VERSION = 1

# 0-15 保留给内置扩展类型
MIN_USER_TYPE_CODE = 16
MAX_USER_TYPE_CODE = 127

Encoder = Callable[[Any], Any]
Decoder = Callable[[Any], Any]


def _decode_datetime(payload: str) -> datetime:
    return datetime.fromisoformat(payload)


def _decode_date(payload: str) -> date:
    return date.fromisoformat(payload)


_BUILTIN_TYPES: Tuple[Tuple[type, int, Encoder, Decoder], ...] = (
    (tuple, 1, list, tuple),
    (set, 2, list, set),
    (frozenset, 3, list, frozenset),
    (datetime, 4, datetime.isoformat, _decode_datetime),
    (date, 5, date.isoformat, _decode_date),
    (timedelta, 6, lambda td: [td.days, td.seconds, td.microseconds],
     lambda p: timedelta(days=p[0], seconds=p[1], microseconds=p[2])),
    (Decimal, 7, str, Decimal),
    (complex, 8, lambda c: [c.real, c.imag], lambda p: complex(p[0], p[1])),
)


class SnapshotCodec(LoggerMixin):
    """
    快照编解码器

    类型按精确类型匹配（子类需要单独注册），扩展负载本身递归编码，
    因此注册类型的encode可以返回包含其他受支持类型的结构。
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._by_type: Dict[type, Tuple[int, Encoder]] = {}
        self._by_code: Dict[int, Decoder] = {}

        for cls, code, encode, decode in _BUILTIN_TYPES:
            self._register(cls, code, encode, decode)

    def _register(self, cls: type, code: int, encode: Encoder, decode: Decoder) -> None:
        with self._lock:
            if code in self._by_code:
                raise DuplicateTypeCodeError(f"extension type code {code} already registered")
            if cls in self._by_type:
                raise DuplicateTypeCodeError(f"type {cls.__name__} already registered")
            self._by_type[cls] = (code, encode)
            self._by_code[code] = decode

    def register_type(self, cls: type, code: int, encode: Encoder, decode: Decoder) -> None:
        """
        注册自定义值类型

        Args:
            cls: 值的精确类型
            code: 扩展类型编码，16-127
            encode: 将值转换为可序列化结构
            decode: 由该结构还原值
        """
        if not MIN_USER_TYPE_CODE <= code <= MAX_USER_TYPE_CODE:
            raise ValueError(
                f"type code must be between {MIN_USER_TYPE_CODE} and {MAX_USER_TYPE_CODE}"
            )
        self._register(cls, code, encode, decode)
        self.log_debug("Snapshot type registered", type=cls.__name__, code=code)

    def is_registered(self, cls: type) -> bool:
        return cls in self._by_type

    # ==================== 编码 ====================

    def _pack(self, obj: Any) -> bytes:
        return msgpack.packb(obj, default=self._default, use_bin_type=True, strict_types=True)

    def _default(self, obj: Any) -> msgpack.ExtType:
        registered = self._by_type.get(type(obj))
        if registered is None:
            raise TypeError(f"can not serialize {type(obj).__name__!r} object")
        code, encode = registered
        try:
            payload = encode(obj)
        except Exception as e:
            raise SnapshotEncodeError(
                f"encoder for {type(obj).__name__!r} failed: {e!r}"
            ) from e
        return msgpack.ExtType(code, self._pack(payload))

    def encode(self, table: Mapping[str, Entry]) -> bytes:
        """编码条目表，遇到不支持的值类型抛出SnapshotEncodeError"""
        document = {
            "format": SNAPSHOT_FORMAT,
            "version": SNAPSHOT_VERSION,
            "items": {key: [entry.value, entry.expiration] for key, entry in table.items()},
        }
        try:
            return self._pack(document)
        except SnapshotEncodeError:
            raise
        except Exception as e:
            raise SnapshotEncodeError(f"Snapshot encoding failed: {e}") from e

    # ==================== 解码 ====================

    def _ext_hook(self, code: int, data: bytes) -> Any:
        decode = self._by_code.get(code)
        if decode is None:
            raise SnapshotDecodeError(f"unknown extension type code {code}")
        payload = self._unpack(data)
        try:
            return decode(payload)
        except Exception as e:
            raise SnapshotDecodeError(f"decoder for type code {code} failed: {e!r}") from e

    def _unpack(self, data: bytes) -> Any:
        return msgpack.unpackb(data, raw=False, ext_hook=self._ext_hook, strict_map_key=False)

    def decode(self, data: bytes) -> Dict[str, Entry]:
        """解码快照，数据损坏或格式不符时抛出SnapshotDecodeError"""
        try:
            document = self._unpack(data)
        except SnapshotDecodeError:
            raise
        except Exception as e:
            raise SnapshotDecodeError(f"Snapshot decoding failed: {e}") from e

        if not isinstance(document, dict) or document.get("format") != SNAPSHOT_FORMAT:
            raise SnapshotDecodeError("not an expiring-cache snapshot")
        if document.get("version") != SNAPSHOT_VERSION:
            raise SnapshotDecodeError(f"unsupported snapshot version: {document.get('version')!r}")

        raw_items = document.get("items")
        if not isinstance(raw_items, dict):
            raise SnapshotDecodeError("snapshot items must be a map")

        table: Dict[str, Entry] = {}
        for key, item in raw_items.items():
            if not isinstance(key, str) or not isinstance(item, list) or len(item) != 2:
                raise SnapshotDecodeError(f"malformed snapshot item: {key!r}")
            value, expiration = item
            if expiration is not None and (isinstance(expiration, bool) or not isinstance(expiration, int)):
                raise SnapshotDecodeError(f"malformed expiration for {key!r}")
            table[key] = Entry(value=value, expiration=expiration)
        return table


# 全局默认编解码器
_default_codec: Optional[SnapshotCodec] = None
_default_codec_lock = threading.Lock()


def get_default_codec() -> SnapshotCodec:
    """获取全局默认编解码器"""
    global _default_codec
    with _default_codec_lock:
        if _default_codec is None:
            _default_codec = SnapshotCodec()
        return _default_codec


def register_type(cls: type, code: int, encode: Encoder, decode: Decoder) -> None:
    """在默认编解码器上注册自定义值类型"""
    get_default_codec().register_type(cls, code, encode, decode)
