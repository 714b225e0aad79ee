"""
WeChat SDK - Stream 模块

负责字节流的复制与读取。
"""

from .utils import (
    copy_to,
    read_as_buffer,
    read_as_string,
    read_as_json,
    decode_raw,
    is_raw_encoding,
    is_readable,
    parse_json,
    RAW_ENCODINGS,
)

__all__ = [
    "copy_to",
    "read_as_buffer",
    "read_as_string",
    "read_as_json",
    "decode_raw",
    "is_raw_encoding",
    "is_readable",
    "parse_json",
    "RAW_ENCODINGS",
]
