"""
WeChat SDK - 数据流工具

把字节流读取为 bytes / str / JSON，或把一个流的数据复制到另一个流。

支持的数据源：
- aiohttp.StreamReader（响应体）
- 带有 read(n) 方法的对象（asyncio.StreamReader、io.BytesIO、文件等）
- 产出 bytes 的异步迭代器
- aiohttp.payload.Payload（包括 MultipartWriter），由其自身写入目标流
"""

import base64
import inspect
import io
import json
import logging
from typing import Any, AsyncIterator, Callable, Dict, Optional

from aiohttp import StreamReader
from aiohttp.payload import Payload

from ..errors import DecodeError, StreamError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


def _base64url(buffer: bytes) -> str:
    return base64.urlsafe_b64encode(buffer).rstrip(b"=").decode("ascii")


# 无需字符集转换、可以直接由字节得到文本的编码
RAW_ENCODINGS: Dict[str, Callable[[bytes], str]] = {
    "ascii": lambda buffer: bytes(byte & 0x7F for byte in buffer).decode("ascii"),
    "utf8": lambda buffer: buffer.decode("utf-8", errors="replace"),
    "utf-8": lambda buffer: buffer.decode("utf-8", errors="replace"),
    "utf16le": lambda buffer: buffer.decode("utf-16-le", errors="replace"),
    "ucs2": lambda buffer: buffer.decode("utf-16-le", errors="replace"),
    "ucs-2": lambda buffer: buffer.decode("utf-16-le", errors="replace"),
    "base64": lambda buffer: base64.b64encode(buffer).decode("ascii"),
    "base64url": _base64url,
    "latin1": lambda buffer: buffer.decode("latin-1"),
    "binary": lambda buffer: buffer.decode("latin-1"),
    "hex": lambda buffer: buffer.hex(),
}


def is_raw_encoding(encoding: Optional[str]) -> bool:
    """判断编码名是否属于直接解码的编码，区分大小写"""
    return bool(encoding) and encoding in RAW_ENCODINGS


def decode_raw(buffer: bytes, encoding: str = "utf-8") -> str:
    """按直接编码把字节转换为文本，不去除 BOM"""
    try:
        decoder = RAW_ENCODINGS[encoding]
    except KeyError:
        raise DecodeError(f"Unknown raw encoding: {encoding}") from None
    return decoder(bytes(buffer))


def _reject_constant(name: str):
    raise ValueError(f"Invalid JSON constant: {name}")


def parse_json(text: str, loads: Optional[Callable[[str], Any]] = None) -> Any:
    """严格解析 JSON 文本，NaN / Infinity 视为非法"""
    try:
        if loads is None:
            return json.loads(text, parse_constant=_reject_constant)
        return loads(text)
    except ValueError as e:
        raise DecodeError(f"Invalid JSON: {e}") from e


def is_readable(source: Any) -> bool:
    """判断对象能否作为数据源"""
    if isinstance(source, (str, bytes, bytearray, memoryview)):
        return False
    if isinstance(source, (Payload, StreamReader)):
        return True
    return callable(getattr(source, "read", None)) or hasattr(source, "__aiter__")


def _as_bytes(chunk: Any) -> bytes:
    if isinstance(chunk, (bytes, bytearray, memoryview)):
        return bytes(chunk)
    raise TypeError(f"Stream produced {type(chunk).__name__}, expected bytes")


async def iter_chunks(source: Any, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
    """按到达顺序逐块读取数据源"""
    if isinstance(source, StreamReader):
        async for chunk in source.iter_chunked(chunk_size):
            yield chunk
        return

    read = getattr(source, "read", None)
    if callable(read):
        while True:
            chunk = read(chunk_size)
            if inspect.isawaitable(chunk):
                chunk = await chunk
            if not chunk:
                return
            yield _as_bytes(chunk)

    async for chunk in source:
        yield _as_bytes(chunk)


class _Writer:
    """统一同步 / 异步写入接口的目标流包装"""

    def __init__(self, destination: Any):
        self._destination = destination
        self._drain = getattr(destination, "drain", None)
        self.written = 0

    async def write(self, chunk: bytes):
        result = self._destination.write(chunk)
        if inspect.isawaitable(result):
            await result
        if callable(self._drain):
            drained = self._drain()
            if inspect.isawaitable(drained):
                await drained
        self.written += len(chunk)


async def copy_to(source: Any, destination: Any, chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
    """将数据从一个流复制到另一个流

    数据源读取完毕即返回，目标流不会被关闭，由调用方决定何时结束。
    任意一侧出错都会以 StreamError 抛出，之后不再读取数据。

    Args:
        source: 源流
        destination: 目标流，需提供 write 方法
        chunk_size: 每次读取的块大小

    Returns:
        写入的字节数
    """
    if not is_readable(source):
        raise TypeError(f"Unsupported stream source: {type(source).__name__}")
    if not callable(getattr(destination, "write", None)):
        raise TypeError(f"Unsupported stream destination: {type(destination).__name__}")

    writer = _Writer(destination)
    try:
        if isinstance(source, Payload):
            await source.write(writer)
        else:
            async for chunk in iter_chunks(source, chunk_size):
                await writer.write(chunk)
    except StreamError:
        raise
    except Exception as e:
        raise StreamError(f"Stream copy failed after {writer.written} bytes: {e}") from e

    logger.debug(f"Copied {writer.written} bytes from {type(source).__name__}")
    return writer.written


async def read_as_buffer(source: Any, chunk_size: int = DEFAULT_CHUNK_SIZE) -> bytes:
    """读取流内的数据，返回 bytes"""
    buffer = io.BytesIO()
    await copy_to(source, buffer, chunk_size)
    return buffer.getvalue()


async def read_as_string(
    source: Any,
    encoding: str = "utf-8",
    chunk_size: int = DEFAULT_CHUNK_SIZE
) -> str:
    """读取流内的数据，按直接编码返回字符串"""
    if not is_raw_encoding(encoding):
        raise DecodeError(f"Unknown raw encoding: {encoding}")
    return decode_raw(await read_as_buffer(source, chunk_size), encoding)


async def read_as_json(
    source: Any,
    encoding: str = "utf-8",
    loads: Optional[Callable[[str], Any]] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE
) -> Any:
    """读取流内的数据，返回 JSON 解析后的数据"""
    return parse_json(await read_as_string(source, encoding, chunk_size), loads)
