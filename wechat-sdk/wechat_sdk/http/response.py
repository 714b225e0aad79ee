"""
WeChat SDK - HTTP 响应封装
"""

import asyncio
import logging
import re
from typing import Any, Callable, Optional

from aiohttp import ClientResponse, ClientSession
from multidict import CIMultiDictProxy
from yarl import URL

from ..errors import DecodeError, ResponseConsumedError
from ..stream.utils import (
    DEFAULT_CHUNK_SIZE,
    is_raw_encoding,
    parse_json,
    read_as_buffer,
    read_as_string,
)

logger = logging.getLogger(__name__)

DEFAULT_CHARSET = "utf-8"

CHARSET_PATTERN = re.compile(r"charset=([A-Za-z0-9_\-]+)", re.IGNORECASE)


def resolve_charset(content_type: Optional[str], encoding: Optional[str] = None) -> str:
    """确定响应体的字符集

    优先使用显式指定的编码，其次是 Content-Type 中的 charset，默认 utf-8。
    """
    if encoding:
        return encoding
    if content_type:
        match = CHARSET_PATTERN.search(content_type)
        if match:
            return match.group(1)
    return DEFAULT_CHARSET


def transcode(buffer: bytes, charset: str) -> str:
    """按命名字符集解码，并去除开头的 BOM"""
    try:
        text = buffer.decode(charset or DEFAULT_CHARSET)
    except LookupError as e:
        raise DecodeError(f"Unknown charset: {charset}") from e
    except UnicodeDecodeError as e:
        raise DecodeError(f"Invalid {charset} byte sequence: {e}") from e
    if text.startswith("\ufeff"):
        text = text[1:]
    return text


class Response:
    """HTTP 响应体

    持有原始的响应流，提供三种读取方式：
    - read_as_buffer: 原始字节
    - read_as_string: 按字符集解码后的文本
    - read_as_json: JSON 解析后的数据

    响应体只能读取一次，再次读取会抛出 ResponseConsumedError。
    读取结束后自动释放连接。
    """

    def __init__(
        self,
        raw: ClientResponse,
        session: Optional[ClientSession] = None,
        body_task: Optional[asyncio.Task] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE
    ):
        self._raw = raw
        self._session = session
        self._body_task = body_task
        self._chunk_size = chunk_size
        self._consumed = False
        self._released = False

    @property
    def status(self) -> int:
        return self._raw.status

    @property
    def reason(self) -> Optional[str]:
        return self._raw.reason

    @property
    def headers(self) -> CIMultiDictProxy:
        return self._raw.headers

    @property
    def url(self) -> URL:
        return self._raw.url

    @property
    def ok(self) -> bool:
        """请求是否成功"""
        return 200 <= self.status < 300

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("Content-Type")

    @property
    def charset(self) -> str:
        """Content-Type 声明的字符集，缺省为 utf-8"""
        return resolve_charset(self.content_type)

    @property
    def consumed(self) -> bool:
        return self._consumed

    @property
    def released(self) -> bool:
        """连接与会话是否已释放"""
        return self._released

    def _consume(self):
        if self._consumed:
            raise ResponseConsumedError("Response body has already been read")
        self._consumed = True

    async def _materialize(self, reader: Callable, *args) -> Any:
        self._consume()
        try:
            return await reader(self._raw.content, *args, chunk_size=self._chunk_size)
        finally:
            await self.release()

    async def read_as_buffer(self) -> bytes:
        """读取原始响应体"""
        return await self._materialize(read_as_buffer)

    async def read_as_string(self, encoding: Optional[str] = None) -> str:
        """读取响应体文本

        Args:
            encoding: 指定编码，不指定时使用 Content-Type 中的 charset

        Returns:
            解码后的文本
        """
        charset = resolve_charset(self.content_type, encoding)
        if is_raw_encoding(charset):
            return await self._materialize(read_as_string, charset)

        buffer = await self.read_as_buffer()
        return transcode(buffer, charset)

    async def read_as_json(
        self,
        encoding: Optional[str] = None,
        loads: Optional[Callable[[str], Any]] = None
    ) -> Any:
        """读取响应体并解析为 JSON，不做结构校验"""
        return parse_json(await self.read_as_string(encoding), loads)

    async def release(self):
        """释放连接，未读取的响应体将被丢弃"""
        if self._released:
            return
        self._released = True

        if self._body_task is not None and not self._body_task.done():
            self._body_task.cancel()
            await asyncio.gather(self._body_task, return_exceptions=True)

        self._raw.release()
        if self._session is not None:
            await self._session.close()
        logger.debug(f"Released response {self.status} {self.url}")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.release()

    def __repr__(self) -> str:
        return f"<Response [{self.status} {self.reason}] {self.url}>"
