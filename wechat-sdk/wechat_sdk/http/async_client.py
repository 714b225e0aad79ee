"""
WeChat SDK - 异步 HTTP 客户端
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union
from urllib.parse import urlencode

import aiohttp
from aiohttp import ClientSession, ClientTimeout, FormData, TCPConnector, hdrs
from aiohttp.payload import Payload
from multidict import CIMultiDict
from yarl import URL

from ..config import HTTPClientConfig
from ..errors import InvalidURLError, RequestTimeoutError, StreamError, TransportError
from ..stream.utils import copy_to, is_readable
from .response import Response

logger = logging.getLogger(__name__)

SECURE_SCHEMES = frozenset({"https", "wss"})

Params = Union[Mapping[str, Any], Iterable[Tuple[str, Any]], str, None]


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ",".join(_stringify(item) for item in value)
    return str(value)


def _query_pairs(params: Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]):
    items = params.items() if hasattr(params, "items") else params
    return [(str(name), _stringify(value)) for name, value in items]


def build_url(
    url: Union[str, URL],
    base_url: Union[str, URL, None] = None,
    params: Params = None
) -> URL:
    """拼接请求地址

    Args:
        url: 请求地址，相对地址基于 base_url 解析
        base_url: 根地址，url 为绝对地址时忽略
        params: 查询参数，dict / 键值对列表会逐项追加（保留重复键），
            字符串原样追加

    Returns:
        已编码的 URL
    """
    target = URL(str(url))
    if not target.is_absolute():
        if not base_url:
            raise InvalidURLError(f"Relative URL without base URL: {url}")
        target = URL(str(base_url)).join(target)

    if isinstance(params, str):
        query = params
    elif params is not None:
        query = urlencode(_query_pairs(params))
    else:
        query = ""
    if not query:
        return target

    head, sep, fragment = str(target).partition("#")
    head += ("&" if "?" in head else "?") + query
    return URL(head + sep + fragment, encoded=True)


def form_headers(source: Any) -> Dict[str, str]:
    """取出表单数据流自带的请求头（boundary、长度等）"""
    get_headers = getattr(source, "get_headers", None)
    if callable(get_headers):
        return dict(get_headers())
    if isinstance(source, Payload):
        headers = {hdrs.CONTENT_TYPE: source.content_type}
        if source.size is not None:
            headers[hdrs.CONTENT_LENGTH] = str(source.size)
        return headers
    return {}


class RequestBodyPipe:
    """流式请求体管道

    copy_to 向管道写入数据，aiohttp 从管道读取并发送；
    close() 之后请求体才会结束。
    """

    _EOF = object()

    def __init__(self, maxsize: int = 16):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize)
        self.closed = False

    async def write(self, chunk: bytes):
        if self.closed:
            raise StreamError("Request body is already finished")
        await self._queue.put(bytes(chunk))

    async def close(self):
        if not self.closed:
            self.closed = True
            await self._queue.put(self._EOF)

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        while True:
            chunk = await self._queue.get()
            if chunk is self._EOF:
                return
            yield chunk


class HTTPClient:
    """异步 HTTP 客户端

    负责：
    - 请求地址与查询参数拼接
    - 按协议选择传输方式
    - 发送 bytes / 字符串 / 数据流请求体
    - 收到响应头后返回 Response，响应体由调用方读取

    每次调用都是独立的一次请求，不复用连接。
    """

    def __init__(self, config: Optional[HTTPClientConfig] = None):
        self.config = config or HTTPClientConfig()

    def _open_session(
        self,
        target: URL,
        ssl: Any = None,
        timeout: Optional[float] = None
    ) -> ClientSession:
        if target.scheme in SECURE_SCHEMES:
            connector = TCPConnector(
                ssl=ssl if ssl is not None else self.config.verify_ssl,
                force_close=True
            )
        else:
            connector = TCPConnector(ssl=False, force_close=True)

        if timeout is None:
            timeout = self.config.timeout
        if timeout:
            client_timeout = ClientTimeout(total=None, sock_connect=timeout, sock_read=timeout)
        else:
            client_timeout = ClientTimeout(total=None)

        return ClientSession(connector=connector, timeout=client_timeout)

    def _prepare_body(self, data: Any, data_encoding: Optional[str]) -> Tuple[Optional[bytes], Any]:
        if isinstance(data, (bytes, bytearray, memoryview)):
            return bytes(data), None
        if isinstance(data, str):
            return data.encode(data_encoding or self.config.default_encoding), None
        if isinstance(data, FormData):
            data = data()
        if is_readable(data):
            return None, data
        if data is None:
            return None, None
        raise TypeError(f"Unsupported request body: {type(data).__name__}")

    async def request(
        self,
        url: Union[str, URL],
        *,
        base_url: Union[str, URL, None] = None,
        params: Params = None,
        data: Any = None,
        data_encoding: Optional[str] = None,
        method: str = "GET",
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
        ssl: Any = None,
        **options
    ) -> Response:
        """发送 HTTP 请求

        Args:
            url: 请求地址
            base_url: 根地址
            params: 查询参数（dict、键值对列表或查询字符串）
            data: 请求体，优先级 bytes > str > 数据流 > 无
            data_encoding: 字符串请求体的编码
            method: HTTP 方法
            headers: 请求头
            timeout: 超时时间（秒）
            ssl: TLS 配置，原样传给 aiohttp
            **options: 其它 aiohttp 请求参数

        Returns:
            收到响应头后的 Response
        """
        target = build_url(url, base_url, params)
        body, source = self._prepare_body(data, data_encoding)

        request_headers = CIMultiDict(headers or {})
        if source is not None:
            for name, value in form_headers(source).items():
                request_headers[name] = value

        session = self._open_session(target, ssl, timeout)
        logger.debug(f"HTTP {method} {target}")

        try:
            if source is None:
                raw = await self._send(session, method, target, request_headers, body, options)
                body_task = None
            else:
                raw, body_task = await self._send_stream(
                    session, method, target, request_headers, source, options
                )
        except BaseException:
            await session.close()
            raise

        logger.debug(f"HTTP {method} {target} -> {raw.status}")
        return Response(raw, session=session, body_task=body_task, chunk_size=self.config.chunk_size)

    async def _send(
        self,
        session: ClientSession,
        method: str,
        target: URL,
        headers: CIMultiDict,
        data: Any,
        options: Dict[str, Any]
    ) -> aiohttp.ClientResponse:
        try:
            return await session.request(method, target, headers=headers, data=data, **options)
        except asyncio.TimeoutError as e:
            raise RequestTimeoutError(f"Request timed out: {method} {target}") from e
        except (aiohttp.ClientError, OSError) as e:
            raise TransportError(f"Request failed: {method} {target}: {e}") from e

    async def _pump(self, source: Any, pipe: RequestBodyPipe):
        written = await copy_to(source, pipe, self.config.chunk_size)
        await pipe.close()
        logger.debug(f"Request body finished: {written} bytes")

    async def _send_stream(
        self,
        session: ClientSession,
        method: str,
        target: URL,
        headers: CIMultiDict,
        source: Any,
        options: Dict[str, Any]
    ) -> Tuple[aiohttp.ClientResponse, Optional[asyncio.Task]]:
        pipe = RequestBodyPipe(self.config.body_queue_size)
        copy_task = asyncio.ensure_future(self._pump(source, pipe))
        request_task = asyncio.ensure_future(
            self._send(session, method, target, headers, pipe, options)
        )

        pending = {copy_task, request_task}
        try:
            while True:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                if copy_task in done and copy_task.exception() is not None:
                    raise copy_task.exception()
                if request_task in done:
                    raw = request_task.result()
                    # 响应可能先于请求体结束到达，剩余的复制交给 Response 管理
                    return raw, None if copy_task.done() else copy_task
        except BaseException:
            for task in (copy_task, request_task):
                task.cancel()
            await asyncio.gather(copy_task, request_task, return_exceptions=True)
            raise

    async def get(self, url: Union[str, URL], **kwargs) -> Response:
        """GET 请求"""
        return await self.request(url, method="GET", **kwargs)

    async def post(self, url: Union[str, URL], **kwargs) -> Response:
        """POST 请求"""
        return await self.request(url, method="POST", **kwargs)


async def request(url: Union[str, URL], **kwargs) -> Response:
    """使用默认配置发送一次 HTTP 请求"""
    return await HTTPClient().request(url, **kwargs)
