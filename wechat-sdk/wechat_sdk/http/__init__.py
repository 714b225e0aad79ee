"""
WeChat SDK - HTTP 模块

负责发送 HTTP 请求与读取响应体。
"""

from .async_client import (
    HTTPClient,
    RequestBodyPipe,
    build_url,
    form_headers,
    request,
)
from .response import Response, resolve_charset, transcode

__all__ = [
    "HTTPClient",
    "RequestBodyPipe",
    "Response",
    "build_url",
    "form_headers",
    "request",
    "resolve_charset",
    "transcode",
]
