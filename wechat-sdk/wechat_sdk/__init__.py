"""
WeChat SDK - 主入口包

WeChat SDK 提供调用微信接口所需的 HTTP 基础设施，包括：
- 发送请求（bytes / 字符串 / 数据流 / multipart 表单请求体）
- 读取响应（bytes / 按字符集解码的文本 / JSON）
- 统一的接口错误处理（errcode）

主要组件：
- HTTPClient: 异步 HTTP 客户端
- Response: HTTP 响应封装
- WechatAPIClient: 微信接口客户端
"""

from .config import HTTPClientConfig, WechatAPIConfig, DEFAULT_API_BASE
from .errors import (
    WechatSDKError,
    TransportError,
    RequestTimeoutError,
    StreamError,
    DecodeError,
    ResponseConsumedError,
    InvalidURLError,
)
from .stream.utils import copy_to, read_as_buffer, read_as_string, read_as_json
from .http.async_client import HTTPClient, build_url, request
from .http.response import Response
from .api.request import ApiError, ApiOutcome, WechatAPIClient

__version__ = "0.1.0"

__all__ = [
    # 配置
    "HTTPClientConfig",
    "WechatAPIConfig",
    "DEFAULT_API_BASE",

    # 错误
    "WechatSDKError",
    "TransportError",
    "RequestTimeoutError",
    "StreamError",
    "DecodeError",
    "ResponseConsumedError",
    "InvalidURLError",
    "ApiError",

    # 数据流
    "copy_to",
    "read_as_buffer",
    "read_as_string",
    "read_as_json",

    # HTTP 客户端
    "HTTPClient",
    "Response",
    "build_url",
    "request",

    # 微信接口
    "ApiOutcome",
    "WechatAPIClient",
]
