"""
WeChat SDK - API 模块

负责微信接口的统一调用约定。
"""

from .request import ApiError, ApiOutcome, WechatAPIClient, JSON_CONTENT_TYPE

__all__ = [
    "ApiError",
    "ApiOutcome",
    "WechatAPIClient",
    "JSON_CONTENT_TYPE",
]
