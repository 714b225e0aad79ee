"""
WeChat SDK - 配置管理
"""

from pydantic import BaseModel, Field
from typing import Optional


DEFAULT_API_BASE = "https://api.weixin.qq.com"


class HTTPClientConfig(BaseModel):
    """HTTP 客户端配置"""
    timeout: Optional[float] = Field(None, description="请求超时（秒），None 表示不限制")
    default_encoding: str = Field("utf-8", description="字符串请求体的默认编码")
    verify_ssl: bool = Field(True, description="是否校验 TLS 证书")

    # 数据流
    chunk_size: int = Field(64 * 1024, description="读取数据流的块大小")
    body_queue_size: int = Field(16, description="流式请求体的缓冲块数")


class WechatAPIConfig(BaseModel):
    """微信接口调用配置"""
    base_url: str = Field(DEFAULT_API_BASE, description="接口根地址")
    throw_on_error: bool = Field(True, description="errcode 非零时是否抛出 ApiError")

    # 响应信封字段
    status_field: str = Field("errcode", description="状态码字段名")
    message_field: str = Field("errmsg", description="错误信息字段名")

    http: HTTPClientConfig = Field(default_factory=HTTPClientConfig)
