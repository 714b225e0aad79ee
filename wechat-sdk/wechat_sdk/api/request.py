"""
WeChat SDK - 微信接口调用封装

统一处理微信接口的请求序列化、响应解析和 errcode 错误。
"""

import json
import logging
from typing import Any, Dict, Mapping, Optional, Type, TypeVar, Union

from yarl import URL

from shared.models import ApiResult

from ..config import WechatAPIConfig
from ..errors import WechatSDKError
from ..http.async_client import HTTPClient, Params
from ..http.response import Response

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json; charset=utf-8"

T = TypeVar("T", bound=ApiResult)


class ApiError(WechatSDKError):
    """微信接口返回的业务错误（errcode 非零）"""

    def __init__(
        self,
        result: Dict[str, Any],
        status_field: str = "errcode",
        message_field: str = "errmsg"
    ):
        super().__init__(json.dumps(result, ensure_ascii=False))
        self.result = result
        self.errcode = result.get(status_field)
        self.errmsg = result.get(message_field)


class ApiOutcome:
    """一次接口调用的结果：成功，或带有 ApiError 的失败"""

    __slots__ = ("result", "error")

    def __init__(self, result: Any, error: Optional[ApiError] = None):
        self.result = result
        self.error = error

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self, throw_on_error: bool = True) -> Any:
        if self.error is not None and throw_on_error:
            raise self.error
        return self.result


class WechatAPIClient:
    """微信接口客户端

    负责：
    - 请求数据序列化为 JSON
    - 响应解析为 JSON
    - errcode 非零时抛出 ApiError（可通过 throw_on_error=False 关闭）

    Usage:
        client = WechatAPIClient()
        result = await client.request(
            "/cgi-bin/component/api_component_token",
            {"component_appid": appid, ...}
        )
    """

    def __init__(
        self,
        config: Optional[WechatAPIConfig] = None,
        http_client: Optional[HTTPClient] = None
    ):
        self.config = config or WechatAPIConfig()
        self.http = http_client or HTTPClient(self.config.http)

    def classify(self, result: Any) -> ApiOutcome:
        """根据状态码字段判断调用是否成功"""
        if isinstance(result, dict) and result.get(self.config.status_field):
            return ApiOutcome(
                result,
                ApiError(result, self.config.status_field, self.config.message_field)
            )
        return ApiOutcome(result)

    async def request(
        self,
        url: Union[str, URL],
        data: Any = None,
        *,
        params: Params = None,
        throw_on_error: Optional[bool] = None,
        base_url: Union[str, URL, None] = None,
        method: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        result_model: Optional[Type[T]] = None,
        **options
    ) -> Any:
        """调用微信接口

        Args:
            url: 接口路径
            data: 请求数据，序列化为 JSON 发送
            params: 查询参数
            throw_on_error: errcode 非零时是否抛出异常，默认使用配置
            base_url: 接口根地址，默认使用配置
            method: HTTP 方法，默认有请求数据时为 POST，否则为 GET
            headers: 请求头，Content-Type 会被强制为 JSON
            result_model: 成功时用于转换结果的模型
            **options: 其它传给 HTTPClient.request 的参数

        Returns:
            解析后的 JSON，或 result_model 实例
        """
        request_headers = {
            name: value for name, value in (headers or {}).items()
            if name.lower() != "content-type"
        }

        body = None
        if isinstance(data, (Mapping, list, tuple)):
            body = json.dumps(data, ensure_ascii=False, separators=(",", ":"))
            request_headers["Content-Type"] = JSON_CONTENT_TYPE
        elif data is not None:
            raise TypeError(f"Unsupported API payload: {type(data).__name__}")

        response = await self.http.request(
            url,
            base_url=base_url or self.config.base_url,
            params=params,
            data=body,
            method=method or ("POST" if body is not None else "GET"),
            headers=request_headers,
            **options
        )
        outcome = self.classify(await response.read_as_json())

        if throw_on_error is None:
            throw_on_error = self.config.throw_on_error
        if not outcome.ok and not throw_on_error:
            logger.debug(f"Wechat API {url} returned error: {outcome.error}")

        result = outcome.unwrap(throw_on_error)
        if result_model is not None and outcome.ok:
            return result_model.model_validate(result)
        return result

    async def raw(
        self,
        url: Union[str, URL],
        *,
        base_url: Union[str, URL, None] = None,
        **options
    ) -> Response:
        """以接口根地址发送原始请求，不解析响应"""
        return await self.http.request(url, base_url=base_url or self.config.base_url, **options)
