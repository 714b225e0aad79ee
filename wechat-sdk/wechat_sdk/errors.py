"""
WeChat SDK - 错误类型
"""


class WechatSDKError(Exception):
    """SDK 错误基类"""
    pass


class TransportError(WechatSDKError):
    """传输层错误（连接失败、协议错误等）"""
    pass


class RequestTimeoutError(TransportError):
    """请求超时"""
    pass


class StreamError(WechatSDKError):
    """读取或复制数据流时出错"""
    pass


class DecodeError(WechatSDKError, ValueError):
    """字符集解码或 JSON 解析失败"""
    pass


class ResponseConsumedError(WechatSDKError):
    """响应体已经被读取过"""
    pass


class InvalidURLError(WechatSDKError, ValueError):
    """无法解析的请求地址"""
    pass
