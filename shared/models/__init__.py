"""
共享数据模型包
"""

from .common import ApiResult, Expirable

__all__ = [
    "ApiResult",
    "Expirable",
]
