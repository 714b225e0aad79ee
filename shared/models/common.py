"""
共享数据模型 - 微信接口通用类型
"""

from pydantic import BaseModel, Field


class ApiResult(BaseModel):
    """微信接口响应信封

    所有接口响应都包含 errcode / errmsg，其余字段因接口而异
    """
    errcode: int = Field(0, description="错误码，0 表示成功")
    errmsg: str = Field("", description="错误信息")

    class Config:
        extra = "allow"

    @property
    def ok(self) -> bool:
        return not self.errcode


class Expirable(BaseModel):
    """会过期的数据"""
    expires_in: int = Field(..., description="过期时间，单位秒")
