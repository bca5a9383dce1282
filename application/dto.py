"""
数据传输对象（DTO）- 应用层与表现层之间的数据传输
"""
from pydantic import BaseModel, Field, field_serializer, field_validator, ConfigDict
from typing import Optional
from datetime import datetime, timezone

from domain.temp_log.entity import TempLog
from domain.user.entity import User


DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class DTOBase(BaseModel):
    """Base DTO: unify datetime serialization to UTC-Z for all subclasses."""

    # 在字段层处理：json 模式下 handler 已把 datetime 转成字符串，整模型包装时拿不到原值
    @field_serializer("*", mode="wrap")
    def _serialize_datetimes(self, value, handler):
        if isinstance(value, datetime):
            ts = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
            return ts.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
        return handler(value)


class Identity(DTOBase):
    """由访问令牌解析出的调用方身份"""
    user_id: int
    username: str

    model_config = ConfigDict(frozen=True)


class CreatedDTO(DTOBase):
    """写入成功后返回存储分配的主键"""
    pk: int


class TempLogCreateDTO(DTOBase):
    """温度日志创建DTO"""
    temperature: float = Field(..., ge=-273.15, description="温度（摄氏度）")
    humidity: Optional[float] = Field(None, ge=0, le=100, description="相对湿度（%）")
    sensor: Optional[str] = Field(None, max_length=64, description="传感器标识")

    model_config = ConfigDict(extra="forbid")


class TempLogResponseDTO(DTOBase):
    id: int
    temperature: float
    humidity: Optional[float]
    sensor: Optional[str]
    created_by: Optional[int]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_entity(cls, log: TempLog) -> "TempLogResponseDTO":
        return cls.model_validate(log)


class RegisterDTO(DTOBase):
    """用户注册DTO"""
    username: str = Field(..., min_length=3, max_length=50,
                          description="用户名，3-50个字符")
    password: str = Field(..., min_length=8, description="密码，至少8位")

    @field_validator('username')
    def validate_username(cls, v):
        import re
        if not re.match(r'^[a-zA-Z0-9_]+$', v):
            raise ValueError('username may only contain letters, digits and underscores')
        return v


class LoginDTO(DTOBase):
    """登录DTO"""
    username: str = Field(..., description="用户名")
    password: str = Field(..., description="密码")


class TokenDTO(DTOBase):
    """令牌DTO"""
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # 秒


class UserResponseDTO(DTOBase):
    """用户响应DTO（不含密码哈希）"""
    id: int
    username: str
    created_at: Optional[datetime]
    last_login: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_entity(cls, user: User) -> "UserResponseDTO":
        return cls.model_validate(user)


class PaginationParams(DTOBase):
    """分页参数（页码/每页大小），自动派生 skip/limit"""
    page: int = Field(1, ge=1, description="页码，从1开始")
    size: int = Field(
        default=DEFAULT_PAGE_SIZE,
        ge=1,
        le=MAX_PAGE_SIZE,
        description="每页大小",
    )

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.size

    @property
    def limit(self) -> int:
        return self.size
