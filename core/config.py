"""
配置文件 - 项目配置管理

所有配置通过 pydantic-settings 从环境变量 / .env 加载，嵌套分组使用 `__` 分隔，
例如 `DATABASE__HOST=db`、`GRPC__PORT=50051`。
"""
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


class DatabaseSettings(BaseModel):
    driver: str = "postgresql+asyncpg"
    host: str = "db"
    port: int = 5432
    user: str = "admin"
    password: str = "1234"
    name: str = "admin"
    # 显式URL优先于上面的分项配置（测试或本地 sqlite 时使用）
    url: Optional[str] = None
    echo: bool = False

    def dsn(self) -> str:
        """组装连接串"""
        if self.url:
            return self.url
        return URL.create(
            drivername=self.driver,
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.name,
        ).render_as_string(hide_password=False)


class HttpSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3333
    version_header: str = "X-API-Version"
    default_version: str = "1"
    supported_versions: list[str] = Field(default_factory=lambda: ["1"])


class GrpcSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 50051
    # This maps to GRPC option grpc.max_concurrent_streams
    max_concurrent_streams: int = 100
    # Seconds granted to in-flight RPCs when the process drains
    shutdown_grace: float = 5.0


class KeySettings(BaseModel):
    private_key_path: str = "keys/private.pem"
    public_key_path: str = "keys/public.pem"


class AuthSettings(BaseModel):
    algorithm: str = "RS256"
    access_token_expire_minutes: int = 60
    issuer: str = "raspberrysour"


class Settings(BaseSettings):
    """项目配置"""

    PROJECT_NAME: str = Field(default="raspberrysour")
    VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="development")

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    grpc: GrpcSettings = Field(default_factory=GrpcSettings)
    keys: KeySettings = Field(default_factory=KeySettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    @model_validator(mode="after")
    def _validate_ports(self):
        # HTTP 与 gRPC 共享一个进程，端口必须不同（0 表示临时端口，仅测试使用）
        if self.http.port and self.http.port == self.grpc.port:
            raise ValueError(
                f"HTTP 与 gRPC 端口不能相同: {self.http.port}"
            )
        return self

    @field_validator("http", mode="after")
    @classmethod
    def _default_version_supported(cls, v: HttpSettings) -> HttpSettings:
        if v.default_version not in v.supported_versions:
            raise ValueError(
                f"默认版本 {v.default_version} 不在支持列表 {v.supported_versions} 中"
            )
        return v


@lru_cache
def get_settings() -> Settings:
    """进程级配置（只读）。组合根拿到后显式向下传递。"""
    return Settings()
