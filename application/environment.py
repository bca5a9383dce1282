"""
请求环境 - HTTP 中间件、HTTP 处理器与 gRPC 服务的共享上下文

组合根在密钥加载和存储 ping 都成功后创建一次，之后只读共享。
跨请求的状态只能放在这里（目前只有存储句柄与密钥对），不能放进中间件链本身。
"""
from __future__ import annotations

from dataclasses import dataclass, field

from application.services.temp_log_service import TempLogApplicationService
from application.services.token_service import TokenService
from application.services.user_service import UserApplicationService
from core.config import Settings
from infrastructure.database import Store
from infrastructure.keystore import Keypair


@dataclass(frozen=True)
class RequestEnvironment:
    store: Store
    keypair: Keypair
    settings: Settings
    token_service: TokenService = field(init=False)

    def __post_init__(self) -> None:
        # frozen dataclass：派生字段只在构造时写入一次
        object.__setattr__(self, "token_service", TokenService(self.keypair, self.settings.auth))

    def uow_factory(self, *, readonly: bool = False):
        return self.store.unit_of_work(readonly=readonly)

    def temp_log_service(self) -> TempLogApplicationService:
        return TempLogApplicationService(uow_factory=self.uow_factory)

    def user_service(self) -> UserApplicationService:
        return UserApplicationService(uow_factory=self.uow_factory, token_service=self.token_service)
