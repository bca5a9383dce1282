"""
用户应用服务（application/services）- 注册、登录与用户列表
"""
from typing import Callable, List

from application.dto import LoginDTO, RegisterDTO, TokenDTO, UserResponseDTO
from application.services.token_service import TokenService
from core.logging_config import get_logger
from domain.common.exceptions import PasswordErrorException, UsernameAlreadyExistsException
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.user.entity import User
from domain.user.service import PasswordService


logger = get_logger(__name__)


class UserApplicationService:
    """用户应用服务 - 处理应用层逻辑"""

    def __init__(self, uow_factory: Callable[..., AbstractUnitOfWork], token_service: TokenService):
        self._uow_factory = uow_factory
        self._token_service = token_service

    async def register_user(self, user_data: RegisterDTO) -> int:
        """注册新用户，返回新用户主键"""
        async with self._uow_factory() as uow:
            if await uow.user_repository.get_by_username(user_data.username):
                raise UsernameAlreadyExistsException(user_data.username)
            user = await uow.user_repository.create(
                User(
                    id=None,
                    username=user_data.username,
                    hashed_password=PasswordService.hash_password(user_data.password),
                )
            )
        logger.info("user_registered", user_id=user.id, username=user.username)
        return int(user.id)

    async def login(self, login_data: LoginDTO) -> TokenDTO:
        """校验用户名密码并签发访问令牌"""
        async with self._uow_factory() as uow:
            user = await uow.user_repository.get_by_username(login_data.username)
            if user is None or not PasswordService.verify_password(login_data.password, user.hashed_password):
                logger.warning("login_failed", username=login_data.username)
                raise PasswordErrorException()
            user.record_login()
            await uow.user_repository.update(user)
        logger.info("user_logged_in", user_id=user.id)
        return self._token_service.create_access_token(user)

    async def list_users(self, skip: int = 0, limit: int = 100) -> List[UserResponseDTO]:
        async with self._uow_factory(readonly=True) as uow:
            users = await uow.user_repository.get_all(skip=skip, limit=limit)
        return [UserResponseDTO.from_entity(u) for u in users]
