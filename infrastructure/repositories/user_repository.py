"""
用户仓储实现 - 使用SQLAlchemy实现数据访问
"""
from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from domain.user.entity import User
from domain.user.repository import UserRepository
from infrastructure.models.user import UserModel
from core.logging_config import get_logger
from domain.common.exceptions import UsernameAlreadyExistsException


logger = get_logger(__name__)


class SQLAlchemyUserRepository(UserRepository):
    """用户仓储的SQLAlchemy实现"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: UserModel) -> User:
        """将数据库模型转换为领域实体"""
        return User(
            id=model.id,
            username=model.username,
            hashed_password=model.hashed_password,
            created_at=model.created_at,
            last_login=model.last_login,
        )

    async def create(self, user: User) -> User:
        """创建用户"""
        db_user = UserModel(
            username=user.username,
            hashed_password=user.hashed_password,
        )
        try:
            self.session.add(db_user)
            await self.session.flush()  # 获取生成的ID
        except IntegrityError:
            await self.session.rollback()
            logger.warning("create_user_conflict", field="username", username=user.username)
            raise UsernameAlreadyExistsException(user.username)
        await self.session.refresh(db_user)
        return self._to_entity(db_user)

    async def get_by_username(self, username: str) -> Optional[User]:
        result = await self.session.execute(
            select(UserModel).where(UserModel.username == username)
        )
        db_user = result.scalar_one_or_none()
        return self._to_entity(db_user) if db_user else None

    async def get_all(self, skip: int = 0, limit: int = 100) -> List[User]:
        query = (
            select(UserModel)
            .order_by(UserModel.id.asc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(query)
        return [self._to_entity(db_user) for db_user in result.scalars().all()]

    async def update(self, user: User) -> User:
        result = await self.session.execute(
            select(UserModel).where(UserModel.id == user.id)
        )
        db_user = result.scalar_one()
        db_user.hashed_password = user.hashed_password
        db_user.last_login = user.last_login
        await self.session.flush()
        return self._to_entity(db_user)
