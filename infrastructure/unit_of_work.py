"""SQLAlchemy Unit of Work：每个单元独占一个会话，退出时关闭"""
from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from domain.common.unit_of_work import AbstractUnitOfWork
from infrastructure.repositories.temp_log_repository import SQLAlchemyTempLogRepository
from infrastructure.repositories.user_repository import SQLAlchemyUserRepository


class SQLAlchemyUnitOfWork(AbstractUnitOfWork):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], *, readonly: bool = False) -> None:
        super().__init__(readonly=readonly)
        self._session_factory = session_factory
        self.session: Optional[AsyncSession] = None

    async def __aenter__(self) -> "SQLAlchemyUnitOfWork":
        session = self._session_factory()
        # 只读单元依赖 autobegin，close() 时隐式回滚
        if not self.readonly:
            try:
                await session.begin()
            except BaseException:
                await session.close()
                raise
        self.session = session
        self.user_repository = SQLAlchemyUserRepository(session)
        self.temp_log_repository = SQLAlchemyTempLogRepository(session)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            await super().__aexit__(exc_type, exc, tb)
        finally:
            if self.session is not None:
                await self.session.close()
                self.session = None

    async def commit(self) -> None:
        if self.session is not None and self.session.in_transaction():
            await self.session.commit()
        self._committed = True

    async def rollback(self) -> None:
        if self.session is not None and self.session.in_transaction():
            await self.session.rollback()
        self._committed = False
