"""Unit of Work 抽象定义"""
from __future__ import annotations

from abc import ABC, abstractmethod

from domain.temp_log.repository import TempLogRepository
from domain.user.repository import UserRepository


class AbstractUnitOfWork(ABC):
    """一次业务操作的事务边界

    仓储只在 ``async with`` 块内可用。块正常结束时自动提交（只读单元不提交），
    块内抛出异常时回滚并继续向上抛出。
    """

    user_repository: UserRepository
    temp_log_repository: TempLogRepository

    def __init__(self, *, readonly: bool = False) -> None:
        self.readonly = readonly
        self._committed = False

    async def __aenter__(self) -> "AbstractUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            await self.rollback()
        elif not (self.readonly or self._committed):
            await self.commit()

    @abstractmethod
    async def commit(self) -> None:
        ...

    @abstractmethod
    async def rollback(self) -> None:
        ...
