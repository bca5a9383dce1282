"""
温度日志仓储接口
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from .entity import TempLog


class TempLogRepository(ABC):

    @abstractmethod
    async def create(self, log: TempLog) -> TempLog:
        """写入一条日志，返回带存储分配主键的实体"""
        pass

    @abstractmethod
    async def get_by_id(self, log_id: int) -> Optional[TempLog]:
        pass

    @abstractmethod
    async def get_all(self, skip: int = 0, limit: int = 100) -> List[TempLog]:
        """按创建时间倒序返回"""
        pass
