"""
温度日志仓储实现
"""
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from domain.temp_log.entity import TempLog
from domain.temp_log.repository import TempLogRepository
from infrastructure.models.temp_log import TempLogModel


class SQLAlchemyTempLogRepository(TempLogRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def _to_entity(model: TempLogModel) -> TempLog:
        return TempLog(
            id=model.id,
            temperature=model.temperature,
            humidity=model.humidity,
            sensor=model.sensor,
            created_by=model.created_by,
            created_at=model.created_at,
        )

    async def create(self, log: TempLog) -> TempLog:
        db_log = TempLogModel(
            temperature=log.temperature,
            humidity=log.humidity,
            sensor=log.sensor,
            created_by=log.created_by,
        )
        if log.created_at is not None:
            db_log.created_at = log.created_at
        self.session.add(db_log)
        await self.session.flush()  # 获取生成的ID
        await self.session.refresh(db_log)
        return self._to_entity(db_log)

    async def get_by_id(self, log_id: int) -> Optional[TempLog]:
        result = await self.session.execute(
            select(TempLogModel).where(TempLogModel.id == log_id)
        )
        db_log = result.scalar_one_or_none()
        return self._to_entity(db_log) if db_log else None

    async def get_all(self, skip: int = 0, limit: int = 100) -> List[TempLog]:
        query = (
            select(TempLogModel)
            .order_by(TempLogModel.created_at.desc(), TempLogModel.id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(query)
        return [self._to_entity(m) for m in result.scalars().all()]
