"""
温度日志应用服务
"""
from typing import Callable, List, Optional

from application.dto import TempLogCreateDTO, TempLogResponseDTO
from core.logging_config import get_logger
from domain.common.exceptions import TempLogNotFoundException
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.temp_log.entity import TempLog


logger = get_logger(__name__)


class TempLogApplicationService:

    def __init__(self, uow_factory: Callable[..., AbstractUnitOfWork]):
        self._uow_factory = uow_factory

    async def create_log(self, data: TempLogCreateDTO, created_by: Optional[int] = None) -> int:
        """写入一条日志，返回存储分配的主键"""
        async with self._uow_factory() as uow:
            log = await uow.temp_log_repository.create(
                TempLog(
                    id=None,
                    temperature=data.temperature,
                    humidity=data.humidity,
                    sensor=data.sensor,
                    created_by=created_by,
                )
            )
        logger.info("temp_log_created", log_id=log.id, created_by=created_by)
        return int(log.id)

    async def get_log(self, log_id: int) -> TempLogResponseDTO:
        async with self._uow_factory(readonly=True) as uow:
            log = await uow.temp_log_repository.get_by_id(log_id)
        if log is None:
            raise TempLogNotFoundException(log_id)
        return TempLogResponseDTO.from_entity(log)

    async def list_logs(self, skip: int = 0, limit: int = 100) -> List[TempLogResponseDTO]:
        async with self._uow_factory(readonly=True) as uow:
            logs = await uow.temp_log_repository.get_all(skip=skip, limit=limit)
        return [TempLogResponseDTO.from_entity(log) for log in logs]
