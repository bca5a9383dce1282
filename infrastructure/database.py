"""
数据库配置和连接管理

Store 是进程内唯一的存储句柄：组合根创建一次，启动时 ping 一次，
两个传输层共享，退出 main 时关闭且只关闭一次。
"""
from __future__ import annotations

import asyncio

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from core.config import DatabaseSettings
from core.exceptions import StoreConnectError
from core.logging_config import get_logger
from infrastructure.models import Base
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork


logger = get_logger(__name__)


def _build_async_url(database_url: str) -> str:
    """确保数据库URL使用异步驱动"""
    url = make_url(database_url)
    drivername = url.drivername

    if "+" in drivername:
        return database_url

    driver_map = {
        "postgresql": "postgresql+asyncpg",
        "postgres": "postgresql+asyncpg",
        "sqlite": "sqlite+aiosqlite",
    }

    if drivername not in driver_map:
        raise ValueError(f"不支持的数据库驱动: {drivername}. 请使用 async 驱动或更新 DATABASE__URL")

    return url.set(drivername=driver_map[drivername]).render_as_string(hide_password=False)


class Store:
    """共享存储句柄：引擎 + 会话工厂"""

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self.session_factory = async_sessionmaker(bind=engine, expire_on_commit=False)
        self._closed = False

    @classmethod
    def from_settings(cls, settings: DatabaseSettings) -> "Store":
        engine = create_async_engine(
            _build_async_url(settings.dsn()),
            echo=settings.echo,
            pool_pre_ping=True,
        )
        return cls(engine)

    @property
    def closed(self) -> bool:
        return self._closed

    def unit_of_work(self, *, readonly: bool = False) -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(self.session_factory, readonly=readonly)

    async def ping(self) -> None:
        """启动时验证连通性，失败即致命"""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        # 3.11 之前 asyncio.TimeoutError 不是 OSError 的子类
        except (SQLAlchemyError, OSError, asyncio.TimeoutError) as exc:
            raise StoreConnectError(f"database ping failed: {exc}") from exc
        logger.info("database_connected", url=self.engine.url.render_as_string(hide_password=True))

    async def create_tables(self) -> None:
        """
        创建所有表（仅开发环境）
        """
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.engine.dispose()
        logger.info("database_closed")
