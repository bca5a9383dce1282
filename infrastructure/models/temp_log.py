"""
温度日志数据库模型
"""
from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String
from datetime import datetime, timezone

from .base import Base


class TempLogModel(Base):
    __tablename__ = "temp_logs"

    id = Column(Integer, primary_key=True, index=True)
    temperature = Column(Float, nullable=False, comment="温度（摄氏度）")
    humidity = Column(Float, nullable=True, comment="相对湿度（%）")
    sensor = Column(String(64), nullable=True, comment="传感器标识")
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
        comment="记录时间"
    )

    def __repr__(self):
        return f"<TempLogModel(id={self.id}, temperature={self.temperature})>"
