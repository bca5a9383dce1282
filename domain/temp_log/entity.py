"""
温度日志领域实体
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class TempLog:
    id: Optional[int]
    temperature: float
    humidity: Optional[float] = None
    sensor: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
