from .entity import TempLog
from .repository import TempLogRepository

__all__ = ["TempLog", "TempLogRepository"]
