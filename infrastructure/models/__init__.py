"""Infrastructure models package exports."""
from .base import Base, metadata
from .user import UserModel
from .temp_log import TempLogModel

__all__ = [
    "Base",
    "metadata",
    "UserModel",
    "TempLogModel",
]
