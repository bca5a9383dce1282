"""
用户领域实体
"""
from datetime import datetime, timezone
from typing import Optional
from dataclasses import dataclass


@dataclass
class User:
    """用户实体"""

    id: Optional[int]
    username: str
    hashed_password: str
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    def record_login(self) -> None:
        """业务规则：记录登录时间"""
        self.last_login = datetime.now(timezone.utc)
