"""
令牌服务 - 使用进程的 RSA 密钥对签发与校验访问令牌（RS256）
"""
from datetime import datetime, timedelta, timezone
import uuid

import jwt

from application.dto import Identity, TokenDTO
from core.config import AuthSettings
from core.logging_config import get_logger
from domain.common.exceptions import UnauthorizedException, TokenExpiredException
from shared.codes import BusinessCode
from domain.user.entity import User
from infrastructure.keystore import Keypair


logger = get_logger(__name__)


class TokenService:
    """
    令牌服务

    私钥只用于签发，公钥只用于校验；两者在启动时加载，进程内只读共享。
    """

    def __init__(self, keypair: Keypair, settings: AuthSettings):
        self._keypair = keypair
        self._settings = settings

    @property
    def expires_in(self) -> int:
        return self._settings.access_token_expire_minutes * 60

    def create_access_token(self, user: User) -> TokenDTO:
        """创建访问令牌"""
        now = datetime.now(timezone.utc)
        to_encode = {
            "sub": str(user.id),
            "username": user.username,
            "iss": self._settings.issuer,
            "iat": now,
            "exp": now + timedelta(seconds=self.expires_in),
            "type": "access",
            "jti": str(uuid.uuid4()),
        }
        token = jwt.encode(to_encode, self._keypair.private_key, algorithm=self._settings.algorithm)
        return TokenDTO(access_token=token, expires_in=self.expires_in)

    def verify_access_token(self, token: str) -> Identity:
        """Verify an access JWT against the public key and return the caller identity.

        - Expired token: raise TokenExpiredException
        - Bad signature, wrong issuer, wrong type or missing claims: raise UnauthorizedException
        """
        try:
            payload = jwt.decode(
                token,
                self._keypair.public_key,
                algorithms=[self._settings.algorithm],
                issuer=self._settings.issuer,
                options={"require": ["exp", "sub", "iss"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredException()
        except jwt.InvalidTokenError as exc:
            logger.warning("invalid_access_token", error=str(exc))
            raise UnauthorizedException("Invalid access token", code=BusinessCode.TOKEN_INVALID)

        if payload.get("type") != "access":
            raise UnauthorizedException("Invalid token type", code=BusinessCode.TOKEN_INVALID)

        try:
            return Identity(user_id=int(payload["sub"]), username=str(payload.get("username", "")))
        except ValueError:
            raise UnauthorizedException("Invalid token subject", code=BusinessCode.TOKEN_INVALID)
