"""
用户领域服务 - 密码哈希与校验
"""
import hashlib
import hmac
import secrets


class PasswordService:
    """密码服务 - 处理密码相关的业务逻辑"""

    ITERATIONS = 100000

    @classmethod
    def hash_password(cls, password: str) -> str:
        """密码哈希"""
        salt = secrets.token_hex(32)
        pwd_hash = hashlib.pbkdf2_hmac('sha256',
                                       password.encode('utf-8'),
                                       salt.encode('utf-8'),
                                       cls.ITERATIONS)
        return f"{salt}${pwd_hash.hex()}"

    @classmethod
    def verify_password(cls, plain_password: str, hashed_password: str) -> bool:
        """验证密码"""
        try:
            salt, pwd_hash = hashed_password.split('$')
        except ValueError:
            return False
        new_hash = hashlib.pbkdf2_hmac('sha256',
                                       plain_password.encode('utf-8'),
                                       salt.encode('utf-8'),
                                       cls.ITERATIONS)
        return hmac.compare_digest(new_hash.hex(), pwd_hash)
