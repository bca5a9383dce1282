from datetime import datetime, timedelta, timezone

import jwt
import pytest

from application.services.token_service import TokenService
from core.config import AuthSettings
from domain.common.exceptions import TokenExpiredException, UnauthorizedException
from domain.user.entity import User


@pytest.fixture
def token_service(keypair) -> TokenService:
    return TokenService(keypair, AuthSettings())


def test_issued_token_verifies_to_identity(token_service):
    token = token_service.create_access_token(User(id=3, username="dave", hashed_password="x"))
    identity = token_service.verify_access_token(token.access_token)
    assert identity.user_id == 3
    assert identity.username == "dave"
    assert token.expires_in == 3600


def test_token_is_signed_with_rs256(token_service, keypair):
    token = token_service.create_access_token(User(id=3, username="dave", hashed_password="x")).access_token
    assert jwt.get_unverified_header(token)["alg"] == "RS256"
    payload = jwt.decode(token, keypair.public_key, algorithms=["RS256"], issuer="raspberrysour")
    assert payload["sub"] == "3"


def test_expired_token(keypair):
    svc = TokenService(keypair, AuthSettings(access_token_expire_minutes=-1))
    token = svc.create_access_token(User(id=1, username="eve", hashed_password="x")).access_token
    with pytest.raises(TokenExpiredException):
        svc.verify_access_token(token)


def test_wrong_issuer_is_rejected(keypair, token_service):
    other = TokenService(keypair, AuthSettings(issuer="someone-else"))
    token = other.create_access_token(User(id=1, username="eve", hashed_password="x")).access_token
    with pytest.raises(UnauthorizedException):
        token_service.verify_access_token(token)


def test_non_access_token_is_rejected(keypair, token_service):
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": "1", "iss": "raspberrysour", "type": "refresh", "exp": now + timedelta(minutes=5)},
        keypair.private_key,
        algorithm="RS256",
    )
    with pytest.raises(UnauthorizedException):
        token_service.verify_access_token(token)
