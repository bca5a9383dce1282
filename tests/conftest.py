"""Pytest fixtures shared by the HTTP, gRPC and lifecycle tests.

Keys are generated per test into tmp_path; the store is a file-backed
sqlite database so the real SQLAlchemy repositories are exercised.
"""
from typing import Tuple

import httpx
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from api.app import create_app
from application.dto import LoginDTO, RegisterDTO
from application.environment import RequestEnvironment
from core.config import DatabaseSettings, GrpcSettings, HttpSettings, KeySettings, Settings
from infrastructure.database import Store
from infrastructure.keystore import Keypair, load_keypair
from tests.helpers import write_private_pem, write_public_pem


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def key_paths(tmp_path, rsa_private_key) -> Tuple[str, str]:
    keys_dir = tmp_path / "keys"
    keys_dir.mkdir()
    return (
        write_private_pem(keys_dir / "private.pem", rsa_private_key),
        write_public_pem(keys_dir / "public.pem", rsa_private_key.public_key()),
    )


@pytest.fixture
def keypair(key_paths) -> Keypair:
    return load_keypair(*key_paths)


@pytest.fixture
def settings(tmp_path, key_paths) -> Settings:
    private_path, public_path = key_paths
    return Settings(
        DEBUG=False,
        database=DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"),
        http=HttpSettings(host="127.0.0.1", port=0),
        grpc=GrpcSettings(host="127.0.0.1", port=0, shutdown_grace=0.5),
        keys=KeySettings(private_key_path=private_path, public_key_path=public_path),
    )


@pytest.fixture
async def store(settings):
    store = Store.from_settings(settings.database)
    await store.create_tables()
    try:
        yield store
    finally:
        await store.close()


@pytest.fixture
def env(store, keypair, settings) -> RequestEnvironment:
    return RequestEnvironment(store=store, keypair=keypair, settings=settings)


@pytest.fixture
def app(env):
    return create_app(env)


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
async def user_token(env) -> str:
    """Register a user through the application service and return a bearer token."""
    svc = env.user_service()
    await svc.register_user(RegisterDTO(username="alice", password="s3cret-pass"))
    token = await svc.login(LoginDTO(username="alice", password="s3cret-pass"))
    return token.access_token


@pytest.fixture
def auth_headers(user_token) -> dict:
    return {"Authorization": f"Bearer {user_token}"}
