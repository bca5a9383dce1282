import grpc
import pytest

from grpc_app.server import create_server
from grpc_app.services.temp_log_service import TempLogServiceStub


@pytest.fixture
async def grpc_target(env):
    """Serve the real gRPC server on an ephemeral port (port 0)."""
    server = create_server(env)
    port = server.add_insecure_port("127.0.0.1:0")
    await server.start()
    try:
        yield f"127.0.0.1:{port}"
    finally:
        await server.stop(grace=None)


@pytest.fixture
async def channel(grpc_target):
    async with grpc.aio.insecure_channel(grpc_target) as ch:
        yield ch


@pytest.fixture
def stub(channel) -> TempLogServiceStub:
    return TempLogServiceStub(channel)
