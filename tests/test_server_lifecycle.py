import asyncio
import os
import signal
import socket

import grpc
import httpx
import pytest
from grpc_health.v1 import health_pb2, health_pb2_grpc
from structlog.testing import capture_logs

import main as entrypoint
from core.config import DatabaseSettings
from core.exceptions import ListenerFatal
from core.server import DualTransportServer, EmbeddedUvicornServer, ServerState
from grpc_app.server import create_server


async def _wait_running(server: DualTransportServer, timeout: float = 10.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not (server.state is ServerState.RUNNING and server.http_started):
        if loop.time() > deadline:
            raise AssertionError(f"server did not start, state={server.state}")
        await asyncio.sleep(0.02)


def _dual(app, grpc_server, **kwargs) -> DualTransportServer:
    return DualTransportServer(
        app,
        grpc_server,
        http_host="127.0.0.1",
        http_port=kwargs.pop("http_port", 0),
        grpc_host="127.0.0.1",
        grpc_port=0,
        shutdown_grace=0.1,
        **kwargs,
    )


class FailingHttpServer(EmbeddedUvicornServer):
    async def serve(self, sockets=None):
        raise RuntimeError("accept loop crashed")


class UnbindableGrpcServer:
    """Stands in for grpc.aio.Server when the port is taken."""

    def __init__(self, result=None):
        self.result = result
        self.started = False

    def add_insecure_port(self, address):
        if self.result is None:
            raise RuntimeError(f"Failed to bind to address {address}")
        return self.result

    async def start(self):
        self.started = True


@pytest.mark.asyncio
async def test_both_listeners_serve_then_stop_gracefully(app, env):
    grpc_server = create_server(env)
    server = _dual(app, grpc_server)
    task = asyncio.create_task(server.serve())
    await _wait_running(server)

    async with httpx.AsyncClient(base_url=f"http://127.0.0.1:{server.http_port}", trust_env=False) as c:
        resp = await c.get("/temp-log")
    assert resp.status_code == 401

    async with grpc.aio.insecure_channel(f"127.0.0.1:{server.grpc_port}") as ch:
        reply = await health_pb2_grpc.HealthStub(ch).Check(health_pb2.HealthCheckRequest())
    assert reply.status == health_pb2.HealthCheckResponse.SERVING

    server.shutdown()
    await asyncio.wait_for(task, timeout=10)
    assert server.state is ServerState.STOPPED
    assert server.fatal is None
    assert await grpc_server.wait_for_termination(timeout=1) is True


@pytest.mark.asyncio
async def test_sigterm_triggers_graceful_shutdown(app, env):
    grpc_server = create_server(env)
    server = _dual(app, grpc_server)
    task = asyncio.create_task(server.serve())
    await _wait_running(server)

    os.kill(os.getpid(), signal.SIGTERM)
    await asyncio.wait_for(task, timeout=10)
    assert server.state is ServerState.STOPPED
    assert server.fatal is None
    assert await grpc_server.wait_for_termination(timeout=1) is True


@pytest.mark.asyncio
async def test_http_close_stops_grpc(app, env):
    grpc_server = create_server(env)
    server = _dual(app, grpc_server)
    task = asyncio.create_task(server.serve())
    await _wait_running(server)

    # uvicorn leaving its serve loop on its own, without a shutdown request
    server._http.should_exit = True
    with capture_logs() as logs:
        await asyncio.wait_for(task, timeout=10)
    assert server.state is ServerState.STOPPED
    assert server.fatal is None
    assert await grpc_server.wait_for_termination(timeout=1) is True
    events = [e["event"] for e in logs]
    assert "http_server_closed" in events
    assert "grpc_server_closed" in events
    assert "listener_task_failed" not in events


@pytest.mark.asyncio
async def test_http_failure_stops_grpc_and_is_fatal(app, env):
    grpc_server = create_server(env)
    server = _dual(app, grpc_server, http_server_class=FailingHttpServer)

    with pytest.raises(ListenerFatal) as ei:
        await asyncio.wait_for(server.serve(), timeout=10)
    assert ei.value.transport == "http"
    assert "accept loop crashed" in ei.value.message
    assert server.state is ServerState.STOPPED
    assert await grpc_server.wait_for_termination(timeout=1) is True


@pytest.mark.asyncio
async def test_grpc_termination_stops_http_and_is_fatal(app, env):
    grpc_server = create_server(env)
    server = _dual(app, grpc_server)
    task = asyncio.create_task(server.serve())
    await _wait_running(server)

    await grpc_server.stop(grace=None)
    with pytest.raises(ListenerFatal) as ei:
        await asyncio.wait_for(task, timeout=10)
    assert ei.value.transport == "grpc"
    assert server.state is ServerState.STOPPED


@pytest.mark.asyncio
async def test_http_port_in_use_is_fatal_before_serving(app):
    blocker = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    blocker.bind(("127.0.0.1", 0))
    blocker.listen()
    grpc_server = UnbindableGrpcServer(result=50051)
    try:
        server = _dual(app, grpc_server, http_port=blocker.getsockname()[1])
        with pytest.raises(ListenerFatal) as ei:
            await server.serve()
    finally:
        blocker.close()
    assert ei.value.transport == "http"
    assert server.state is ServerState.STOPPED
    assert grpc_server.started is False


@pytest.mark.asyncio
@pytest.mark.parametrize("result", [None, 0])
async def test_grpc_bind_failure_is_fatal_before_serving(app, result):
    grpc_server = UnbindableGrpcServer(result=result)
    server = _dual(app, grpc_server)
    with pytest.raises(ListenerFatal) as ei:
        await server.serve()
    assert ei.value.transport == "grpc"
    assert server.state is ServerState.STOPPED
    assert grpc_server.started is False
    assert server.http_started is False


def test_store_ping_failure_exits_before_binding(settings, tmp_path, monkeypatch):
    def _must_not_build(env):
        raise AssertionError("gRPC server must not be built when the store is unreachable")

    monkeypatch.setattr(entrypoint, "configure_logging", lambda debug=False: None)
    monkeypatch.setattr(entrypoint, "create_server", _must_not_build)
    broken = settings.model_copy(update={
        "database": DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'nested' / 'db.sqlite'}"),
    })

    with capture_logs() as logs, pytest.raises(SystemExit) as ei:
        entrypoint.main(broken)
    assert ei.value.code == 1
    failures = [e for e in logs if e["event"] == "startup_failed"]
    assert failures and failures[0]["error_type"] == "StoreConnectError"


def test_bad_key_exits_before_connecting(settings, tmp_path, monkeypatch):
    def _must_not_connect(*args, **kwargs):
        raise AssertionError("store must not be created when keys fail to load")

    monkeypatch.setattr(entrypoint, "configure_logging", lambda debug=False: None)
    monkeypatch.setattr(entrypoint.Store, "from_settings", _must_not_connect)
    broken = settings.model_copy(update={
        "keys": settings.keys.model_copy(update={"private_key_path": str(tmp_path / "absent.pem")}),
    })

    with capture_logs() as logs, pytest.raises(SystemExit) as ei:
        entrypoint.main(broken)
    assert ei.value.code == 1
    assert any(e["event"] == "startup_failed" and e["error_type"] == "KeyLoadError" for e in logs)


def test_listener_failure_exits_nonzero_and_closes_store(settings, monkeypatch):
    closed = []
    original_close = entrypoint.Store.close

    async def _tracking_close(self):
        closed.append(True)
        await original_close(self)

    class _FailingDual(DualTransportServer):
        async def serve(self):
            raise ListenerFatal("http", "address already in use")

    monkeypatch.setattr(entrypoint, "configure_logging", lambda debug=False: None)
    monkeypatch.setattr(entrypoint.Store, "close", _tracking_close)
    monkeypatch.setattr(entrypoint, "DualTransportServer", _FailingDual)

    with capture_logs() as logs, pytest.raises(SystemExit) as ei:
        entrypoint.main(settings)
    assert ei.value.code == 1
    assert closed == [True]
    assert any(e["event"] == "listener_fatal" and e["transport"] == "http" for e in logs)


def test_graceful_shutdown_returns_normally(settings, monkeypatch):
    servers = []

    class _SelfStoppingDual(DualTransportServer):
        async def serve(self):
            servers.append(self)
            asyncio.get_running_loop().call_later(0.3, self.shutdown)
            await super().serve()

    monkeypatch.setattr(entrypoint, "configure_logging", lambda debug=False: None)
    monkeypatch.setattr(entrypoint, "DualTransportServer", _SelfStoppingDual)

    with capture_logs() as logs:
        entrypoint.main(settings)
    assert len(servers) == 1
    assert servers[0].state is ServerState.STOPPED
    assert servers[0].fatal is None
    events = [e["event"] for e in logs]
    assert "grpc_server_closed" in events
    assert "application_shutdown" in events
    assert "listener_task_failed" not in events
