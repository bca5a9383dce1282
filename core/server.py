"""
双传输服务器 - 同一进程内运行 HTTP（uvicorn）与 gRPC（grpc.aio）两个监听器

状态：STARTING → RUNNING → DRAINING → STOPPED

- 启动时先绑定两个端口，任一失败即 ListenerFatal，谁都不开始服务
- 两个监听器各自一个任务，共享同一个停止事件（SIGINT/SIGTERM 也只是置位该事件）
- 任一监听器意外退出都会记录 ListenerFatal 并触发另一方优雅关闭
- serve() 在两个任务都结束后返回；若记录过 ListenerFatal 则抛出第一个
"""
from __future__ import annotations

import asyncio
import contextlib
import signal
import socket
import threading
from enum import Enum
from typing import Callable, List, Optional

import grpc
import uvicorn

from core.config import Settings
from core.exceptions import ListenerFatal
from core.logging_config import get_logger


logger = get_logger(__name__)


class ServerState(str, Enum):
    STARTING = "starting"
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


class EmbeddedUvicornServer(uvicorn.Server):
    """uvicorn.Server that leaves signal handling to its owner."""

    def install_signal_handlers(self) -> None:  # uvicorn < 0.29
        pass

    @contextlib.contextmanager
    def capture_signals(self):  # uvicorn >= 0.29
        yield


def _join_host_port(host: str, port: int) -> str:
    if ":" in host and not host.startswith("["):
        return f"[{host}]:{port}"
    return f"{host}:{port}"


class DualTransportServer:
    def __init__(
        self,
        app,
        grpc_server: grpc.aio.Server,
        *,
        http_host: str = "0.0.0.0",
        http_port: int = 3333,
        grpc_host: str = "0.0.0.0",
        grpc_port: int = 50051,
        shutdown_grace: Optional[float] = 5.0,
        http_server_class: Callable[[uvicorn.Config], uvicorn.Server] = EmbeddedUvicornServer,
    ) -> None:
        self._app = app
        self._grpc = grpc_server
        self._http_host = http_host
        self._requested_http_port = http_port
        self._grpc_host = grpc_host
        self._requested_grpc_port = grpc_port
        self._shutdown_grace = shutdown_grace
        self._http_server_class = http_server_class

        self.state = ServerState.STARTING
        self.http_port: Optional[int] = None
        self.grpc_port: Optional[int] = None

        self._stop_event = asyncio.Event()
        self._http: Optional[uvicorn.Server] = None
        self._fatal: Optional[ListenerFatal] = None

    @classmethod
    def from_settings(cls, app, grpc_server: grpc.aio.Server, settings: Settings) -> "DualTransportServer":
        return cls(
            app,
            grpc_server,
            http_host=settings.http.host,
            http_port=settings.http.port,
            grpc_host=settings.grpc.host,
            grpc_port=settings.grpc.port,
            shutdown_grace=settings.grpc.shutdown_grace,
        )

    @property
    def http_started(self) -> bool:
        return bool(self._http is not None and self._http.started)

    @property
    def fatal(self) -> Optional[ListenerFatal]:
        return self._fatal

    def shutdown(self) -> None:
        """Request a graceful stop. Safe to call any number of times."""
        if not self._stop_event.is_set():
            logger.info("shutdown_requested", state=self.state.value)
            self._stop_event.set()

    # ---- binding ----

    def _bind_http(self) -> socket.socket:
        family = socket.AF_INET6 if ":" in self._http_host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self._http_host, self._requested_http_port))
        except OSError as exc:
            sock.close()
            address = _join_host_port(self._http_host, self._requested_http_port)
            raise ListenerFatal("http", f"cannot bind {address}: {exc}") from exc
        self.http_port = sock.getsockname()[1]
        return sock

    def _bind_grpc(self) -> None:
        address = _join_host_port(self._grpc_host, self._requested_grpc_port)
        try:
            bound = self._grpc.add_insecure_port(address)
        except RuntimeError as exc:
            raise ListenerFatal("grpc", f"cannot bind {address}: {exc}") from exc
        # 旧版 grpcio 绑定失败时返回 0 而不是抛异常
        if not bound:
            raise ListenerFatal("grpc", f"cannot bind {address}")
        self.grpc_port = bound

    # ---- signals ----

    def _handle_signal(self, sig: signal.Signals) -> None:
        logger.info("signal_received", signal=sig.name)
        self.shutdown()

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> List[signal.Signals]:
        if threading.current_thread() is not threading.main_thread():
            logger.debug("signal_handlers_skipped", reason="not in main thread")
            return []
        installed = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self._handle_signal, sig)
            except (NotImplementedError, RuntimeError):
                logger.debug("signal_handler_unavailable", signal=sig.name)
                continue
            installed.append(sig)
        return installed

    # ---- listeners ----

    def _record_fatal(self, exc: ListenerFatal) -> None:
        logger.error("listener_failed", transport=exc.transport, error=exc.message)
        if self._fatal is None:
            self._fatal = exc
        self.shutdown()

    async def _run_http(self, sock: socket.socket) -> None:
        assert self._http is not None
        try:
            await self._http.serve(sockets=[sock])
        except (Exception, SystemExit) as exc:
            # uvicorn 启动失败时调用 sys.exit(1)
            self._record_fatal(ListenerFatal("http", str(exc) or type(exc).__name__))
            return

        if not self._http.started:
            self._record_fatal(ListenerFatal("http", "server exited before it started serving"))
            return
        logger.info("http_server_closed")
        self.shutdown()

    async def _run_grpc(self) -> None:
        # wait_for_termination 不能被取消：grpc.aio 会连同服务器共享的关闭 future 一起取消，
        # 之后的 stop() 将抛出 CancelledError
        terminated = asyncio.create_task(self._grpc.wait_for_termination())
        stopping = asyncio.create_task(self._stop_event.wait())
        done, _ = await asyncio.wait({terminated, stopping}, return_when=asyncio.FIRST_COMPLETED)

        if terminated in done and not self._stop_event.is_set():
            error = terminated.exception()
            message = str(error) if error else "server terminated unexpectedly"
            self._record_fatal(ListenerFatal("grpc", message))
        else:
            logger.info("grpc_server_stopping", grace=self._shutdown_grace)
            await self._grpc.stop(self._shutdown_grace)
            await terminated
        await stopping
        logger.info("grpc_server_closed")

    async def serve(self) -> None:
        if self.state is not ServerState.STARTING:
            raise RuntimeError(f"server cannot be served from state {self.state.value}")

        try:
            sock = self._bind_http()
        except ListenerFatal:
            self.state = ServerState.STOPPED
            raise
        try:
            self._bind_grpc()
            await self._grpc.start()
        except ListenerFatal:
            sock.close()
            self.state = ServerState.STOPPED
            raise
        except Exception as exc:
            sock.close()
            self.state = ServerState.STOPPED
            raise ListenerFatal("grpc", f"failed to start: {exc}") from exc

        loop = asyncio.get_running_loop()
        installed = self._install_signal_handlers(loop)

        config = uvicorn.Config(self._app, lifespan="off", log_config=None, access_log=False)
        self._http = self._http_server_class(config)

        self.state = ServerState.RUNNING
        logger.info("server_started", http_port=self.http_port, grpc_port=self.grpc_port)
        http_task = asyncio.create_task(self._run_http(sock), name="http-listener")
        grpc_task = asyncio.create_task(self._run_grpc(), name="grpc-listener")
        try:
            await self._stop_event.wait()
        finally:
            self.state = ServerState.DRAINING
            logger.info("server_draining")
            self._stop_event.set()
            self._http.should_exit = True
            results = await asyncio.gather(http_task, grpc_task, return_exceptions=True)
            for task, result in zip((http_task, grpc_task), results):
                if isinstance(result, BaseException):
                    logger.error("listener_task_failed", task=task.get_name(), error=repr(result))
            for sig in installed:
                loop.remove_signal_handler(sig)
            sock.close()
            self.state = ServerState.STOPPED
            logger.info("server_stopped")

        if self._fatal is not None:
            raise self._fatal
