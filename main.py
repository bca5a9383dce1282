"""
进程入口 - 组合根

启动顺序：加载密钥对 → 连接存储并 ping → 构建请求环境 → 组装 HTTP 与 gRPC → 双监听器服务。
任一步失败都在绑定端口之前退出（非零状态码）；存储句柄在退出前关闭且只关闭一次。
"""
import asyncio
import sys
from typing import Optional

from api.app import create_app
from application.environment import RequestEnvironment
from core.config import Settings, get_settings
from core.exceptions import ListenerFatal, StartupError
from core.logging_config import configure_logging, get_logger
from core.server import DualTransportServer
from grpc_app.server import create_server
from infrastructure.database import Store
from infrastructure.keystore import load_keypair


logger = get_logger(__name__)


async def serve(settings: Settings) -> None:
    keypair = load_keypair(settings.keys.private_key_path, settings.keys.public_key_path)

    store = Store.from_settings(settings.database)
    try:
        await store.ping()
        # 开发环境自动建表；生产环境由运维预先建好
        if settings.DEBUG:
            await store.create_tables()
            logger.info("database_initialized", message="Database tables created (development)")

        env = RequestEnvironment(store=store, keypair=keypair, settings=settings)
        server = DualTransportServer.from_settings(create_app(env), create_server(env), settings)
        await server.serve()
    finally:
        await store.close()


def main(settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()
    configure_logging(debug=settings.DEBUG)
    logger.info(
        "application_starting",
        project=settings.PROJECT_NAME,
        version=settings.VERSION,
        environment=settings.ENVIRONMENT,
        http_port=settings.http.port,
        grpc_port=settings.grpc.port,
    )
    try:
        asyncio.run(serve(settings))
    except StartupError as exc:
        logger.error("startup_failed", error_type=type(exc).__name__, error=str(exc))
        sys.exit(1)
    except ListenerFatal as exc:
        logger.error("listener_fatal", transport=exc.transport, error=exc.message)
        sys.exit(1)
    logger.info("application_shutdown", message="Server closed")


if __name__ == "__main__":
    main()
