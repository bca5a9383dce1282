from __future__ import annotations

from typing import Sequence
import grpc
from grpc_health.v1 import health, health_pb2_grpc, health_pb2

from application.environment import RequestEnvironment
from core.logging_config import get_logger
from grpc_app.interceptors.request_id import RequestIdInterceptor
from grpc_app.interceptors.logging import LoggingInterceptor
from grpc_app.interceptors.exceptions import ExceptionMappingInterceptor
from grpc_app.interceptors.auth import MetadataAuthInterceptor
from grpc_app.services.temp_log_service import (
    SERVICE_NAME,
    TempLogServicer,
    add_TempLogServiceServicer_to_server,
)


logger = get_logger(__name__)


def create_server(env: RequestEnvironment) -> grpc.aio.Server:
    """Build the gRPC server with services and interceptors registered.

    Binding is left to the caller so that listener failures surface at
    the same point as the HTTP listener's.
    """
    interceptors: Sequence[grpc.aio.ServerInterceptor] = (
        RequestIdInterceptor(),
        LoggingInterceptor(),
        ExceptionMappingInterceptor(),  # maps business exceptions
        MetadataAuthInterceptor(),       # rejects calls without metadata
    )

    options = [
        ("grpc.max_concurrent_streams", max(1, env.settings.grpc.max_concurrent_streams)),
        # a second process on the same port must fail to bind
        ("grpc.so_reuseport", 0),
    ]
    server = grpc.aio.server(interceptors=interceptors, options=options)

    # Register services
    add_TempLogServiceServicer_to_server(TempLogServicer(env.temp_log_service()), server)

    # Health service
    health_svc = health.HealthServicer()
    health_pb2_grpc.add_HealthServicer_to_server(health_svc, server)
    health_svc.set("", health_pb2.HealthCheckResponse.SERVING)
    health_svc.set(SERVICE_NAME, health_pb2.HealthCheckResponse.SERVING)

    logger.info("grpc_server_created", services=[SERVICE_NAME])
    return server
