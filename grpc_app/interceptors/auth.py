from __future__ import annotations

from typing import Callable, Awaitable, Iterable, Optional, Tuple

import grpc

from core.logging_config import get_logger


logger = get_logger(__name__)

# Keys added by the transport itself; they do not count as caller-supplied metadata.
TRANSPORT_METADATA_KEYS = frozenset({
    "user-agent",
    "content-type",
    "te",
})
TRANSPORT_METADATA_PREFIXES = ("grpc-", ":")

EXEMPT_METHOD_PREFIXES = ("/grpc.health.v1.Health/",)


def has_call_metadata(metadata: Optional[Iterable[Tuple[str, object]]]) -> bool:
    for key, _ in metadata or ():
        key = key.lower()
        if key in TRANSPORT_METADATA_KEYS or key.startswith(TRANSPORT_METADATA_PREFIXES):
            continue
        return True
    return False


class MetadataAuthInterceptor(grpc.aio.ServerInterceptor):
    """Reject unary calls that carry no metadata.

    Presence only: the gate does not inspect metadata values and no
    credential is validated on the gRPC side.
    Health checks are exempt so orchestrators can probe without metadata.
    """

    async def intercept_service(
        self,
        continuation: Callable[[grpc.HandlerCallDetails], Awaitable[grpc.RpcMethodHandler]],
        handler_call_details: grpc.HandlerCallDetails,
    ) -> grpc.RpcMethodHandler:
        handler = await continuation(handler_call_details)
        if handler is None:
            return handler

        method = handler_call_details.method
        if method.startswith(EXEMPT_METHOD_PREFIXES):
            return handler
        if has_call_metadata(handler_call_details.invocation_metadata):
            return handler

        async def _unary_unary(request, context: grpc.aio.ServicerContext):
            logger.warning("grpc_missing_metadata", method=method)
            await context.abort(grpc.StatusCode.UNAUTHENTICATED, "missing metadata")

        if handler.unary_unary:
            return grpc.unary_unary_rpc_method_handler(
                _unary_unary,
                request_deserializer=handler.request_deserializer,
                response_serializer=handler.response_serializer,
            )
        return handler
