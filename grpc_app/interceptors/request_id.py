from __future__ import annotations

import uuid
import contextvars
from typing import Callable, Awaitable

import grpc

from grpc_app.interceptors.base import invoke_unary

REQUEST_ID_META_KEY = "x-request-id"
_request_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("grpc_request_id", default=None)


def get_request_id() -> str | None:
    return _request_id_var.get()


class RequestIdInterceptor(grpc.aio.ServerInterceptor):
    async def intercept_service(
        self,
        continuation: Callable[[grpc.HandlerCallDetails], Awaitable[grpc.RpcMethodHandler]],
        handler_call_details: grpc.HandlerCallDetails,
    ) -> grpc.RpcMethodHandler:
        handler = await continuation(handler_call_details)
        if handler is None:
            return handler

        md = dict(handler_call_details.invocation_metadata or [])
        request_id = md.get(REQUEST_ID_META_KEY) or str(uuid.uuid4())

        async def _unary_unary(request, context: grpc.aio.ServicerContext):
            # Echo back as initial metadata so the client can correlate
            await context.send_initial_metadata(((REQUEST_ID_META_KEY, request_id),))
            token = _request_id_var.set(request_id)
            try:
                return await invoke_unary(handler, request, context)
            finally:
                _request_id_var.reset(token)

        # Only the unary-unary case is wrapped; the service exposes no streaming methods
        if handler.unary_unary:
            return grpc.unary_unary_rpc_method_handler(
                _unary_unary,
                request_deserializer=handler.request_deserializer,
                response_serializer=handler.response_serializer,
            )
        return handler
