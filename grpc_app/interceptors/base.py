from __future__ import annotations

import inspect

import grpc


async def invoke_unary(handler: grpc.RpcMethodHandler, request, context: grpc.aio.ServicerContext):
    """Call a unary-unary behaviour that may be sync (e.g. grpc_health) or async."""
    response = handler.unary_unary(request, context)
    if inspect.isawaitable(response):
        response = await response
    return response
