from __future__ import annotations

from typing import Callable, Awaitable
import contextvars

import grpc

from core.logging_config import get_logger
from grpc_app.interceptors.base import invoke_unary
from grpc_app.interceptors.request_id import get_request_id
from domain.common.exceptions import BusinessException
from shared.codes import BusinessCode


logger = get_logger(__name__)

# Mark that the current request has been mapped to a gRPC status
_mapped_error: contextvars.ContextVar[bool] = contextvars.ContextVar("grpc_mapped_error", default=False)


def set_mapped_error() -> None:
    _mapped_error.set(True)


def is_mapped_error() -> bool:
    return bool(_mapped_error.get())


_GRPC_STATUS_BY_CODE = {
    BusinessCode.PARAM_ERROR: grpc.StatusCode.INVALID_ARGUMENT,
    BusinessCode.PARAM_VALIDATION_ERROR: grpc.StatusCode.INVALID_ARGUMENT,
    BusinessCode.UNSUPPORTED_VERSION: grpc.StatusCode.INVALID_ARGUMENT,

    BusinessCode.BUSINESS_ERROR: grpc.StatusCode.FAILED_PRECONDITION,
    BusinessCode.NOT_FOUND: grpc.StatusCode.NOT_FOUND,
    BusinessCode.USER_ALREADY_EXISTS: grpc.StatusCode.ALREADY_EXISTS,
    BusinessCode.PASSWORD_ERROR: grpc.StatusCode.UNAUTHENTICATED,
    BusinessCode.TOKEN_INVALID: grpc.StatusCode.UNAUTHENTICATED,
    BusinessCode.TOKEN_EXPIRED: grpc.StatusCode.UNAUTHENTICATED,
    BusinessCode.UNAUTHORIZED: grpc.StatusCode.UNAUTHENTICATED,

    BusinessCode.SYSTEM_ERROR: grpc.StatusCode.INTERNAL,
}


def business_code_to_grpc_status(code: int) -> grpc.StatusCode:
    try:
        bc = BusinessCode(code)
    except ValueError:
        return grpc.StatusCode.INTERNAL
    return _GRPC_STATUS_BY_CODE.get(bc, grpc.StatusCode.INTERNAL)


class ExceptionMappingInterceptor(grpc.aio.ServerInterceptor):
    async def intercept_service(
        self,
        continuation: Callable[[grpc.HandlerCallDetails], Awaitable[grpc.RpcMethodHandler]],
        handler_call_details: grpc.HandlerCallDetails,
    ) -> grpc.RpcMethodHandler:
        handler = await continuation(handler_call_details)
        if handler is None:
            return handler

        async def _unary_unary(request, context: grpc.aio.ServicerContext):
            try:
                return await invoke_unary(handler, request, context)
            except grpc.aio.AbortError:
                # Already aborted downstream (e.g. by the metadata gate)
                raise
            except BusinessException as exc:
                status = business_code_to_grpc_status(exc.code)
                context.set_trailing_metadata((
                    ("x-biz-code", str(int(exc.code))),
                    ("x-error-type", exc.error_type or "BusinessError"),
                ))
                set_mapped_error()
                # Concise business error log (no stack)
                logger.error(
                    "grpc_mapped_error",
                    method=handler_call_details.method,
                    code=str(int(exc.code)),
                    status=str(status),
                    message=exc.message,
                    request_id=get_request_id(),
                )
                await context.abort(status, exc.message)
            except Exception as exc:
                context.set_trailing_metadata((
                    ("x-biz-code", str(BusinessCode.SYSTEM_ERROR.value)),
                    ("x-error-type", "InternalServerError"),
                ))
                set_mapped_error()
                logger.error(
                    "grpc_mapped_error",
                    method=handler_call_details.method,
                    code=str(BusinessCode.SYSTEM_ERROR.value),
                    status=str(grpc.StatusCode.INTERNAL),
                    message=str(exc),
                    request_id=get_request_id(),
                    exc_info=True,
                )
                await context.abort(grpc.StatusCode.INTERNAL, "internal server error")

        if handler.unary_unary:
            return grpc.unary_unary_rpc_method_handler(
                _unary_unary,
                request_deserializer=handler.request_deserializer,
                response_serializer=handler.response_serializer,
            )
        return handler
