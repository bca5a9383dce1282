"""
TempLogService - gRPC 版本的温度日志读写

没有 .proto 生成代码：消息统一使用 google.protobuf.Struct，
方法表手写成与 *_pb2_grpc 生成代码相同的形状（Servicer / add_*_to_server / Stub）。
"""
from __future__ import annotations

from typing import Any, Mapping

import grpc
from google.protobuf import json_format, struct_pb2
from pydantic import ValidationError

from application.dto import CreatedDTO, PaginationParams, TempLogCreateDTO
from application.services.temp_log_service import TempLogApplicationService
from domain.common.exceptions import BadRequestException


SERVICE_NAME = "raspberrysour.v1.TempLogService"


def struct_to_dict(message: struct_pb2.Struct) -> dict[str, Any]:
    return json_format.MessageToDict(message)


def dict_to_struct(data: Mapping[str, Any]) -> struct_pb2.Struct:
    message = struct_pb2.Struct()
    message.update(data)
    return message


def _validate(model, payload: Mapping[str, Any]):
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(loc) for loc in first.get("loc", ())) or None
        msg = str(first.get("msg", "invalid request"))
        raise BadRequestException(f"{field}: {msg}" if field else msg, field=field)


def _require_int(payload: Mapping[str, Any], name: str) -> int:
    value = payload.get(name)
    # Struct 只有 double，整数 id 以浮点形式到达
    if isinstance(value, bool) or not isinstance(value, (int, float)) or int(value) != value:
        raise BadRequestException(f"{name} must be an integer", field=name)
    return int(value)


class TempLogServicer:
    def __init__(self, service: TempLogApplicationService) -> None:
        self._svc = service

    async def CreateTempLog(self, request: struct_pb2.Struct, context: grpc.aio.ServicerContext) -> struct_pb2.Struct:
        data = _validate(TempLogCreateDTO, struct_to_dict(request))
        pk = await self._svc.create_log(data)
        return dict_to_struct(CreatedDTO(pk=pk).model_dump(mode="json"))

    async def GetTempLog(self, request: struct_pb2.Struct, context: grpc.aio.ServicerContext) -> struct_pb2.Struct:
        log_id = _require_int(struct_to_dict(request), "id")
        log = await self._svc.get_log(log_id)
        return dict_to_struct(log.model_dump(mode="json"))

    async def ListTempLogs(self, request: struct_pb2.Struct, context: grpc.aio.ServicerContext) -> struct_pb2.Struct:
        payload = struct_to_dict(request)
        page = _validate(PaginationParams, {
            name: _require_int(payload, name) for name in ("page", "size") if name in payload
        })
        logs = await self._svc.list_logs(skip=page.skip, limit=page.limit)
        return dict_to_struct({
            "items": [log.model_dump(mode="json") for log in logs],
            "page": page.page,
            "size": page.size,
        })


def add_TempLogServiceServicer_to_server(servicer: TempLogServicer, server: grpc.aio.Server) -> None:
    rpc_method_handlers = {
        name: grpc.unary_unary_rpc_method_handler(
            getattr(servicer, name),
            request_deserializer=struct_pb2.Struct.FromString,
            response_serializer=struct_pb2.Struct.SerializeToString,
        )
        for name in ("CreateTempLog", "GetTempLog", "ListTempLogs")
    }
    generic_handler = grpc.method_handlers_generic_handler(SERVICE_NAME, rpc_method_handlers)
    server.add_generic_rpc_handlers((generic_handler,))


class TempLogServiceStub:
    """Client side of TempLogService, for callers and tests."""

    def __init__(self, channel: grpc.aio.Channel) -> None:
        for name in ("CreateTempLog", "GetTempLog", "ListTempLogs"):
            setattr(self, name, channel.unary_unary(
                f"/{SERVICE_NAME}/{name}",
                request_serializer=struct_pb2.Struct.SerializeToString,
                response_deserializer=struct_pb2.Struct.FromString,
            ))
