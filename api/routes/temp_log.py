"""
温度日志路由 - POST /temp-log, GET /temp-log, GET /temp-log/{id}
"""
from typing import Sequence

from fastapi import APIRouter

from api.adapter import adapt
from api.middleware import GatewayRequest, Step, compose, require_identity
from api.utils.payload import dump, dump_many, parse_body, parse_int_param, parse_pagination
from application.dto import CreatedDTO, TempLogCreateDTO
from application.environment import RequestEnvironment
from application.services.temp_log_service import TempLogApplicationService


class TempLogHandlers:
    def __init__(self, service: TempLogApplicationService):
        self._service = service

    async def create(self, request: GatewayRequest) -> str:
        identity = require_identity(request)
        data = parse_body(request.body, TempLogCreateDTO)
        pk = await self._service.create_log(data, created_by=identity.user_id)
        return dump(CreatedDTO(pk=pk))

    async def list(self, request: GatewayRequest) -> str:
        require_identity(request)
        page = parse_pagination(request.query_params)
        return dump_many(await self._service.list_logs(skip=page.skip, limit=page.limit))

    async def get(self, request: GatewayRequest) -> str:
        require_identity(request)
        log_id = parse_int_param(request.path_params.get("id"), "id")
        return dump(await self._service.get_log(log_id))


def build_router(env: RequestEnvironment, steps: Sequence[Step]) -> APIRouter:
    handlers = TempLogHandlers(env.temp_log_service())
    router = APIRouter(tags=["temp-log"])
    router.add_api_route("/temp-log", adapt(compose(steps, handlers.create)),
                         methods=["POST"], name="create_temp_log")
    router.add_api_route("/temp-log", adapt(compose(steps, handlers.list)),
                         methods=["GET"], name="list_temp_logs")
    router.add_api_route("/temp-log/{id}", adapt(compose(steps, handlers.get)),
                         methods=["GET"], name="get_temp_log")
    return router
