"""
用户路由 - POST /login, POST /register, GET /user
"""
from typing import Sequence

from fastapi import APIRouter

from api.adapter import adapt
from api.middleware import GatewayRequest, Step, compose, require_identity
from api.utils.payload import dump, dump_many, parse_body, parse_pagination
from application.dto import CreatedDTO, LoginDTO, RegisterDTO
from application.environment import RequestEnvironment
from application.services.user_service import UserApplicationService


class UserHandlers:
    def __init__(self, service: UserApplicationService):
        self._service = service

    async def login(self, request: GatewayRequest) -> str:
        """用户名密码换取访问令牌（匿名可访问）"""
        data = parse_body(request.body, LoginDTO)
        return dump(await self._service.login(data))

    async def register(self, request: GatewayRequest) -> str:
        data = parse_body(request.body, RegisterDTO)
        return dump(CreatedDTO(pk=await self._service.register_user(data)))

    async def list(self, request: GatewayRequest) -> str:
        require_identity(request)
        page = parse_pagination(request.query_params)
        return dump_many(await self._service.list_users(skip=page.skip, limit=page.limit))


def build_router(env: RequestEnvironment, steps: Sequence[Step]) -> APIRouter:
    handlers = UserHandlers(env.user_service())
    router = APIRouter(tags=["user"])
    router.add_api_route("/login", adapt(compose(steps, handlers.login)),
                         methods=["POST"], name="login")
    router.add_api_route("/register", adapt(compose(steps, handlers.register)),
                         methods=["POST"], name="register")
    router.add_api_route("/user", adapt(compose(steps, handlers.list)),
                         methods=["GET"], name="list_users")
    return router
