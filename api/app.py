"""
FastAPI 应用装配：中间件链 + 路由 + 全局异常处理
"""
from typing import List

from fastapi import FastAPI

from api.middleware import LoggingMiddleware, RequestIDMiddleware, Step, UserStep, VersionStep
from api.routes import temp_log as temp_log_routes
from api.routes import user as user_routes
from application.environment import RequestEnvironment
from core.exceptions import register_exception_handlers


def build_steps(env: RequestEnvironment) -> List[Step]:
    """所有路由共用的有序中间件链：版本检查必须先于用户认证"""
    return [
        VersionStep(env.settings.http),
        UserStep(env.token_service),
    ]


def create_app(env: RequestEnvironment) -> FastAPI:
    settings = env.settings
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        debug=settings.DEBUG,
        description="Temperature log API",
    )

    # 添加中间件（注意顺序：后添加的先执行）
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    steps = build_steps(env)
    app.include_router(temp_log_routes.build_router(env, steps))
    app.include_router(user_routes.build_router(env, steps))
    app.state.env = env
    return app
