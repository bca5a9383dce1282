"""
HTTP 中间件链（责任链）

每个 Step 接收一个 GatewayRequest，返回（可能被替换的）新 GatewayRequest，
或抛出 BusinessException 终止整条链。compose 把有序的 Step 列表与终端处理器
组合成一个新的处理器：第一个失败的 Step 之后的 Step 与终端处理器都不会执行。
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Mapping, Optional, Protocol, Sequence

from starlette.datastructures import Headers
from starlette.requests import Request

from application.dto import Identity


@dataclass(frozen=True)
class GatewayRequest:
    """一次 HTTP 请求在中间件链中的不可变视图"""

    method: str
    path: str
    headers: Headers = field(default_factory=Headers)
    path_params: Mapping[str, str] = field(default_factory=dict)
    query_params: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""
    api_version: Optional[str] = None
    identity: Optional[Identity] = None

    @classmethod
    async def from_starlette(cls, request: Request) -> "GatewayRequest":
        return cls(
            method=request.method,
            path=request.url.path,
            headers=request.headers,
            path_params=dict(request.path_params),
            query_params=dict(request.query_params),
            body=await request.body(),
        )

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name)


Handler = Callable[[GatewayRequest], Awaitable[str]]


class Step(Protocol):
    async def apply(self, request: GatewayRequest) -> GatewayRequest:
        ...


def compose(steps: Sequence[Step], terminal: Handler) -> Handler:
    """按声明顺序串联 steps，最后调用 terminal 并原样返回其结果"""
    chain = tuple(steps)

    async def handler(request: GatewayRequest) -> str:
        for step in chain:
            request = await step.apply(request)
        return await terminal(request)

    return handler
