from .chain import GatewayRequest, Handler, Step, compose
from .version import VersionStep
from .auth import UserStep, require_identity
from .request_id import RequestIDMiddleware
from .logging import LoggingMiddleware

__all__ = [
    "GatewayRequest",
    "Handler",
    "Step",
    "compose",
    "VersionStep",
    "UserStep",
    "require_identity",
    "RequestIDMiddleware",
    "LoggingMiddleware",
]
