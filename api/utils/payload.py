"""Request body / query parsing and response body serialization helpers."""
from __future__ import annotations

import json
from typing import Iterable, Mapping, Type, TypeVar

from pydantic import BaseModel, ValidationError
from pydantic_core import PydanticSerializationError

from application.dto import PaginationParams
from domain.common.exceptions import BadRequestException, InternalServerErrorException


ModelT = TypeVar("ModelT", bound=BaseModel)


def _first_error(exc: ValidationError) -> tuple[str, str | None]:
    errors = exc.errors()
    first_error = errors[0] if errors else {}
    field = ".".join(str(loc) for loc in first_error.get("loc", ())) or None
    msg = str(first_error.get("msg", "invalid request"))
    return (f"{field}: {msg}" if field else msg), field


def parse_body(body: bytes, model: Type[ModelT]) -> ModelT:
    """Decode a JSON body into `model`; any failure is a BadRequest and nothing downstream runs."""
    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise BadRequestException(str(exc))
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        message, field = _first_error(exc)
        raise BadRequestException(message, field=field)


def parse_pagination(query: Mapping[str, str]) -> PaginationParams:
    try:
        return PaginationParams.model_validate({k: v for k, v in query.items() if k in ("page", "size")})
    except ValidationError as exc:
        message, field = _first_error(exc)
        raise BadRequestException(message, field=field)


def parse_int_param(value: str, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise BadRequestException(f"{name} must be an integer", field=name)


def dump(model: BaseModel) -> str:
    try:
        return model.model_dump_json()
    except PydanticSerializationError as exc:
        raise InternalServerErrorException(f"failed to serialize response: {exc}")


def dump_many(models: Iterable[BaseModel]) -> str:
    try:
        return json.dumps([m.model_dump(mode="json") for m in models], ensure_ascii=False)
    except (PydanticSerializationError, TypeError, ValueError) as exc:
        raise InternalServerErrorException(f"failed to serialize response: {exc}")

