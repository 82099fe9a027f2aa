import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Optional, Type, TypeVar

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from helmapi.modules.engine.errors import EngineError, ValidationError

from .models import ApiResponse

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


def format_validation_error(exc: PydanticValidationError) -> str:
    """Flatten pydantic errors into one readable message."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(loc) for loc in error.get("loc", ()) if loc != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts)


async def decode_json_body(request: Request, model: Type[T]) -> T:
    """
    Decode a JSON request body into a request record.

    Raises:
        ValidationError: wrong content type, empty body, invalid JSON or
            field validation failure
    """
    content_type = request.headers.get("content-type", "")
    if content_type and "application/json" not in content_type:
        raise ValidationError("content-type header is not application/json")

    body = await request.body()
    if not body:
        raise ValidationError("request body is empty")

    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValidationError(f"request body contains invalid JSON: {e}")

    if not isinstance(payload, dict):
        raise ValidationError("request body must be a JSON object")

    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(f"invalid request: {format_validation_error(e)}")


def json_body(model: Type[T]) -> Callable[[Request], Awaitable[T]]:
    """FastAPI dependency factory decoding the body into ``model``."""

    async def dependency(request: Request) -> T:
        return await decode_json_body(request, model)

    return dependency


def respond(data: Any = None, status_code: int = 200, message: Optional[str] = None) -> JSONResponse:
    """Wrap a payload in the success envelope."""
    envelope = ApiResponse(success=True, message=message, data=data)
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(envelope, by_alias=True, exclude_none=True),
    )


def respond_with_error(status_code: int, message: str) -> JSONResponse:
    """Wrap an error message in the failure envelope."""
    envelope = ApiResponse(success=False, message=message)
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(envelope, exclude_none=True),
    )


async def run_bound_to_request(
    request: Request,
    awaitable: Awaitable[Any],
    poll_interval: float = 1.0,
) -> Any:
    """
    Run an engine call as a task tied to the inbound request.

    If the client disconnects before the call finishes, the task is
    cancelled, which kills the helm subprocess.
    """
    task = asyncio.ensure_future(awaitable)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.warning(
                    f"Client disconnected during {request.method} {request.url.path}, cancelling engine call"
                )
                task.cancel()
                raise EngineError("request cancelled: client disconnected")
    finally:
        if not task.done():
            task.cancel()
