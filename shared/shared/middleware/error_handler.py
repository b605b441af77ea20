import logging
from collections.abc import Awaitable, Callable

from fastapi import Request, status
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.middleware.request_id import REQUEST_ID_HEADER

logger = logging.getLogger(__name__)


def error_body(code: str, message: str, request_id: str | None) -> dict:
    return {"error": {"code": code, "message": message}, "request_id": request_id}


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None) or request.headers.get(REQUEST_ID_HEADER)


async def error_envelope_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Last-resort envelope for errors that escape the routers' own handling."""
    try:
        return await call_next(request)
    except StarletteHTTPException as exc:
        message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body("http_error", message, _request_id(request)),
        )
    except Exception:
        request_id = _request_id(request)
        logger.exception(
            "Unhandled exception on %s %s (request_id=%s)",
            request.method, request.url.path, request_id,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body("internal_error", "An unexpected error occurred", request_id),
        )
