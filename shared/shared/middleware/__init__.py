from shared.middleware.error_handler import error_body, error_envelope_middleware
from shared.middleware.request_id import (
    REQUEST_ID_HEADER,
    RequestIdLogFilter,
    configure_request_logging,
    current_request_id,
    request_id_middleware,
)

__all__ = [
    "REQUEST_ID_HEADER",
    "RequestIdLogFilter",
    "configure_request_logging",
    "current_request_id",
    "error_body",
    "error_envelope_middleware",
    "request_id_middleware",
]
