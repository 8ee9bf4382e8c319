from shared.middleware.error_handler import error_envelope_middleware, http_error_handler
from shared.middleware.request_id import RequestIdFilter, request_id_middleware

__all__ = [
    "RequestIdFilter",
    "error_envelope_middleware",
    "http_error_handler",
    "request_id_middleware",
]
