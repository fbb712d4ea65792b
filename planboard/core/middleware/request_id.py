import logging
import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware

from planboard.core.logging import LOGGER_NAME, latency_bucket_ms, request_id_ctx_var

REQUEST_ID_HEADER = "x-request-id"
USER_ID_HEADER = "x-user-id"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Bind a request id for the duration of each request.

    An id sent by the caller is reused so logs line up with the gateway in
    front of us; otherwise a fresh one is minted. The id is echoed on the
    response and one summary line is logged per request.
    """

    async def dispatch(self, request, call_next):
        rid = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        request.state.request_id = rid
        token = request_id_ctx_var.set(rid)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            request_id_ctx_var.reset(token)
        elapsed_ms = (time.perf_counter() - started) * 1000

        response.headers[REQUEST_ID_HEADER] = rid
        logging.getLogger(LOGGER_NAME).info(
            "request.complete",
            extra={
                "request_id": rid,
                "user_id": request.headers.get(USER_ID_HEADER),
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "latency_bucket": latency_bucket_ms(elapsed_ms),
            },
        )
        return response
