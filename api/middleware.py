"""
Request context for the trigger API.

Routes record which ingestion run a request touched in
``request.state.run_context``; the middleware logs it with the request and
exposes it as response headers.
"""

import logging
import time
import uuid
from typing import Any, Dict
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
RUN_ID_HEADER = "X-Run-ID"
RUN_STATUS_HEADER = "X-Run-Status"


def record_run(request: Request, **fields: Any):
    """Attach run fields (run_id, date, status, ...) to the current request"""
    context: Dict[str, Any] = getattr(request.state, "run_context", None)
    if context is None:
        context = request.state.run_context = {}
    context.update({k: v for k, v in fields.items() if v is not None})


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Request id (incoming header honoured), run context, latency"""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        request.state.run_context = {}
        started = time.perf_counter()

        response: Response = await call_next(request)

        elapsed_ms = round((time.perf_counter() - started) * 1000, 1)
        run_context = request.state.run_context

        response.headers[REQUEST_ID_HEADER] = request_id
        if "run_id" in run_context:
            response.headers[RUN_ID_HEADER] = str(run_context["run_id"])
        if "status" in run_context:
            response.headers[RUN_STATUS_HEADER] = str(run_context["status"])

        fields = " ".join(f"{k}={v}" for k, v in run_context.items())
        logger.info(
            f"[{request_id}] {request.method} {request.url.path} {response.status_code} "
            f"{elapsed_ms}ms {fields}".rstrip(),
            extra={"request_id": request_id, "run_context": dict(run_context)}
        )
        return response
