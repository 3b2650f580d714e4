from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from songorders.domain.errors import ContentRejected, OrderPipelineError

logger = logging.getLogger("api_errors")


async def order_pipeline_error_handler(request: Request, exc: OrderPipelineError) -> JSONResponse:
    body = {"detail": exc.code, "message": str(exc)}
    if isinstance(exc, ContentRejected):
        body["terms"] = exc.terms
    if exc.status_code >= 500:
        logger.warning("request failed path=%s code=%s err=%s", request.url.path, exc.code, exc)
    return JSONResponse(status_code=exc.status_code, content=body)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(OrderPipelineError, order_pipeline_error_handler)
