import logging
from contextlib import asynccontextmanager
from time import perf_counter
from urllib.parse import urlsplit
from uuid import uuid4

import uvicorn
from fastapi import FastAPI, Request
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse, Response

from news_aggregator.api.routes import ArticleTextExtractor, router
from news_aggregator.core.config import get_settings
from news_aggregator.core.observability import REQUEST_COUNT, REQUEST_LATENCY, configure_logging
from news_aggregator.core.responses import error_response
from news_aggregator.services.extraction.service import ArticleTextService, ArticleTextServiceError

logger = logging.getLogger(__name__)

_STATUS_MESSAGES = {404: "Not found", 405: "Method not allowed"}


def create_app(service: ArticleTextExtractor | None = None) -> FastAPI:
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings)
        yield

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.article_text_service = service or ArticleTextService.from_settings(settings)
    app.include_router(router)
    if settings.observability_enabled:
        FastAPIInstrumentor.instrument_app(app)

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        trace_id = request.headers.get("X-Trace-Id", str(uuid4()))
        request.state.trace_id = trace_id

        try:
            urlsplit(str(request.url))
        except ValueError:
            payload, status = error_response("Invalid request URL", 400)
            return JSONResponse(payload, status_code=status, headers={"X-Trace-Id": trace_id})

        start = perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unhandled error on %s", request.url.path)
            payload, status = error_response(str(exc) or "Unexpected extraction error", 500)
            response = JSONResponse(payload, status_code=status)
        elapsed = perf_counter() - start

        path = request.url.path
        REQUEST_COUNT.labels(request.method, path, str(response.status_code)).inc()
        REQUEST_LATENCY.labels(request.method, path).observe(elapsed)
        response.headers["X-Trace-Id"] = trace_id
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        message = _STATUS_MESSAGES.get(exc.status_code, str(exc.detail))
        payload, status = error_response(message, exc.status_code)
        return JSONResponse(payload, status_code=status)

    @app.exception_handler(ArticleTextServiceError)
    async def article_text_error_handler(request: Request, exc: ArticleTextServiceError):
        payload, status = error_response(exc.message, exc.status_code, code=exc.code.value, retryable=exc.retryable)
        return JSONResponse(payload, status_code=status)

    @app.get("/metrics", include_in_schema=False)
    def metrics() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
