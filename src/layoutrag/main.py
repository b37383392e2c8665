import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from layoutrag.api.routes import router
from layoutrag.errors import EmbeddingError, VectorStoreUnavailableError
from layoutrag.logging_config import configure_logging
from layoutrag.telemetry import emit_exception

configure_logging()

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="Layout RAG API")
app.include_router(router)


@app.exception_handler(VectorStoreUnavailableError)
async def _vector_store_unavailable(request: Request, exc: VectorStoreUnavailableError) -> JSONResponse:
    emit_exception(module=__name__, error=exc, source=str(request.url.path))
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(EmbeddingError)
async def _embedding_unavailable(request: Request, exc: EmbeddingError) -> JSONResponse:
    emit_exception(module=__name__, error=exc, source=str(request.url.path))
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.get("/", response_class=PlainTextResponse)
def read_root() -> str:
    """Healthcheck endpoint for the service."""
    return "ok"


@app.get("/healthz", response_class=PlainTextResponse)
def healthcheck() -> str:
    """Liveness probe used by container orchestrators."""
    return "ok"
